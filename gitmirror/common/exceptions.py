"""
Exception hierarchy for gitmirror.

Every git failure surfaces as one of these types. Command failures keep the
executable, the full argument list and the captured stderr so callers can
diagnose without rerunning the command by hand.

Hierarchy:
    GitMirrorError
    ├── RepositoryError
    │   ├── StorageError
    │   ├── RefNotFound
    │   └── CommandFailed
    │       ├── InitializationFailed
    │       ├── FetchFailed
    │       └── CheckoutFailed
    └── ConfigurationError
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

__all__ = [
    "GitMirrorError",
    "RepositoryError",
    "StorageError",
    "RefNotFound",
    "CommandFailed",
    "InitializationFailed",
    "FetchFailed",
    "CheckoutFailed",
    "ConfigurationError",
    "ORIGIN_PREFIX_HINT",
]

ORIGIN_PREFIX_HINT = (
    "If you used a ref like 'master' you should be using 'origin/master' instead"
)

# Stderr excerpts in messages are capped; the attribute keeps the full text.
_STDERR_EXCERPT = 2000


class GitMirrorError(Exception):
    """Base class for all gitmirror errors."""


class ConfigurationError(GitMirrorError):
    """Raised when settings cannot produce a usable repository."""


class RepositoryError(GitMirrorError):
    """Base class for mirror and checkout failures."""


class StorageError(RepositoryError):
    """The mirror directory could not be created."""

    def __init__(self, path: Path, cause: OSError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Cannot create git directory '{self.path}': {cause}")


class RefNotFound(RepositoryError):
    """The requested ref does not resolve inside the mirror."""

    def __init__(self, ref: str, hint: str | None = ORIGIN_PREFIX_HINT):
        self.ref = ref
        self.hint = hint
        message = f"Ref '{ref}' does not exist."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class CommandFailed(RepositoryError):
    """A git invocation exited non-zero or could not be started."""

    step_label = "git command"

    def __init__(
        self,
        executable: str,
        argv: Sequence[str],
        stderr: str,
        exit_status: int | None = None,
    ):
        self.executable = executable
        self.argv = list(argv)
        self.stderr = stderr
        self.exit_status = exit_status
        super().__init__(self._build_message())

    @property
    def command(self) -> str:
        """The command line as a single string."""
        return " ".join(self.argv)

    def _build_message(self) -> str:
        if self.exit_status is None:
            status = "could not be started"
        else:
            status = f"exited with status {self.exit_status}"
        excerpt = self.stderr.strip()[:_STDERR_EXCERPT]
        message = f"Error executing '{self.executable}' ({self.step_label}): '{self.command}' {status}"
        if excerpt:
            message += f". Stderr: \n{excerpt}"
        return message


class InitializationFailed(CommandFailed):
    """`git init --bare` or `git remote add` failed."""

    step_label = "mirror initialization"


class FetchFailed(CommandFailed):
    """`git fetch` failed."""

    step_label = "fetch"


class CheckoutFailed(CommandFailed):
    """`git checkout` into the worktree failed."""

    step_label = "checkout"
