"""
Shared data models for mirror and checkout operations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

# Re-export exceptions so adapter callers need a single import
from gitmirror.common.exceptions import CheckoutFailed as CheckoutFailed
from gitmirror.common.exceptions import CommandFailed as CommandFailed
from gitmirror.common.exceptions import ConfigurationError as ConfigurationError
from gitmirror.common.exceptions import FetchFailed as FetchFailed
from gitmirror.common.exceptions import InitializationFailed as InitializationFailed
from gitmirror.common.exceptions import RefNotFound as RefNotFound
from gitmirror.common.exceptions import RepositoryError as RepositoryError
from gitmirror.common.exceptions import StorageError as StorageError

__all__ = [
    # Exceptions (re-exported)
    "CheckoutFailed",
    "CommandFailed",
    "ConfigurationError",
    "FetchFailed",
    "InitializationFailed",
    "RefNotFound",
    "RepositoryError",
    "StorageError",
    # Models
    "RemoteRepository",
    "MirrorState",
    "GitStep",
    "CommandInvocation",
    "CommandOutcome",
    "CheckoutResult",
]


@dataclass(frozen=True)
class RemoteRepository:
    """The origin a mirror is bound to."""

    url: str

    def __post_init__(self) -> None:
        if not self.url or not isinstance(self.url, str):
            raise ConfigurationError("Repository URL must be a non-empty string")


class MirrorState(str, Enum):
    """Persisted state of a local mirror."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class GitStep(str, Enum):
    """The step a git invocation belongs to."""

    INIT = "init"
    FETCH = "fetch"
    VERIFY = "verify"
    CHECKOUT = "checkout"
    COMMAND = "command"


@dataclass(frozen=True)
class CommandInvocation:
    """A single process launch: the argv and the directory it runs in."""

    argv: tuple[str, ...]
    cwd: Path

    @classmethod
    def of(cls, argv: Sequence[str], cwd: Path | str) -> CommandInvocation:
        return cls(argv=tuple(str(a) for a in argv), cwd=Path(cwd))

    @property
    def executable(self) -> str:
        return self.argv[0] if self.argv else ""

    @property
    def args(self) -> tuple[str, ...]:
        return self.argv[1:]


@dataclass(frozen=True)
class CommandOutcome:
    """Result of a finished process. Output is kept as raw bytes."""

    invocation: CommandInvocation
    exit_status: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class CheckoutResult:
    """What a successful checkout produced."""

    repo_url: str
    ref: str
    mirror_path: Path
    workdir: Path
    initialized: bool = False
    steps: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mirror_path"] = str(self.mirror_path)
        data["workdir"] = str(self.workdir)
        data["steps"] = list(self.steps)
        return data
