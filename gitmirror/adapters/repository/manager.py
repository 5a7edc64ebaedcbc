"""Repository Manager - bare mirror lifecycle and worktree checkout.

A :class:`GitRepository` is bound to one remote URL. On first use it creates
a bare mirror under the storage root (directory name from
:func:`escape_url`), then on every checkout it force-fetches ``origin``,
verifies the ref and force-checks it out into the caller's worktree.

Both force operations are destructive. The mirror follows the remote, and
the worktree is treated as disposable. Uncommitted files in
the worktree are overwritten and tracked files that do not exist in the new
ref are removed.

Every worktree has its own index file under ``<mirror>/worktree-indexes``
(keyed by the worktree's resolved path), so several worktrees can be
served from one mirror without one checkout leaving stale files in another.

A ``GitRepository`` holds no lock. Two concurrent checkouts against the same
mirror can interleave their fetch and checkout steps; use
:class:`~gitmirror.adapters.repository.registry.MirrorRegistry` (or an
external per-mirror lock) when calls may overlap.

Usage:
    from gitmirror.adapters.repository import GitRepository

    repo = GitRepository.with_repo_url("https://github.com/user/repo.git")
    repo.checkout_reference("origin/main", Path("/tmp/work"))
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from gitmirror.common.exceptions import ConfigurationError, StorageError

from .errors import ErrorTranslator
from .escaping import escape_url, unescape_name
from .executor import CommandExecutor, SubprocessExecutor
from .models import CheckoutResult, CommandOutcome, GitStep, MirrorState, RemoteRepository

if TYPE_CHECKING:
    from gitmirror.common.types import RunLoggerProtocol
    from gitmirror.services.config_models import MirrorSettings

logger = logging.getLogger(__name__)

ORIGIN = "origin"
_ORIGIN_SECTION = f'[remote "{ORIGIN}"]'
WORKTREE_INDEX_DIR = "worktree-indexes"


class GitRepository:
    """A local bare mirror of one remote repository."""

    def __init__(
        self,
        git_exec_path: str,
        git_dir: Path,
        repo_url: str,
        verbose: bool = False,
        *,
        executor: CommandExecutor | None = None,
        translator: ErrorTranslator | None = None,
        run_logger: RunLoggerProtocol | None = None,
    ):
        """
        Args:
            git_exec_path: Git executable; a bare name is resolved on PATH
            git_dir: Mirror location, also passed as ``--git-dir``
            repo_url: URL of the remote the mirror follows
            verbose: Stream git output to the operator
            executor: Process runner (default: SubprocessExecutor)
            translator: Error classification table (default patterns if None)
            run_logger: Optional JSONL run log receiving one entry per step
        """
        if not git_exec_path:
            raise ConfigurationError("Git executable must be a non-empty string")
        self._git_exec_path = git_exec_path
        self._git_dir = Path(git_dir)
        self._remote = RemoteRepository(repo_url)
        self._verbose = verbose
        self._executor: CommandExecutor = executor or SubprocessExecutor()
        self._translator = translator or ErrorTranslator.from_patterns()
        self._run_logger = run_logger

    @classmethod
    def with_repo_url(
        cls,
        repo_url: str,
        settings: MirrorSettings | None = None,
        *,
        executor: CommandExecutor | None = None,
        run_logger: RunLoggerProtocol | None = None,
    ) -> GitRepository:
        """Build a repository whose mirror lives under the configured storage root."""
        if settings is None:
            from gitmirror.services.config_models import MirrorSettings

            settings = MirrorSettings()

        storage = settings.git.repo_storage
        if not storage:
            raise ConfigurationError("Mirror storage root must be a non-empty path")

        return cls(
            settings.git.executable,
            mirror_path(settings.git.repo_storage_path, repo_url),
            repo_url,
            settings.app.verbose,
            executor=executor,
            translator=ErrorTranslator.from_patterns(
                ref_not_found=settings.patterns.ref_not_found,
                single_revision=settings.patterns.single_revision,
            ),
            run_logger=run_logger,
        )

    @property
    def repo_url(self) -> str:
        return self._remote.url

    @property
    def remote(self) -> RemoteRepository:
        return self._remote

    @property
    def git_dir(self) -> Path:
        return self._git_dir

    @property
    def state(self) -> MirrorState:
        """INITIALIZED once the mirror has its ``origin`` remote configured.

        A directory left behind by an interrupted init still reports
        UNINITIALIZED so the next checkout retries the init.
        """
        config = self._git_dir / "config"
        try:
            text = config.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return MirrorState.UNINITIALIZED
        return MirrorState.INITIALIZED if _ORIGIN_SECTION in text else MirrorState.UNINITIALIZED

    def checkout_reference(self, ref: str, workdir: Path) -> CheckoutResult:
        """Populate ``workdir`` with the contents of ``ref``.

        Any content in the workdir is removed or overwritten.

        Raises:
            StorageError: The mirror directory could not be created
            InitializationFailed: ``init --bare`` or ``remote add`` failed
            FetchFailed: ``fetch`` failed
            RefNotFound: ``ref`` does not resolve in the mirror
            CommandFailed: ``rev-parse`` failed for another reason
            CheckoutFailed: ``checkout`` failed
        """
        workdir = Path(workdir)
        steps: list[str] = []

        if self._run_logger:
            self._run_logger.phase_start(
                "checkout",
                f"Checking out {ref} from {self.repo_url}",
                stats={"repo_url": self.repo_url, "ref": ref, "workdir": str(workdir)},
            )
        try:
            created = self._ensure_initialized(steps)

            with self._step(GitStep.FETCH, steps):
                # Forced: remote-tracking refs always follow origin, even on non-fast-forward
                self.git(self._git_dir, "fetch", "-f", ORIGIN, step=GitStep.FETCH)

            with self._step(GitStep.VERIFY, steps):
                # Local branches tracking remotes are never created, so refs
                # must be given as origin/<branch>.
                self._check_ref_exists(ref)

            with self._step(GitStep.CHECKOUT, steps):
                # Each worktree gets its own index so the forced checkout
                # diffs against what that worktree last received.
                index = self._worktree_index(workdir)
                self.git(
                    workdir,
                    f"--git-dir={self._git_dir}",
                    f"--work-tree={workdir}",
                    "checkout",
                    "-f",
                    ref,
                    step=GitStep.CHECKOUT,
                    env={"GIT_INDEX_FILE": str(index)},
                )
        except Exception as e:
            if self._run_logger:
                self._run_logger.phase_error("checkout", str(e))
            raise

        result = CheckoutResult(
            repo_url=self.repo_url,
            ref=ref,
            mirror_path=self._git_dir,
            workdir=workdir,
            initialized=created,
            steps=tuple(steps),
        )
        if self._run_logger:
            self._run_logger.phase_complete("checkout", stats=result.to_dict())
        logger.info("Checked out %s from %s into %s", ref, self.repo_url, workdir)
        return result

    def git(
        self,
        cwd: Path,
        *params: str,
        step: GitStep = GitStep.COMMAND,
        ref: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutcome:
        """Invoke git in ``cwd`` against this repository.

        Args:
            cwd: Directory in which to execute the command
            params: Arguments passed to git, excluding the executable
            step: Step the call belongs to; selects the error type on failure
            ref: Ref being resolved, used when classifying the failure
            env: Extra environment variables for the git process

        Raises:
            RepositoryError: Any non-zero exit or spawn failure, classified
        """
        argv = (self._git_exec_path, *params)
        try:
            outcome = self._executor.execute(argv, Path(cwd), self._verbose, env=env)
        except OSError as e:
            error = self._translator.translate_spawn_failure(argv, e, step)
            logger.warning("Could not start '%s': %s", self._git_exec_path, e)
            raise error from e

        if outcome.success:
            return outcome

        error = self._translator.translate(outcome, step, ref)
        logger.warning("git %s failed (%s): %s", " ".join(params), type(error).__name__, error)
        raise error

    def _ensure_initialized(self, steps: list[str]) -> bool:
        if self.state is MirrorState.INITIALIZED:
            if self._run_logger:
                self._run_logger.step_skipped(GitStep.INIT.value, "Mirror already initialized")
            return False

        with self._step(GitStep.INIT, steps):
            try:
                self._git_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(self._git_dir, e) from e

            self.git(self._git_dir, "init", "--bare", step=GitStep.INIT)
            self.git(self._git_dir, "remote", "add", ORIGIN, self.repo_url, step=GitStep.INIT)

        logger.info("Created mirror of %s at %s", self.repo_url, self._git_dir)
        return True

    def worktree_index_path(self, workdir: Path) -> Path:
        """Index file used for checkouts into ``workdir``."""
        key = hashlib.sha256(str(Path(workdir).resolve()).encode("utf-8")).hexdigest()
        return self._git_dir / WORKTREE_INDEX_DIR / key

    def _worktree_index(self, workdir: Path) -> Path:
        index = self.worktree_index_path(workdir)
        try:
            index.parent.mkdir(exist_ok=True)
        except OSError as e:
            raise StorageError(index.parent, e) from e
        return index

    def _check_ref_exists(self, ref: str) -> None:
        self.git(self._git_dir, "rev-parse", "--verify", ref, step=GitStep.VERIFY, ref=ref)

    @contextlib.contextmanager
    def _step(self, step: GitStep, steps: list[str]) -> Iterator[None]:
        steps.append(step.value)
        if self._run_logger is None:
            yield
            return
        with self._run_logger.step_start(step.value):
            yield

    def __repr__(self) -> str:
        return (
            f"GitRepository(git_exec_path={self._git_exec_path!r}, git_dir='{self._git_dir}', "
            f"verbose={self._verbose}, repo_url={self.repo_url!r})"
        )


# =============================================================================
# Convenience Functions
# =============================================================================


def mirror_path(storage_root: Path, repo_url: str) -> Path:
    """Directory of the mirror for ``repo_url`` under ``storage_root``."""
    return Path(storage_root) / escape_url(repo_url)


def list_mirrors(storage_root: Path) -> list[tuple[str, Path]]:
    """Return ``(repo_url, path)`` for every mirror directory under ``storage_root``."""
    root = Path(storage_root)
    if not root.is_dir():
        return []
    mirrors = []
    for path in sorted(root.iterdir()):
        if not path.is_dir():
            continue
        try:
            url = unescape_name(path.name)
        except ValueError:
            logger.debug("Skipping non-mirror directory %s", path)
            continue
        mirrors.append((url, path))
    return mirrors


def checkout_reference(repo_url: str, ref: str, workdir: Path, settings: MirrorSettings | None = None) -> CheckoutResult:
    """Quick checkout without per-mirror locking."""
    return GitRepository.with_repo_url(repo_url, settings).checkout_reference(ref, workdir)
