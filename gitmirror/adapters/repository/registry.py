"""
Mirror registry - one lock-guarded repository handle per escaped URL.

Checkouts against the same mirror are serialized by a per-mirror lock held
for the whole init/fetch/verify/checkout sequence; different mirrors proceed
in parallel. Locks only coordinate threads of one process. Separate processes
sharing a storage root still need their own lock scoped to the mirror path.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .escaping import escape_url
from .executor import CommandExecutor
from .manager import GitRepository
from .models import CheckoutResult

if TYPE_CHECKING:
    from gitmirror.common.types import RunLoggerProtocol
    from gitmirror.services.config_models import MirrorSettings

logger = logging.getLogger(__name__)


@dataclass
class MirrorHandle:
    """A repository together with the lock that guards its mirror."""

    repository: GitRepository
    lock: threading.Lock = field(default_factory=threading.Lock)

    def checkout_reference(self, ref: str, workdir: Path) -> CheckoutResult:
        with self.lock:
            return self.repository.checkout_reference(ref, workdir)


class MirrorRegistry:
    """Owns every :class:`GitRepository` created for a storage root."""

    def __init__(
        self,
        settings: MirrorSettings | None = None,
        *,
        executor: CommandExecutor | None = None,
        run_logger: RunLoggerProtocol | None = None,
    ):
        if settings is None:
            from gitmirror.services.config_models import MirrorSettings

            settings = MirrorSettings()
        self._settings = settings
        self._executor = executor
        self._run_logger = run_logger
        self._handles: dict[str, MirrorHandle] = {}
        self._registry_lock = threading.Lock()

    def get(self, repo_url: str) -> MirrorHandle:
        """Return the handle for ``repo_url``, creating it on first request."""
        key = escape_url(repo_url)
        with self._registry_lock:
            handle = self._handles.get(key)
            if handle is None:
                repository = GitRepository.with_repo_url(
                    repo_url,
                    self._settings,
                    executor=self._executor,
                    run_logger=self._run_logger,
                )
                handle = MirrorHandle(repository)
                self._handles[key] = handle
                logger.debug("Registered mirror %s", repository.git_dir)
            return handle

    def checkout_reference(self, repo_url: str, ref: str, workdir: Path) -> CheckoutResult:
        """Check out ``ref`` of ``repo_url`` while holding that mirror's lock."""
        return self.get(repo_url).checkout_reference(ref, workdir)

    def __contains__(self, repo_url: object) -> bool:
        return isinstance(repo_url, str) and escape_url(repo_url) in self._handles

    def __len__(self) -> int:
        return len(self._handles)
