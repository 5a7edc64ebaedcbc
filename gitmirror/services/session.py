"""
MirrorSession - unified API for the CLI and library callers.

Manages settings, the mirror registry and the optional run log, and exposes
operations that return plain result dicts instead of raising.

Usage:
    with MirrorSession() as session:
        result = session.checkout("https://github.com/user/repo.git", "origin/main", "/tmp/work")
        if not result["success"]:
            print(result["error"])
"""

from __future__ import annotations

import logging
from pathlib import Path

from gitmirror.adapters.repository import (
    CommandExecutor,
    GitRepository,
    MirrorRegistry,
    RefNotFound,
    list_mirrors,
    mirror_path,
)
from gitmirror.common.exceptions import GitMirrorError
from gitmirror.common.logging import (
    RunLogger,
    RunLoggerHandler,
    new_run_id,
    setup_logging_bridge,
    teardown_logging_bridge,
)
from gitmirror.common.types import CheckoutResultDict, MirrorInfoDict

from .config_models import MirrorSettings

logger = logging.getLogger(__name__)

_BRIDGED_LOGGERS = ["gitmirror"]


class MirrorSession:
    """Session owning a mirror registry for one storage root."""

    def __init__(
        self,
        settings: MirrorSettings | None = None,
        *,
        executor: CommandExecutor | None = None,
        auto_connect: bool = False,
    ):
        """Initialize session.

        Args:
            settings: Settings to use (default: loaded from environment/.env)
            executor: Process runner override, mainly for tests
            auto_connect: If True, connect immediately
        """
        self._settings = settings or MirrorSettings()
        self._executor = executor
        self._registry: MirrorRegistry | None = None
        self._run_logger: RunLogger | None = None
        self._bridge: RunLoggerHandler | None = None
        self._connected = False

        if auto_connect:
            self.connect()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def connect(self) -> None:
        """Create the registry and, when a log dir is configured, the run log."""
        if self._connected:
            return

        log_dir = self._settings.app.log_dir
        if log_dir:
            self._run_logger = RunLogger(new_run_id(), log_dir)
            self._bridge = setup_logging_bridge(self._run_logger, logger_names=_BRIDGED_LOGGERS)
            logger.debug("Run log at %s", self._run_logger.get_log_path())

        self._registry = MirrorRegistry(
            self._settings,
            executor=self._executor,
            run_logger=self._run_logger,
        )
        self._connected = True

    def disconnect(self) -> None:
        """Drop the registry and detach the run log."""
        if not self._connected:
            return

        if self._bridge:
            teardown_logging_bridge(self._bridge, logger_names=_BRIDGED_LOGGERS)
            self._bridge = None

        self._registry = None
        self._connected = False

    def __enter__(self) -> MirrorSession:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def is_connected(self) -> bool:
        return self._connected

    def _ensure_connected(self) -> MirrorRegistry:
        if not self._connected:
            self.connect()
        assert self._registry is not None
        return self._registry

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def checkout(self, url: str, ref: str, workdir: str | Path) -> CheckoutResultDict:
        """Check out ``ref`` of ``url`` into ``workdir`` under the mirror's lock."""
        registry = self._ensure_connected()
        try:
            result = registry.checkout_reference(url, ref, Path(workdir))
        except RefNotFound as e:
            failure: CheckoutResultDict = {
                "success": False,
                "repo_url": url,
                "ref": ref,
                "error": str(e),
                "error_type": type(e).__name__,
            }
            if e.hint:
                failure["hint"] = e.hint
            return failure
        except GitMirrorError as e:
            return {
                "success": False,
                "repo_url": url,
                "ref": ref,
                "error": str(e),
                "error_type": type(e).__name__,
            }

        data = result.to_dict()
        return {
            "success": True,
            "repo_url": data["repo_url"],
            "ref": data["ref"],
            "mirror_path": data["mirror_path"],
            "workdir": data["workdir"],
            "initialized": data["initialized"],
            "steps": data["steps"],
        }

    def mirror_info(self, url: str) -> MirrorInfoDict:
        """Where the mirror for ``url`` lives and whether it is initialized."""
        try:
            repo = GitRepository.with_repo_url(url, self._settings, executor=self._executor)
        except GitMirrorError as e:
            return {"repo_url": url, "error": str(e), "error_type": type(e).__name__}
        return {
            "repo_url": url,
            "mirror_path": str(repo.git_dir),
            "state": repo.state.value,
        }

    def list_mirrors(self) -> list[MirrorInfoDict]:
        """All mirrors found under the storage root."""
        return [self.mirror_info(url) for url, _ in list_mirrors(self.storage_root)]

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def settings(self) -> MirrorSettings:
        return self._settings

    @property
    def storage_root(self) -> Path:
        return self._settings.git.repo_storage_path

    @property
    def run_log_path(self) -> Path | None:
        return self._run_logger.get_log_path() if self._run_logger else None

    def mirror_path(self, url: str) -> Path:
        return mirror_path(self.storage_root, url)
