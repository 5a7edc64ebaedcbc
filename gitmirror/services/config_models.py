"""
Pydantic models for gitmirror configuration.

Uses pydantic-settings for environment variable validation and type coercion.
Values are read from the environment and from a ``.env`` file in the working
directory.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gitmirror.adapters.repository.errors import (
    DEFAULT_REF_NOT_FOUND_PATTERN,
    DEFAULT_SINGLE_REVISION_PATTERN,
)

# =============================================================================
# Environment Settings (from .env file)
# =============================================================================


class GitSettings(BaseSettings):
    """Git tool and mirror storage settings."""

    model_config = SettingsConfigDict(env_prefix="GITMIRROR_GIT_", env_file=".env", extra="ignore")

    # A plain name is looked up on PATH
    executable: str = "git"
    repo_storage: str = "~/.gitmirror/repos"

    @property
    def repo_storage_path(self) -> Path:
        return Path(self.repo_storage).expanduser()


class ErrorPatternSettings(BaseSettings):
    """Stderr patterns used to recognise a missing ref."""

    model_config = SettingsConfigDict(env_prefix="GITMIRROR_PATTERN_", env_file=".env", extra="ignore")

    ref_not_found: str = DEFAULT_REF_NOT_FOUND_PATTERN
    single_revision: str = DEFAULT_SINGLE_REVISION_PATTERN

    @field_validator("ref_not_found", "single_revision")
    @classmethod
    def _must_compile(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return value

    @field_validator("ref_not_found")
    @classmethod
    def _must_capture_ref(cls, value: str) -> str:
        if re.compile(value).groups < 1:
            raise ValueError("ref_not_found pattern must capture the ref name in group 1")
        return value


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(env_prefix="GITMIRROR_", env_file=".env", extra="ignore")

    verbose: bool = False
    log_level: str = Field(default="WARNING")
    log_dir: str | None = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


class MirrorSettings:
    """
    Aggregates all settings groups.

    Usage:
        settings = MirrorSettings()
        print(settings.git.repo_storage_path)
        print(settings.app.verbose)

    Each group is loaded once, on construction, so later environment changes
    do not leak into a running session.
    """

    def __init__(
        self,
        git: GitSettings | None = None,
        patterns: ErrorPatternSettings | None = None,
        app: AppSettings | None = None,
    ):
        self._git = git or GitSettings()
        self._patterns = patterns or ErrorPatternSettings()
        self._app = app or AppSettings()

    @property
    def git(self) -> GitSettings:
        return self._git

    @property
    def patterns(self) -> ErrorPatternSettings:
        return self._patterns

    @property
    def app(self) -> AppSettings:
        return self._app

    def with_overrides(
        self,
        *,
        executable: str | None = None,
        repo_storage: str | None = None,
        verbose: bool | None = None,
        log_level: str | None = None,
        log_dir: str | None = None,
    ) -> MirrorSettings:
        """Return a copy with CLI-style overrides applied. ``None`` keeps the current value."""
        git_updates = {
            k: v for k, v in {"executable": executable, "repo_storage": repo_storage}.items() if v is not None
        }
        app_updates = {
            k: v
            for k, v in {"verbose": verbose, "log_level": log_level, "log_dir": log_dir}.items()
            if v is not None
        }
        app = self._app.model_copy(update=app_updates)
        if "log_level" in app_updates:
            # model_copy skips validation
            app = AppSettings.model_validate(app.model_dump())
        return MirrorSettings(
            git=self._git.model_copy(update=git_updates),
            patterns=self._patterns,
            app=app,
        )
