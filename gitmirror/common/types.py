"""
Shared type definitions.

TypedDicts for the result dicts returned by the session facade, and
Protocols for run loggers so adapters do not depend on the concrete
JSONL implementation.
"""

from __future__ import annotations

from typing import Any, Protocol, TypedDict

__all__ = [
    "CheckoutResultDict",
    "MirrorInfoDict",
    "StepContextProtocol",
    "RunLoggerProtocol",
]


class CheckoutResultDict(TypedDict, total=False):
    """Result of a checkout as returned by ``MirrorSession.checkout``."""

    success: bool
    repo_url: str
    ref: str
    mirror_path: str
    workdir: str
    initialized: bool
    steps: list[str]
    error: str  # Only on failure
    error_type: str  # Exception class name, only on failure
    hint: str  # Remediation hint for RefNotFound


class MirrorInfoDict(TypedDict, total=False):
    """Location and state of one mirror."""

    repo_url: str
    mirror_path: str
    state: str
    error: str  # Only when the URL is unusable
    error_type: str


class StepContextProtocol(Protocol):
    """Protocol for step context returned by run loggers."""

    stats: dict[str, Any]

    def __enter__(self) -> StepContextProtocol: ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None: ...

    def complete(self, message: str = "") -> None:
        """Mark the step as complete."""
        ...

    def error(self, error: str, message: str = "") -> None:
        """Mark the step as failed with an error message."""
        ...


class RunLoggerProtocol(Protocol):
    """Protocol for run loggers."""

    def phase_start(self, phase: str, message: str = "", stats: dict[str, Any] | None = None) -> None:
        """Log the start of a phase."""
        ...

    def phase_complete(self, phase: str, message: str = "", stats: dict[str, Any] | None = None) -> None:
        """Log the completion of a phase."""
        ...

    def phase_error(self, phase: str, error: str, message: str = "") -> None:
        """Log a phase error."""
        ...

    def step_start(self, step: str, message: str = "") -> StepContextProtocol:
        """Log the start of a step and return a context manager."""
        ...

    def step_skipped(self, step: str, message: str = "") -> None:
        """Log a skipped step."""
        ...
