"""
Logging module - JSON Lines run logs for checkout operations.

Logging Levels:
- Level 1: One checkout call (repository URL + ref)
- Level 2: Git steps within a checkout (init, fetch, verify, checkout)

Log files are stored in: <logs_dir>/run_{id}/log_{datetime}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = [
    "LogLevel",
    "LogStatus",
    "LogEntry",
    "RunLogger",
    "StepContext",
    "RunLoggerHandler",
    "new_run_id",
    "read_run_logs",
    "setup_logging_bridge",
    "teardown_logging_bridge",
]


class LogLevel(int, Enum):
    """Log levels for filtering."""

    PHASE = 1  # One checkout call
    STEP = 2  # Git steps: init, fetch, verify, checkout


class LogStatus(str, Enum):
    """Status values for log entries."""

    STARTED = "started"
    COMPLETED = "completed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class LogEntry:
    """A single log entry."""

    level: int
    phase: str
    status: str
    timestamp: str
    message: str
    step: str | None = None
    sequence: int | None = None
    duration_ms: int | None = None
    stats: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


def new_run_id() -> str:
    """Timestamp-based run id, unique per microsecond."""
    return datetime.now().strftime("%Y%m%d_%H%M%S_%f")


class RunLogger:
    """
    Logger for a single run.

    Creates and appends to a JSONL file in <logs_dir>/run_{id}/.
    """

    def __init__(self, run_id: str | int, logs_dir: str | Path):
        """
        Initialize logger for a run.

        Args:
            run_id: Identifier of the run, used in the directory name
            logs_dir: Base directory for logs
        """
        self.run_id = run_id
        self.logs_dir = Path(logs_dir).expanduser()
        self.run_dir = self.logs_dir / f"run_{run_id}"
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.start_time = datetime.now()
        datetime_str = self.start_time.strftime("%Y%m%d_%H%M%S")
        self.log_file = self.run_dir / f"log_{datetime_str}.jsonl"

        # Phase state is per thread so concurrent checkouts sharing one log
        # keep their own phase, start time and step numbering.
        self._local = threading.local()
        self._write_lock = threading.Lock()

    @property
    def _current_phase(self) -> str | None:
        return getattr(self._local, "phase", None)

    @_current_phase.setter
    def _current_phase(self, value: str | None) -> None:
        self._local.phase = value

    @property
    def _phase_start(self) -> datetime | None:
        return getattr(self._local, "phase_start", None)

    @_phase_start.setter
    def _phase_start(self, value: datetime | None) -> None:
        self._local.phase_start = value

    @property
    def _step_sequence(self) -> int:
        return getattr(self._local, "step_sequence", 0)

    @_step_sequence.setter
    def _step_sequence(self, value: int) -> None:
        self._local.step_sequence = value

    def _write_entry(self, entry: LogEntry) -> None:
        line = entry.to_json() + "\n"
        with self._write_lock, open(self.log_file, "a", encoding="utf-8") as f:
            f.write(line)

    def _now(self) -> str:
        return datetime.now().isoformat()

    def _elapsed_ms(self, start: datetime) -> int:
        return int((datetime.now() - start).total_seconds() * 1000)

    # ==================== Level 1: Phase Logging ====================

    def phase_start(self, phase: str, message: str = "", stats: dict[str, Any] | None = None) -> None:
        """
        Log the start of a phase (Level 1).

        Args:
            phase: Phase name, e.g. "checkout"
            message: Optional message
            stats: Optional context (URL, ref, workdir)
        """
        self._current_phase = phase
        self._phase_start = datetime.now()
        self._step_sequence = 0

        self._write_entry(
            LogEntry(
                level=LogLevel.PHASE,
                phase=phase,
                status=LogStatus.STARTED,
                timestamp=self._now(),
                message=message or f"Starting {phase}",
                stats=stats,
            )
        )

    def phase_complete(self, phase: str, message: str = "", stats: dict[str, Any] | None = None) -> None:
        """Log the completion of a phase (Level 1)."""
        duration = None
        if self._phase_start and self._current_phase == phase:
            duration = self._elapsed_ms(self._phase_start)

        self._write_entry(
            LogEntry(
                level=LogLevel.PHASE,
                phase=phase,
                status=LogStatus.COMPLETED,
                timestamp=self._now(),
                message=message or f"Completed {phase}",
                duration_ms=duration,
                stats=stats,
            )
        )
        self._current_phase = None
        self._phase_start = None

    def phase_error(self, phase: str, error: str, message: str = "") -> None:
        """Log a phase error (Level 1)."""
        duration = None
        if self._phase_start and self._current_phase == phase:
            duration = self._elapsed_ms(self._phase_start)

        self._write_entry(
            LogEntry(
                level=LogLevel.PHASE,
                phase=phase,
                status=LogStatus.ERROR,
                timestamp=self._now(),
                message=message or f"Error in {phase}",
                duration_ms=duration,
                error=error,
            )
        )
        self._current_phase = None
        self._phase_start = None

    # ==================== Level 2: Step Logging ====================

    def step_start(self, step: str, message: str = "") -> StepContext:
        """
        Log the start of a step within a phase (Level 2).

        Returns:
            StepContext for tracking step completion
        """
        self._step_sequence += 1

        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                phase=self._current_phase or "unknown",
                step=step,
                sequence=self._step_sequence,
                status=LogStatus.STARTED,
                timestamp=self._now(),
                message=message or f"Starting {step}",
            )
        )
        return StepContext(self, step, self._step_sequence)

    def step_complete(
        self,
        step: str,
        sequence: int,
        message: str = "",
        duration_ms: int | None = None,
        stats: dict[str, Any] | None = None,
    ) -> None:
        """Log the completion of a step (Level 2)."""
        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                phase=self._current_phase or "unknown",
                step=step,
                sequence=sequence,
                status=LogStatus.COMPLETED,
                timestamp=self._now(),
                message=message or f"Completed {step}",
                duration_ms=duration_ms,
                stats=stats,
            )
        )

    def step_error(
        self,
        step: str,
        sequence: int,
        error: str,
        message: str = "",
        duration_ms: int | None = None,
    ) -> None:
        """Log a step error (Level 2)."""
        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                phase=self._current_phase or "unknown",
                step=step,
                sequence=sequence,
                status=LogStatus.ERROR,
                timestamp=self._now(),
                message=message or f"Error in {step}",
                duration_ms=duration_ms,
                error=error,
            )
        )

    def step_skipped(self, step: str, message: str = "") -> None:
        """Log a skipped step (Level 2)."""
        self._step_sequence += 1

        self._write_entry(
            LogEntry(
                level=LogLevel.STEP,
                phase=self._current_phase or "unknown",
                step=step,
                sequence=self._step_sequence,
                status=LogStatus.SKIPPED,
                timestamp=self._now(),
                message=message or f"Skipped {step}",
            )
        )

    # ==================== Reading ====================

    def get_log_path(self) -> Path:
        return self.log_file

    def read_logs(self, level: int | None = None) -> list[dict[str, Any]]:
        """
        Read all log entries of this run.

        Args:
            level: Optional maximum level to include

        Returns:
            List of log entry dicts
        """
        if not self.log_file.exists():
            return []
        return _read_jsonl(self.log_file, level)


class StepContext:
    """
    Context manager for step logging.

    Usage:
        with run_logger.step_start("fetch") as step:
            run_fetch()
        # completes on normal exit, records the exception on error
    """

    def __init__(self, logger: RunLogger, step: str, sequence: int):
        self.logger = logger
        self.step = step
        self.sequence = sequence
        self.start_time = datetime.now()
        self.stats: dict[str, Any] = {}
        self._completed = False

    def __enter__(self) -> StepContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._completed:
            return
        if exc_type is not None:
            self.error(str(exc_val))
        else:
            self.complete()

    def _elapsed_ms(self) -> int:
        return int((datetime.now() - self.start_time).total_seconds() * 1000)

    def complete(self, message: str = "") -> None:
        self.logger.step_complete(
            step=self.step,
            sequence=self.sequence,
            message=message,
            duration_ms=self._elapsed_ms(),
            stats=self.stats or None,
        )
        self._completed = True

    def error(self, error: str, message: str = "") -> None:
        self.logger.step_error(
            step=self.step,
            sequence=self.sequence,
            error=error,
            message=message,
            duration_ms=self._elapsed_ms(),
        )
        self._completed = True


def _read_jsonl(path: Path, level: int | None) -> list[dict[str, Any]]:
    entries = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            entry = json.loads(line)
            if level is None or entry.get("level", 0) <= level:
                entries.append(entry)
    return entries


def read_run_logs(logs_dir: str | Path, run_id: str | None = None, level: int | None = None) -> list[dict[str, Any]]:
    """
    Read log entries for a run, or for every run under ``logs_dir``.

    Args:
        logs_dir: Base directory for logs
        run_id: Restrict to this run
        level: Optional maximum level to include

    Returns:
        List of log entry dicts, oldest file first
    """
    base = Path(logs_dir).expanduser()
    pattern = f"run_{run_id}/log_*.jsonl" if run_id is not None else "run_*/log_*.jsonl"
    entries: list[dict[str, Any]] = []
    for log_file in sorted(base.glob(pattern)):
        entries.extend(_read_jsonl(log_file, level))
    return entries


# =============================================================================
# Bridge from standard logging
# =============================================================================


class RunLoggerHandler(logging.Handler):
    """
    Forwards standard logging records into a RunLogger as step entries.

    Warnings and errors raised deep in adapters then show up next to the
    step they happened in.
    """

    def __init__(self, run_logger: RunLogger, min_level: int = logging.WARNING):
        super().__init__(level=min_level)
        self.run_logger = run_logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            status = LogStatus.ERROR if record.levelno >= logging.ERROR else LogStatus.COMPLETED
            entry = LogEntry(
                level=LogLevel.STEP,
                phase=self.run_logger._current_phase or "unknown",
                step=record.name,
                status=status,
                timestamp=datetime.fromtimestamp(record.created).isoformat(),
                message=self.format(record),
                error=record.getMessage() if status == LogStatus.ERROR else None,
            )
            self.run_logger._write_entry(entry)
        except Exception:
            self.handleError(record)


def setup_logging_bridge(
    run_logger: RunLogger,
    min_level: int = logging.WARNING,
    logger_names: list[str] | None = None,
) -> RunLoggerHandler:
    """
    Set up a bridge from standard Python logging to RunLogger.

    Args:
        run_logger: The RunLogger to forward messages to
        min_level: Minimum level to forward (default: WARNING)
        logger_names: Specific logger names to bridge (default: all via root)

    Returns:
        The handler (for later removal)
    """
    handler = RunLoggerHandler(run_logger, min_level)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    if logger_names:
        for name in logger_names:
            logging.getLogger(name).addHandler(handler)
    else:
        logging.getLogger().addHandler(handler)

    return handler


def teardown_logging_bridge(handler: RunLoggerHandler, logger_names: list[str] | None = None) -> None:
    """Remove a previously set up logging bridge."""
    if logger_names:
        for name in logger_names:
            logging.getLogger(name).removeHandler(handler)
    else:
        logging.getLogger().removeHandler(handler)
