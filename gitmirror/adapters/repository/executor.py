"""
Process execution for git commands.

The repository manager depends on the :class:`CommandExecutor` protocol
only, so tests can hand it a fake that returns scripted outcomes.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO, BinaryIO, Protocol, runtime_checkable

from .models import CommandInvocation, CommandOutcome

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandExecutor(Protocol):
    """Runs a command to completion and reports its outcome."""

    def execute(
        self,
        argv: Sequence[str],
        cwd: Path,
        verbose: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutcome:
        """Run ``argv`` in ``cwd``. ``env`` entries are added to the inherited
        environment.

        Raises:
            OSError: If the process cannot be started.
        """
        ...


class SubprocessExecutor:
    """Default executor backed by :mod:`subprocess`.

    With ``verbose`` set, both output streams are also copied to ``echo``
    (the operator's stderr by default) as they arrive. The captured bytes
    are the same either way.
    """

    def __init__(self, echo: BinaryIO | None = None):
        self._echo = echo

    def execute(
        self,
        argv: Sequence[str],
        cwd: Path,
        verbose: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutcome:
        invocation = CommandInvocation.of(argv, cwd)
        logger.debug("Running %s (cwd=%s)", " ".join(invocation.argv), invocation.cwd)
        full_env = {**os.environ, **env} if env else None

        if not verbose:
            result = subprocess.run(
                list(invocation.argv),
                cwd=invocation.cwd,
                env=full_env,
                capture_output=True,
                check=False,
            )
            return CommandOutcome(invocation, result.returncode, result.stdout, result.stderr)

        return self._execute_streaming(invocation, full_env)

    def _execute_streaming(
        self, invocation: CommandInvocation, env: dict[str, str] | None
    ) -> CommandOutcome:
        echo = self._echo or sys.stderr.buffer
        echo_lock = threading.Lock()
        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []

        with subprocess.Popen(
            list(invocation.argv),
            cwd=invocation.cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        ) as proc:
            assert proc.stdout is not None and proc.stderr is not None
            readers = [
                threading.Thread(
                    target=_pump, args=(proc.stdout, stdout_chunks, echo, echo_lock), daemon=True
                ),
                threading.Thread(
                    target=_pump, args=(proc.stderr, stderr_chunks, echo, echo_lock), daemon=True
                ),
            ]
            for reader in readers:
                reader.start()
            for reader in readers:
                reader.join()
            exit_status = proc.wait()

        return CommandOutcome(
            invocation, exit_status, b"".join(stdout_chunks), b"".join(stderr_chunks)
        )


def _pump(stream: IO[bytes], sink: list[bytes], echo: BinaryIO, lock: threading.Lock) -> None:
    """Copy a pipe into ``sink`` line by line, mirroring each line to ``echo``."""
    for line in iter(stream.readline, b""):
        sink.append(line)
        with lock:
            echo.write(line)
            echo.flush()
