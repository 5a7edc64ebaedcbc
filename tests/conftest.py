"""
Shared pytest fixtures for gitmirror tests.

Fixtures are organized by kind:
- fakes: scripted process executors, no git needed
- git: real repositories built with the git executable (skipped without git)
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

from gitmirror.adapters.repository.models import CommandInvocation, CommandOutcome
from gitmirror.services.config_models import (
    AppSettings,
    ErrorPatternSettings,
    GitSettings,
    MirrorSettings,
)

# =============================================================================
# Fake executor
# =============================================================================


Responder = Callable[[CommandInvocation], CommandOutcome]


class FakeExecutor:
    """Executor returning scripted outcomes and recording every invocation.

    Rules are matched on the git subcommand (first argument that does not
    start with ``--``). Unmatched commands succeed with empty output.
    ``init`` creates the directory's ``config`` file and ``remote add``
    writes the origin section, so mirror state detection behaves like git.
    """

    def __init__(self):
        self.calls: list[CommandInvocation] = []
        self.verbose_flags: list[bool] = []
        self.envs: list[dict[str, str]] = []
        self._rules: dict[str, Responder] = {}
        self.raise_on: dict[str, OSError] = {}

    def fail(self, subcommand: str, stderr: str = "", exit_status: int = 128) -> None:
        self._rules[subcommand] = lambda inv: CommandOutcome(inv, exit_status, b"", stderr.encode())

    def respond(self, subcommand: str, responder: Responder) -> None:
        self._rules[subcommand] = responder

    def clear(self, subcommand: str) -> None:
        self._rules.pop(subcommand, None)

    @property
    def subcommands(self) -> list[str]:
        return [_subcommand(call.argv) for call in self.calls]

    def execute(
        self,
        argv: Sequence[str],
        cwd: Path,
        verbose: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> CommandOutcome:
        invocation = CommandInvocation.of(argv, cwd)
        self.calls.append(invocation)
        self.verbose_flags.append(verbose)
        self.envs.append(dict(env or {}))
        sub = _subcommand(invocation.argv)

        if sub in self.raise_on:
            raise self.raise_on[sub]
        if sub in self._rules:
            return self._rules[sub](invocation)

        if sub == "init":
            (Path(cwd) / "config").write_text("[core]\n\tbare = true\n")
        elif sub == "remote":
            url = invocation.argv[-1]
            with open(Path(cwd) / "config", "a") as f:
                f.write(f'[remote "origin"]\n\turl = {url}\n')
        return CommandOutcome(invocation, 0, b"", b"")


def _subcommand(argv: Sequence[str]) -> str:
    for arg in argv[1:]:
        if not arg.startswith("--"):
            return arg
    return ""


@pytest.fixture
def fake_executor():
    """A fresh FakeExecutor."""
    return FakeExecutor()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment, storing mirrors under tmp_path."""
    return MirrorSettings(
        git=GitSettings(_env_file=None, executable="git", repo_storage=str(tmp_path / "mirrors")),  # type: ignore[call-arg]
        patterns=ErrorPatternSettings(_env_file=None),  # type: ignore[call-arg]
        app=AppSettings(_env_file=None),  # type: ignore[call-arg]
    )


# =============================================================================
# Real git repositories
# =============================================================================

GIT = shutil.which("git")

requires_git = pytest.mark.skipif(GIT is None, reason="git executable not available")

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def run_git(cwd: Path, *args: str) -> str:
    env = {**os.environ, **_GIT_ENV}
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=env, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def commit_files(repo: Path, files: dict[str, str], message: str) -> str:
    """Replace the tracked tree with ``files`` and commit; returns the SHA."""
    run_git(repo, "rm", "-r", "-q", "--ignore-unmatch", ".")
    for name, content in files.items():
        target = repo / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    run_git(repo, "add", "-A")
    run_git(repo, "commit", "-q", "-m", message)
    return run_git(repo, "rev-parse", "HEAD")


@pytest.fixture
def origin_repo(tmp_path):
    """A local origin with branches ``main`` and ``feature-x`` and tag ``v1``.

    main:      README.md, main_only.txt
    feature-x: README.md, feature.txt
    """
    repo = tmp_path / "origin"
    repo.mkdir()
    run_git(repo, "init", "-q")
    run_git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    commit_files(repo, {"README.md": "main readme\n", "main_only.txt": "main\n"}, "main")
    run_git(repo, "tag", "v1")
    run_git(repo, "checkout", "-q", "-b", "feature-x")
    commit_files(repo, {"README.md": "feature readme\n", "feature.txt": "feature\n"}, "feature")
    run_git(repo, "checkout", "-q", "main")
    return repo
