"""Tests for the stderr classification table."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from gitmirror.adapters.repository.errors import ErrorRule, ErrorTranslator
from gitmirror.adapters.repository.models import CommandInvocation, CommandOutcome, GitStep
from gitmirror.common.exceptions import (
    ORIGIN_PREFIX_HINT,
    CheckoutFailed,
    CommandFailed,
    FetchFailed,
    InitializationFailed,
    RefNotFound,
)


def _outcome(stderr: str, *args: str, exit_status: int = 128) -> CommandOutcome:
    invocation = CommandInvocation.of(["/usr/bin/git", *args], Path("/tmp"))
    return CommandOutcome(invocation, exit_status, b"", stderr.encode())


@pytest.fixture
def translator():
    return ErrorTranslator.from_patterns()


class TestRuleTable:
    """Tests for the default rule table."""

    def test_has_two_rules(self, translator):
        """Should expose the pathspec and single revision rules."""
        assert [r.name for r in translator.rules] == ["pathspec", "single_revision"]

    def test_single_revision_limited_to_verify(self, translator):
        """The single revision rule applies to the verify step only."""
        rule = translator.rules[1]
        assert rule.applies_to(GitStep.VERIFY)
        assert not rule.applies_to(GitStep.FETCH)
        assert not rule.applies_to(GitStep.CHECKOUT)

    def test_pathspec_applies_everywhere(self, translator):
        """The pathspec rule has no step restriction."""
        rule = translator.rules[0]
        assert all(rule.applies_to(step) for step in GitStep)


class TestTranslate:
    """Tests for ErrorTranslator.translate."""

    def test_pathspec_on_checkout_is_ref_not_found(self, translator):
        """Should take the ref name from the pathspec message."""
        outcome = _outcome(
            "error: pathspec 'origin/gone' did not match any file(s) known to git",
            "checkout", "-f", "origin/gone",
        )
        error = translator.translate(outcome, GitStep.CHECKOUT)
        assert isinstance(error, RefNotFound)
        assert error.ref == "origin/gone"
        assert error.hint is None

    def test_pathspec_on_fetch_is_ref_not_found(self, translator):
        """The pathspec rule also refines fetch failures."""
        outcome = _outcome("error: pathspec 'x' did not match any file(s) known to git", "fetch")
        error = translator.translate(outcome, GitStep.FETCH)
        assert isinstance(error, RefNotFound)
        assert error.ref == "x"

    def test_single_revision_on_verify(self, translator):
        """Should use the ref being verified and attach the origin/ hint."""
        outcome = _outcome("fatal: Needed a single revision\n", "rev-parse", "--verify", "main")
        error = translator.translate(outcome, GitStep.VERIFY, ref="main")
        assert isinstance(error, RefNotFound)
        assert error.ref == "main"
        assert error.hint == ORIGIN_PREFIX_HINT
        assert "origin/master" in str(error)

    def test_single_revision_outside_verify_not_refined(self, translator):
        """Outside verify the same text stays a command failure."""
        outcome = _outcome("fatal: Needed a single revision\n", "checkout", "main")
        error = translator.translate(outcome, GitStep.CHECKOUT, ref="main")
        assert type(error) is CheckoutFailed

    def test_verify_other_failure_is_command_failed(self, translator):
        """Unmatched verify failures propagate as CommandFailed."""
        outcome = _outcome("fatal: not a git repository", "rev-parse", "--verify", "main")
        error = translator.translate(outcome, GitStep.VERIFY, ref="main")
        assert type(error) is CommandFailed

    @pytest.mark.parametrize(
        "step,expected",
        [
            (GitStep.INIT, InitializationFailed),
            (GitStep.FETCH, FetchFailed),
            (GitStep.CHECKOUT, CheckoutFailed),
            (GitStep.COMMAND, CommandFailed),
        ],
    )
    def test_unmatched_failure_uses_step_error(self, translator, step, expected):
        """Should map each step to its failure type."""
        error = translator.translate(_outcome("fatal: boom", "x"), step)
        assert type(error) is expected

    def test_command_failed_payload(self, translator):
        """Should carry executable, full argv, stderr and exit status verbatim."""
        stderr = "fatal: unable to access 'https://nowhere/': Could not resolve host\n"
        outcome = _outcome(stderr, "fetch", "-f", "origin", exit_status=128)
        error = translator.translate(outcome, GitStep.FETCH)
        assert isinstance(error, FetchFailed)
        assert error.executable == "/usr/bin/git"
        assert error.argv == ["/usr/bin/git", "fetch", "-f", "origin"]
        assert error.stderr == stderr
        assert error.exit_status == 128
        assert "Could not resolve host" in str(error)
        assert "fetch -f origin" in str(error)

    def test_invalid_utf8_stderr(self, translator):
        """Undecodable stderr bytes must not break classification."""
        invocation = CommandInvocation.of(["git", "fetch"], Path("/tmp"))
        outcome = CommandOutcome(invocation, 1, b"", b"fatal: \xff\xfe bad")
        error = translator.translate(outcome, GitStep.FETCH)
        assert isinstance(error, FetchFailed)
        assert "bad" in error.stderr


class TestCustomPatterns:
    """Tests for overridden patterns."""

    def test_custom_ref_pattern(self):
        """Should recognise reworded git messages."""
        translator = ErrorTranslator.from_patterns(ref_not_found=r"no such ref: (\S+)")
        error = translator.translate(_outcome("no such ref: v9", "checkout"), GitStep.CHECKOUT)
        assert isinstance(error, RefNotFound)
        assert error.ref == "v9"

    def test_custom_rule_table(self):
        """Should accept an arbitrary rule table."""
        translator = ErrorTranslator(
            [ErrorRule("unknown-revision", re.compile("unknown revision"), frozenset({GitStep.VERIFY}))]
        )
        error = translator.translate(_outcome("fatal: unknown revision", "rev-parse"), GitStep.VERIFY, ref="abc")
        assert isinstance(error, RefNotFound)
        assert error.ref == "abc"

    def test_empty_table_never_refines(self):
        """With no rules every failure keeps its step type."""
        translator = ErrorTranslator([])
        error = translator.translate(_outcome("fatal: Needed a single revision", "rev-parse"), GitStep.VERIFY, ref="x")
        assert type(error) is CommandFailed


class TestSpawnFailure:
    """Tests for translate_spawn_failure."""

    def test_spawn_failure_has_no_exit_status(self, translator):
        """Should carry the OS error text and no exit status."""
        error = translator.translate_spawn_failure(
            ("/missing/git", "fetch"), FileNotFoundError(2, "No such file or directory"), GitStep.FETCH
        )
        assert isinstance(error, FetchFailed)
        assert error.exit_status is None
        assert error.executable == "/missing/git"
        assert "No such file or directory" in error.stderr
        assert "could not be started" in str(error)
