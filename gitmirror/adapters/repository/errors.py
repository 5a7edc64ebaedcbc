"""
Translation of failed git invocations into typed errors.

All stderr matching lives in the rule table held by :class:`ErrorTranslator`.
Git's wording changes between versions, so the patterns come from settings
(``GITMIRROR_PATTERN_*``) and the table can be inspected and replaced.

Usage:
    translator = ErrorTranslator.from_patterns(
        ref_not_found=r"pathspec '(.+)' did not match any file",
        single_revision="Needed a single revision",
    )
    error = translator.translate(outcome, GitStep.CHECKOUT)
    raise error
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from gitmirror.common.exceptions import (
    ORIGIN_PREFIX_HINT,
    CheckoutFailed,
    CommandFailed,
    FetchFailed,
    InitializationFailed,
    RefNotFound,
    RepositoryError,
)

from .models import CommandOutcome, GitStep

logger = logging.getLogger(__name__)

DEFAULT_REF_NOT_FOUND_PATTERN = r"pathspec '(.+)' did not match any file"
DEFAULT_SINGLE_REVISION_PATTERN = r"Needed a single revision"

_STEP_ERRORS: dict[GitStep, type[CommandFailed]] = {
    GitStep.INIT: InitializationFailed,
    GitStep.FETCH: FetchFailed,
    GitStep.CHECKOUT: CheckoutFailed,
    GitStep.VERIFY: CommandFailed,
    GitStep.COMMAND: CommandFailed,
}


@dataclass(frozen=True)
class ErrorRule:
    """One row of the classification table.

    ``steps`` limits the rule to invocations of those steps; ``None`` applies
    it everywhere. When ``ref_group`` is set the ref name is taken from that
    capture group, otherwise from the ref the caller was resolving. ``hint``
    is appended to the resulting error message.
    """

    name: str
    pattern: re.Pattern[str]
    steps: frozenset[GitStep] | None = None
    ref_group: int | None = None
    hint: str | None = None

    def applies_to(self, step: GitStep) -> bool:
        return self.steps is None or step in self.steps


class ErrorTranslator:
    """Classifies failed invocations by matching stderr against a rule table."""

    def __init__(self, rules: Iterable[ErrorRule]):
        self._rules = tuple(rules)

    @classmethod
    def from_patterns(
        cls,
        ref_not_found: str = DEFAULT_REF_NOT_FOUND_PATTERN,
        single_revision: str = DEFAULT_SINGLE_REVISION_PATTERN,
    ) -> ErrorTranslator:
        return cls(
            [
                ErrorRule(
                    name="pathspec",
                    pattern=re.compile(ref_not_found),
                    ref_group=1,
                ),
                ErrorRule(
                    name="single_revision",
                    pattern=re.compile(single_revision),
                    steps=frozenset({GitStep.VERIFY}),
                    hint=ORIGIN_PREFIX_HINT,
                ),
            ]
        )

    @property
    def rules(self) -> tuple[ErrorRule, ...]:
        return self._rules

    def match(self, stderr: str, step: GitStep, ref: str | None = None) -> RefNotFound | None:
        """Return a ``RefNotFound`` if any rule matches, else None."""
        for rule in self._rules:
            if not rule.applies_to(step):
                continue
            found = rule.pattern.search(stderr)
            if not found:
                continue
            name = found.group(rule.ref_group) if rule.ref_group else ref
            if name is None:
                continue
            logger.debug("Rule '%s' matched stderr for step %s", rule.name, step.value)
            return RefNotFound(name, rule.hint)
        return None

    def translate(
        self, outcome: CommandOutcome, step: GitStep = GitStep.COMMAND, ref: str | None = None
    ) -> RepositoryError:
        """Classify a failed outcome. Never returns None: unmatched failures
        become the step's ``CommandFailed`` subclass."""
        stderr = outcome.stderr_text
        refined = self.match(stderr, step, ref)
        if refined is not None:
            return refined

        error_cls = _STEP_ERRORS.get(step, CommandFailed)
        return error_cls(
            outcome.invocation.executable,
            outcome.invocation.argv,
            stderr,
            outcome.exit_status,
        )

    def translate_spawn_failure(
        self, argv: tuple[str, ...], exc: OSError, step: GitStep = GitStep.COMMAND
    ) -> CommandFailed:
        """A process that never started has no exit status."""
        error_cls = _STEP_ERRORS.get(step, CommandFailed)
        return error_cls(argv[0] if argv else "", argv, str(exc), None)
