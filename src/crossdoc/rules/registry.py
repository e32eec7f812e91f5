"""
Rule Registry

A rule is a frozen record tagged with the issue code it owns. Rules are
plain functions of a RuleContext returning a list of issues, sync or async.
A RuleSet is an immutable, ordered collection; evaluation order and output
order follow registration order.

Rules never read each other's output. A rule's optional ``fixer`` is run on
each issue the rule emits and its suggestions are attached to the issue.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Sequence

from crossdoc.config import Settings
from crossdoc.core.enums import IssueCode
from crossdoc.core.exceptions import ConfigurationError
from crossdoc.core.schemas import CrossDocBundle, Issue, Suggestion
from crossdoc.extraction.extractor import ExtractedBundle
from crossdoc.similarity.scorer import SimilarityScorer
from crossdoc.statistics.test_families import TestFamilyLookup, default_test_family_lookup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineOptions:
    """Behaviour switches shared by the engine and its rules."""

    parallel_rules: bool = True
    emit_rule_diagnostics: bool = True
    report_missing_tests: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineOptions":
        s = settings.engine
        return cls(
            parallel_rules=s.parallel_rules,
            emit_rule_diagnostics=s.emit_rule_diagnostics,
            report_missing_tests=s.report_missing_tests,
        )


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may read. Shared, read-only, by all rules of a run."""

    bundle: CrossDocBundle
    extracted: ExtractedBundle
    scorer: SimilarityScorer
    test_lookup: TestFamilyLookup = default_test_family_lookup
    options: EngineOptions = EngineOptions()


RuleResult = list[Issue] | Awaitable[list[Issue]]
RuleFn = Callable[[RuleContext], RuleResult]
FixerFn = Callable[[Issue, RuleContext], Sequence[Suggestion]]


@dataclass(frozen=True)
class Rule:
    """A registered consistency check."""

    code: IssueCode
    name: str
    evaluate: RuleFn
    fixer: FixerFn | None = None
    description: str = ""


class RuleSet:
    """Immutable ordered collection of uniquely named rules."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)
        names = [r.name for r in self._rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(
                "Duplicate rule names", {"duplicates": duplicates}
            )

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def __repr__(self) -> str:
        return f"RuleSet({[r.name for r in self._rules]})"

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def names(self) -> list[str]:
        return [r.name for r in self._rules]

    def get(self, name: str) -> Rule | None:
        return next((r for r in self._rules if r.name == name), None)

    def with_rule(self, rule: Rule) -> "RuleSet":
        """New set with ``rule`` appended."""
        return RuleSet((*self._rules, rule))

    def without(self, *names: str) -> "RuleSet":
        """New set without the named rules."""
        return RuleSet(r for r in self._rules if r.name not in names)


def _attach(issue: Issue, suggestions: Sequence[Suggestion]) -> Issue:
    if not suggestions:
        return issue
    return issue.model_copy(update={"suggestions": issue.suggestions + tuple(suggestions)})


async def evaluate_rule(rule: Rule, ctx: RuleContext) -> list[Issue]:
    """
    Evaluate one rule and attach its fixer's suggestions.

    Exceptions propagate; isolating failures is the caller's job.
    """
    outcome: Any = rule.evaluate(ctx)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    issues = list(outcome or [])
    for issue in issues:
        if not isinstance(issue, Issue):
            raise TypeError(f"rule returned {type(issue).__name__}, expected Issue")

    if rule.fixer is not None:
        issues = [_attach(issue, rule.fixer(issue, ctx)) for issue in issues]

    logger.debug(f"Rule {rule.name}: {len(issues)} issue(s)")
    return issues
