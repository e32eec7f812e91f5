"""
CrossDoc Engine

Facade over the whole pipeline:

    normalize -> extract -> evaluate rules concurrently -> aggregate

A run is deterministic and has no side effects besides logging. ``run``
never raises: structural problems become issues, a failing rule is isolated
and reported as a diagnostic, and an unexpected failure elsewhere yields a
well-formed result carrying a single diagnostic.
"""

from __future__ import annotations

import asyncio
import logging
from itertools import chain
from typing import Any, Iterable, Mapping

from crossdoc.aggregation import build_result
from crossdoc.config import Settings, get_settings
from crossdoc.core.enums import IssueCode
from crossdoc.core.exceptions import RuleEvaluationError
from crossdoc.core.schemas import CrossDocBundle, Issue, ValidationResult
from crossdoc.extraction.extractor import extract_bundle
from crossdoc.normalization.normalizer import normalize_bundle
from crossdoc.observability.tracer import SpanStatus, Tracer
from crossdoc.rules import default_rules
from crossdoc.rules.registry import EngineOptions, Rule, RuleContext, RuleSet, evaluate_rule
from crossdoc.similarity.scorer import SimilarityScorer, SimilarityThresholds
from crossdoc.statistics.test_families import TestFamilyLookup, default_test_family_lookup

logger = logging.getLogger(__name__)


class CrossDocEngine:
    """
    Cross-document consistency engine.

    Immutable after construction and safe to share between concurrent runs.

    Usage:
        engine = CrossDocEngine.create_default()
        result = await engine.run({"ib": {...}, "protocol": {...}, "sap": {...}})
        print(result.summary.critical)
    """

    def __init__(
        self,
        rules: RuleSet | Iterable[Rule],
        thresholds: SimilarityThresholds | None = None,
        test_lookup: TestFamilyLookup | None = None,
        options: EngineOptions | None = None,
    ) -> None:
        self._rules = rules if isinstance(rules, RuleSet) else RuleSet(rules)
        self._scorer = SimilarityScorer(thresholds)
        self._test_lookup = test_lookup or default_test_family_lookup
        self._options = options or EngineOptions()

    @classmethod
    def create_default(cls, settings: Settings | None = None) -> "CrossDocEngine":
        """Engine with the default rules, configured from settings."""
        settings = settings or get_settings()
        return cls(
            default_rules(),
            thresholds=SimilarityThresholds.from_settings(settings),
            options=EngineOptions.from_settings(settings),
        )

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def thresholds(self) -> SimilarityThresholds:
        return self._scorer.thresholds

    @property
    def options(self) -> EngineOptions:
        return self._options

    async def run(
        self, bundle: CrossDocBundle | Mapping[str, Any] | None
    ) -> ValidationResult:
        """Validate a bundle. Never raises."""
        tracer = Tracer("crossdoc.engine")
        try:
            with tracer.span("run"):
                return await self._run(bundle, tracer)
        except Exception as e:
            logger.error(f"Validation aborted: {type(e).__name__}: {e}", exc_info=True)
            return build_result(
                [
                    Issue.from_catalog(
                        IssueCode.RULE_EVALUATION_FAILED,
                        "Validation aborted by an internal error; no findings were produced",
                        details=f"{type(e).__name__}: {e}",
                        metadata={"stage": "engine", "error_type": type(e).__name__},
                    )
                ]
            )

    async def _run(
        self, bundle: CrossDocBundle | Mapping[str, Any] | None, tracer: Tracer
    ) -> ValidationResult:
        with tracer.span("normalize") as span:
            normalized = normalize_bundle(bundle)
            span.set_attribute("issue_count", len(normalized.issues))

        with tracer.span("extract"):
            extracted, extraction_issues = extract_bundle(
                normalized.bundle, normalized.unusable, tracer
            )

        ctx = RuleContext(
            bundle=normalized.bundle,
            extracted=extracted,
            scorer=self._scorer,
            test_lookup=self._test_lookup,
            options=self._options,
        )

        with tracer.span("rules") as span:
            if self._options.parallel_rules:
                outputs = await asyncio.gather(
                    *(self._evaluate(rule, ctx, tracer) for rule in self._rules)
                )
            else:
                outputs = [await self._evaluate(rule, ctx, tracer) for rule in self._rules]
            span.set_attribute("rule_count", len(self._rules))

        with tracer.span("aggregate") as span:
            result = build_result(
                chain(normalized.issues, extraction_issues, chain.from_iterable(outputs))
            )
            span.set_attribute("total", result.summary.total)

        logger.info(
            f"Validated bundle: {result.summary.total} issue(s), "
            f"{result.summary.critical} critical"
        )
        return result

    async def _evaluate(self, rule: Rule, ctx: RuleContext, tracer: Tracer) -> list[Issue]:
        """Evaluate one rule, converting its failure into a diagnostic."""
        with tracer.span(f"rule.{rule.name}") as span:
            try:
                issues = await evaluate_rule(rule, ctx)
            except Exception as e:
                error = RuleEvaluationError(rule.name, e)
                logger.warning(error.message)
                logger.debug(f"Traceback for rule {rule.name}", exc_info=True)
                span.set_status(SpanStatus.ERROR, error.message)
                if not self._options.emit_rule_diagnostics:
                    return []
                return [
                    Issue.from_catalog(
                        IssueCode.RULE_EVALUATION_FAILED,
                        f"Rule '{rule.name}' failed and was skipped",
                        details=error.message,
                        metadata=dict(error.details),
                    )
                ]
            span.set_attribute("issue_count", len(issues))
            return issues
