"""
Protocol <-> SAP Rules

Consistency between the Protocol and the Statistical Analysis Plan: primary
endpoints, statistical test choice, analysis populations, multiplicity and
the sample size driver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crossdoc.autofix.generator import suggest_endpoint_fix, suggest_test_fix
from crossdoc.core.enums import AlignmentTier, DocumentType, IssueCode, ObjectiveType, Severity
from crossdoc.core.schemas import AnalysisPopulation, Issue, IssueLocation
from crossdoc.extraction.extractor import EndpointRecord, ProtocolFields, SAPFields
from crossdoc.extraction.text import canonicalize, has_text
from crossdoc.rules.registry import Rule, RuleContext
from crossdoc.similarity.scorer import SimilarityScorer
from crossdoc.statistics.test_families import canonical_test_name

logger = logging.getLogger(__name__)

NAME_WEIGHT = 0.6
DESCRIPTION_WEIGHT = 0.4


# =============================================================================
# ENDPOINT MATCHING
# =============================================================================


@dataclass(frozen=True)
class EndpointMatch:
    """A Protocol primary endpoint paired with its SAP restatement."""

    protocol: EndpointRecord
    sap: EndpointRecord
    score: float
    by_reference: bool
    ambiguous: bool = False


def endpoint_score(
    scorer: SimilarityScorer, a: EndpointRecord, b: EndpointRecord
) -> float | None:
    """
    Weighted name/description similarity.

    Falls back to whichever of the two fields both endpoints carry; None when
    they share neither.
    """
    names = has_text(a.name) and has_text(b.name)
    descriptions = has_text(a.description) and has_text(b.description)
    if names and descriptions:
        return (
            NAME_WEIGHT * scorer.score(a.name, b.name)
            + DESCRIPTION_WEIGHT * scorer.score(a.description, b.description)
        )
    if names:
        return scorer.score(a.name, b.name)
    if descriptions:
        return scorer.score(a.description, b.description)
    return None


def match_primary_endpoints(
    scorer: SimilarityScorer, protocol: ProtocolFields, sap: SAPFields
) -> list[EndpointMatch]:
    """
    Pair Protocol primary endpoints with SAP primary endpoints.

    An explicit ``endpointId`` reference wins. Remaining endpoints are paired
    greedily by descending similarity among SAP entries that reference no
    Protocol endpoint. Results follow Protocol order.

    A pairing is ambiguous when the Protocol endpoint has a runner-up SAP
    candidate within the ambiguity margin, or when another unmatched Protocol
    endpoint scores within that margin against the chosen SAP entry.
    """
    matches: dict[str, EndpointMatch] = {}
    unmatched: list[EndpointRecord] = []

    for endpoint in protocol.primary_endpoints:
        counterpart = sap.primary_by_protocol_ref.get(endpoint.id)
        if counterpart is None:
            unmatched.append(endpoint)
            continue
        score = endpoint_score(scorer, endpoint, counterpart)
        if score is not None:
            matches[endpoint.id] = EndpointMatch(endpoint, counterpart, score, by_reference=True)

    pool = [
        s
        for s in sap.primary_endpoints.values()
        if not (s.protocol_ref and s.protocol_ref in protocol.endpoints)
    ]

    pairs: list[tuple[float, int, int, EndpointRecord, EndpointRecord]] = []
    scores: dict[tuple[str, str], float] = {}
    ambiguous: dict[str, bool] = {}
    for endpoint in unmatched:
        scored = []
        for candidate in pool:
            score = endpoint_score(scorer, endpoint, candidate)
            if score is None:
                continue
            scored.append((candidate.id, score))
            scores[endpoint.id, candidate.id] = score
            pairs.append((score, endpoint.index, candidate.index, endpoint, candidate))
        ambiguous[endpoint.id] = scorer.rank(scored).ambiguous

    margin = scorer.thresholds.ambiguity_margin
    pairs.sort(key=lambda p: (-p[0], p[1], p[2]))
    taken: set[str] = set()
    for score, _, _, endpoint, candidate in pairs:
        if endpoint.id in matches or candidate.id in taken:
            continue
        taken.add(candidate.id)
        # Another Protocol endpoint claiming this SAP entry about as well
        contested = any(
            scores.get((other.id, candidate.id), -1.0) >= score - margin
            for other in unmatched
            if other.id != endpoint.id
        )
        matches[endpoint.id] = EndpointMatch(
            endpoint,
            candidate,
            score,
            by_reference=False,
            ambiguous=ambiguous[endpoint.id] or contested,
        )

    return sorted(matches.values(), key=lambda m: m.protocol.index)


def check_primary_endpoint_drift(ctx: RuleContext) -> list[Issue]:
    """Each Protocol primary endpoint against its SAP primary endpoint."""
    protocol, sap = ctx.extracted.protocol, ctx.extracted.sap
    if protocol is None or sap is None:
        return []

    issues: list[Issue] = []
    for match in match_primary_endpoints(ctx.scorer, protocol, sap):
        tier = ctx.scorer.classify(match.score)
        if tier is AlignmentTier.ALIGNED:
            continue

        severity = Severity.CRITICAL if tier is AlignmentTier.MISMATCH else Severity.ERROR
        issues.append(
            Issue.from_catalog(
                IssueCode.PRIMARY_ENDPOINT_DRIFT,
                f"SAP primary endpoint '{match.sap.label}' differs from Protocol "
                f"primary endpoint '{match.protocol.label}'",
                severity=severity,
                details=f"Similarity {match.score:.0%} ({tier.value})",
                locations=[
                    IssueLocation(
                        document=DocumentType.PROTOCOL,
                        document_id=protocol.document_id,
                        section="endpoints",
                        record_id=match.protocol.id,
                    ),
                    IssueLocation(
                        document=DocumentType.SAP,
                        document_id=sap.document_id,
                        section="primaryEndpoints",
                        record_id=match.sap.id,
                    ),
                ],
                metadata={
                    "score": round(match.score, 4),
                    "tier": tier.value,
                    "protocol_endpoint_id": match.protocol.id,
                    "sap_endpoint_id": match.sap.id,
                    "matched_by": "reference" if match.by_reference else "similarity",
                    "ambiguous": match.ambiguous,
                },
            )
        )
    return issues


# =============================================================================
# STATISTICAL TESTS
# =============================================================================


def resolve_test_endpoint(
    endpoint_id: str | None, protocol: ProtocolFields, sap: SAPFields
) -> EndpointRecord | None:
    """Protocol endpoint a SAP test refers to, directly or through a SAP endpoint."""
    if not endpoint_id:
        return None
    if endpoint_id in protocol.endpoints:
        return protocol.endpoints[endpoint_id]
    sap_endpoint = sap.endpoints_by_id.get(endpoint_id)
    if sap_endpoint is not None and sap_endpoint.protocol_ref:
        return protocol.endpoints.get(sap_endpoint.protocol_ref)
    return None


def check_test_selection(ctx: RuleContext) -> list[Issue]:
    """
    Assigned statistical tests must suit the endpoint data type.

    Also reports tests that reference no known endpoint and, when enabled,
    Protocol primary endpoints that have no test at all.
    """
    protocol, sap = ctx.extracted.protocol, ctx.extracted.sap
    if protocol is None or sap is None:
        return []

    issues: list[Issue] = []
    covered: set[str] = set()

    for test in sap.tests:
        location = IssueLocation(
            document=DocumentType.SAP,
            document_id=sap.document_id,
            section="statisticalTests",
            record_id=test.endpoint_id or f"#{test.index}",
            field="test",
        )
        endpoint = resolve_test_endpoint(test.endpoint_id, protocol, sap)
        if endpoint is None:
            issues.append(
                Issue.from_catalog(
                    IssueCode.TEST_ENDPOINT_UNRESOLVED,
                    f"Statistical test '{test.test or '(unnamed)'}' references unknown "
                    f"endpoint '{test.endpoint_id or '(none)'}'",
                    locations=[location],
                    metadata={"test_endpoint_id": test.endpoint_id, "test": test.test},
                )
            )
            continue

        if not test.test:
            continue
        covered.add(endpoint.id)

        if endpoint.data_type is None:
            continue
        family = ctx.test_lookup(endpoint.data_type)
        if family is None or family.accepts(test.test):
            continue

        issues.append(
            Issue.from_catalog(
                IssueCode.TEST_MISMATCH,
                f"'{test.test}' is not appropriate for {endpoint.data_type.value} "
                f"endpoint '{endpoint.label}'",
                details=f"Expected one of: {', '.join(sorted(family.tests))}",
                locations=[
                    location,
                    IssueLocation(
                        document=DocumentType.PROTOCOL,
                        document_id=protocol.document_id,
                        section="endpoints",
                        record_id=endpoint.id,
                        field="dataType",
                    ),
                ],
                metadata={
                    "protocol_endpoint_id": endpoint.id,
                    "test_endpoint_id": test.endpoint_id,
                    "data_type": endpoint.data_type.value,
                    "test": test.test,
                    "canonical_test": canonical_test_name(test.test),
                    "expected_tests": sorted(family.tests),
                },
            )
        )

    if ctx.options.report_missing_tests:
        for endpoint in protocol.primary_endpoints:
            if endpoint.data_type is None or endpoint.id in covered:
                continue
            issues.append(
                Issue.from_catalog(
                    IssueCode.TEST_MISSING,
                    f"Primary endpoint '{endpoint.label}' has no statistical test in the SAP",
                    locations=[
                        IssueLocation(
                            document=DocumentType.PROTOCOL,
                            document_id=protocol.document_id,
                            section="endpoints",
                            record_id=endpoint.id,
                        ),
                        IssueLocation(
                            document=DocumentType.SAP,
                            document_id=sap.document_id,
                            section="statisticalTests",
                        ),
                    ],
                    metadata={
                        "protocol_endpoint_id": endpoint.id,
                        "data_type": endpoint.data_type.value,
                    },
                )
            )

    return issues


# =============================================================================
# ANALYSIS POPULATIONS
# =============================================================================

_POPULATION_CODES = {
    "fas": "FAS",
    "full analysis set": "FAS",
    "full analysis population": "FAS",
    "itt": "FAS",
    "intent to treat": "FAS",
    "intention to treat": "FAS",
    "mitt": "MITT",
    "modified intent to treat": "MITT",
    "modified intention to treat": "MITT",
    "pp": "PPS",
    "pps": "PPS",
    "per protocol": "PPS",
    "per protocol set": "PPS",
    "per protocol population": "PPS",
    "saf": "SAF",
    "ss": "SAF",
    "safety": "SAF",
    "safety set": "SAF",
    "safety population": "SAF",
    "safety analysis set": "SAF",
}


def population_code(population: AnalysisPopulation) -> str | None:
    """Canonical code of an analysis population ('Per protocol' -> 'PPS')."""
    for label in (population.abbreviation, population.name):
        key = canonicalize(label).replace("-", " ")
        if key in _POPULATION_CODES:
            return _POPULATION_CODES[key]
    label = canonicalize(population.label)
    return label.upper() if label else None


def check_analysis_populations(ctx: RuleContext) -> list[Issue]:
    """Protocol and SAP should define the same analysis populations."""
    protocol, sap = ctx.extracted.protocol, ctx.extracted.sap
    if protocol is None or sap is None:
        return []

    sides = {
        DocumentType.PROTOCOL: (protocol.document_id, protocol.populations),
        DocumentType.SAP: (sap.document_id, sap.populations),
    }
    codes = {
        doc: {c for c in map(population_code, pops) if c}
        for doc, (_, pops) in sides.items()
    }
    if not codes[DocumentType.PROTOCOL] or not codes[DocumentType.SAP]:
        return []

    issues: list[Issue] = []
    for doc, other in (
        (DocumentType.PROTOCOL, DocumentType.SAP),
        (DocumentType.SAP, DocumentType.PROTOCOL),
    ):
        for code in sorted(codes[doc] - codes[other]):
            issues.append(
                Issue.from_catalog(
                    IssueCode.ANALYSIS_POPULATION_INCONSISTENT,
                    f"Analysis population {code} is defined in the {doc.value} "
                    f"but not in the {other.value}",
                    locations=[
                        IssueLocation(
                            document=doc,
                            document_id=sides[doc][0],
                            section="analysisPopulations",
                        )
                    ],
                    metadata={"population": code, "present_in": doc.value},
                )
            )
    return issues


# =============================================================================
# MULTIPLICITY & SAMPLE SIZE
# =============================================================================


def check_multiplicity(ctx: RuleContext) -> list[Issue]:
    """More than one primary endpoint requires a multiplicity strategy."""
    protocol, sap = ctx.extracted.protocol, ctx.extracted.sap
    if protocol is None or sap is None:
        return []

    primaries = protocol.primary_endpoints
    if len(primaries) <= 1 or sap.multiplicity_strategy:
        return []

    return [
        Issue.from_catalog(
            IssueCode.MULTIPLICITY_STRATEGY_MISSING,
            f"{len(primaries)} primary endpoints but no multiplicity strategy in the SAP",
            details="Multiple primary endpoints require control of the family-wise error rate",
            locations=[
                IssueLocation(
                    document=DocumentType.SAP,
                    document_id=sap.document_id,
                    field="multiplicityStrategy",
                )
            ],
            metadata={"primary_endpoint_ids": [e.id for e in primaries]},
        )
    ]


def _drives_primary(ctx: RuleContext, driver: str, protocol: ProtocolFields, sap: SAPFields) -> bool:
    endpoint = resolve_test_endpoint(driver, protocol, sap)
    if endpoint is not None:
        return endpoint.type is ObjectiveType.PRIMARY

    for primary in protocol.primary_endpoints:
        for text in (primary.name, primary.description):
            if has_text(text) and ctx.scorer.classify(
                ctx.scorer.score(driver, text)
            ) is AlignmentTier.ALIGNED:
                return True
    return False


def check_sample_size_driver(ctx: RuleContext) -> list[Issue]:
    """The endpoint driving the sample size must be a Protocol primary endpoint."""
    protocol, sap = ctx.extracted.protocol, ctx.extracted.sap
    if protocol is None or sap is None:
        return []

    driver = sap.sample_size_driver
    if not has_text(driver) or not protocol.primary_endpoints:
        return []
    if _drives_primary(ctx, driver, protocol, sap):
        return []

    return [
        Issue.from_catalog(
            IssueCode.SAMPLE_SIZE_DRIVER_MISMATCH,
            f"Sample size is driven by '{driver}', which is not a Protocol primary endpoint",
            locations=[
                IssueLocation(
                    document=DocumentType.SAP,
                    document_id=sap.document_id,
                    field="sampleSizeDriverEndpoint",
                ),
                IssueLocation(
                    document=DocumentType.PROTOCOL,
                    document_id=protocol.document_id,
                    section="endpoints",
                ),
            ],
            metadata={
                "driver": driver,
                "primary_endpoint_ids": [e.id for e in protocol.primary_endpoints],
            },
        )
    ]


PRIMARY_ENDPOINT_DRIFT_RULE = Rule(
    code=IssueCode.PRIMARY_ENDPOINT_DRIFT,
    name="primary_endpoint_drift",
    evaluate=check_primary_endpoint_drift,
    fixer=suggest_endpoint_fix,
    description="SAP primary endpoints restate the Protocol primary endpoints",
)

TEST_SELECTION_RULE = Rule(
    code=IssueCode.TEST_MISMATCH,
    name="test_selection",
    evaluate=check_test_selection,
    fixer=suggest_test_fix,
    description="SAP statistical tests suit the endpoint data types",
)

ANALYSIS_POPULATION_RULE = Rule(
    code=IssueCode.ANALYSIS_POPULATION_INCONSISTENT,
    name="analysis_population",
    evaluate=check_analysis_populations,
    description="Protocol and SAP define the same analysis populations",
)

MULTIPLICITY_RULE = Rule(
    code=IssueCode.MULTIPLICITY_STRATEGY_MISSING,
    name="multiplicity",
    evaluate=check_multiplicity,
    description="Multiple primary endpoints come with a multiplicity strategy",
)

SAMPLE_SIZE_DRIVER_RULE = Rule(
    code=IssueCode.SAMPLE_SIZE_DRIVER_MISMATCH,
    name="sample_size_driver",
    evaluate=check_sample_size_driver,
    description="Sample size is driven by a Protocol primary endpoint",
)
