"""
IB <-> Protocol Rules

Consistency between the Investigator's Brochure and the Protocol: primary
objectives, dosing, target population, and the mechanism of action and
safety profile the Protocol relies on.
"""

from __future__ import annotations

import logging

from crossdoc.core.enums import AlignmentTier, DocumentType, IssueCode
from crossdoc.core.schemas import Issue, IssueLocation, Suggestion
from crossdoc.extraction.text import content_tokens, has_text, stem, tokenize
from crossdoc.rules.registry import Rule, RuleContext

logger = logging.getLogger(__name__)

# Share of IB target-population terms that must appear in eligibility criteria
POPULATION_COVERAGE_THRESHOLD = 0.3

# Shorter mechanism descriptions do not support a Protocol rationale
MECHANISM_MIN_LENGTH = 50


# =============================================================================
# OBJECTIVES
# =============================================================================


def check_objective_alignment(ctx: RuleContext) -> list[Issue]:
    """Each IB primary objective against its best Protocol primary objective."""
    ib, protocol = ctx.extracted.ib, ctx.extracted.protocol
    if ib is None or protocol is None:
        return []

    candidates = {o.id: o.text for o in protocol.primary_objectives}
    issues: list[Issue] = []

    for objective in ib.primary_objectives:
        match = ctx.scorer.best_match(objective.text, candidates)
        if match.best is None:
            continue
        tier = ctx.scorer.classify(match.best.score)
        if tier is AlignmentTier.ALIGNED:
            continue

        counterpart = protocol.objectives[match.best.key]
        code = (
            IssueCode.IB_PROTOCOL_OBJECTIVE_MISMATCH
            if tier is AlignmentTier.MISMATCH
            else IssueCode.IB_PROTOCOL_OBJECTIVE_DRIFT
        )
        message = (
            "Primary objective differs between IB and Protocol"
            if tier is AlignmentTier.MISMATCH
            else f"Primary objective wording drifts between IB and Protocol ({match.best.score:.0%} similar)"
        )
        issues.append(
            Issue.from_catalog(
                code,
                message,
                details=f"IB: '{objective.text}' / Protocol: '{counterpart.text}'",
                locations=[
                    IssueLocation(
                        document=DocumentType.IB,
                        document_id=ib.document_id,
                        section="objectives",
                        record_id=objective.id,
                        field="description",
                    ),
                    IssueLocation(
                        document=DocumentType.PROTOCOL,
                        document_id=protocol.document_id,
                        section="objectives",
                        record_id=counterpart.id,
                        field="description",
                    ),
                ],
                suggestions=[
                    Suggestion(
                        id="ALIGN_PRIMARY_OBJECTIVE",
                        description="Align the Protocol primary objective with the IB",
                    )
                ],
                metadata={
                    "score": round(match.best.score, 4),
                    "tier": tier.value,
                    "ib_objective_id": objective.id,
                    "protocol_objective_id": counterpart.id,
                },
            )
        )
    return issues


# =============================================================================
# DOSING
# =============================================================================


def check_dose_consistency(ctx: RuleContext) -> list[Issue]:
    """
    IB dose set against Protocol arm doses.

    Disjoint sets are critical; arm doses the IB does not describe are a
    warning. Either side without any parseable dose gives no opinion.
    """
    ib, protocol = ctx.extracted.ib, ctx.extracted.protocol
    if ib is None or protocol is None:
        return []

    ib_doses, arm_doses = ib.dose_set, protocol.dose_set
    if not ib_doses or not arm_doses:
        return []

    locations = [
        IssueLocation(
            document=DocumentType.IB, document_id=ib.document_id, section="dosingInformation"
        ),
        IssueLocation(
            document=DocumentType.PROTOCOL, document_id=protocol.document_id, section="arms"
        ),
    ]
    metadata = {
        "ib_doses": sorted(str(d) for d in ib_doses),
        "protocol_doses": sorted(str(d) for d in arm_doses),
        "ib_regimens": [d.regimen for d in ib.doses.values() if d.regimen],
    }

    if ib_doses.isdisjoint(arm_doses):
        return [
            Issue.from_catalog(
                IssueCode.IB_PROTOCOL_DOSE_INCONSISTENT,
                "No Protocol arm dose matches the IB dosing information",
                details=(
                    f"IB doses {metadata['ib_doses']} vs "
                    f"Protocol arm doses {metadata['protocol_doses']}"
                ),
                locations=locations,
                suggestions=[
                    Suggestion(
                        id="RECONCILE_DOSES",
                        description="Reconcile Protocol arm doses with the IB dosing information",
                    )
                ],
                metadata=metadata,
            )
        ]

    issues: list[Issue] = []
    for arm in protocol.arm_doses.values():
        if arm.quantity is None or arm.quantity in ib_doses:
            continue
        issues.append(
            Issue.from_catalog(
                IssueCode.IB_PROTOCOL_DOSE_NOT_IN_IB,
                f"Protocol arm '{arm.label or arm.id}' dose {arm.quantity} is not described in the IB",
                locations=[
                    IssueLocation(
                        document=DocumentType.PROTOCOL,
                        document_id=protocol.document_id,
                        section="arms",
                        record_id=arm.id,
                        field="dose",
                    ),
                    locations[0],
                ],
                metadata={
                    **metadata,
                    "arm_id": arm.id,
                    "arm_dose": str(arm.quantity),
                    "arm_regimen": arm.regimen,
                },
            )
        )
    return issues


# =============================================================================
# POPULATION
# =============================================================================


def _population_terms(text: str | None) -> set[str]:
    return {t for t in content_tokens(text) if len(t) > 3 and not t.isdigit()}


def check_population_drift(ctx: RuleContext) -> list[Issue]:
    """IB target population terms should recur in Protocol eligibility criteria."""
    ib, protocol = ctx.extracted.ib, ctx.extracted.protocol
    if ib is None or protocol is None or not protocol.eligibility_criteria:
        return []

    terms = _population_terms(ib.target_population)
    if not terms:
        return []

    criteria_terms = {stem(t) for t in tokenize(" ".join(protocol.eligibility_criteria))}
    found = terms & criteria_terms
    coverage = len(found) / len(terms)
    if coverage >= POPULATION_COVERAGE_THRESHOLD:
        return []

    return [
        Issue.from_catalog(
            IssueCode.IB_PROTOCOL_POPULATION_DRIFT,
            "Target population differs between IB and Protocol eligibility criteria",
            details=(
                f"Only {coverage:.0%} of IB target population terms appear in the "
                "Protocol inclusion/exclusion criteria"
            ),
            locations=[
                IssueLocation(
                    document=DocumentType.IB,
                    document_id=ib.document_id,
                    field="targetPopulation",
                ),
                IssueLocation(
                    document=DocumentType.PROTOCOL,
                    document_id=protocol.document_id,
                    section="inclusionCriteria",
                ),
            ],
            metadata={
                "coverage": round(coverage, 4),
                "missing_terms": sorted(terms - found),
            },
        )
    ]


# =============================================================================
# MECHANISM AND SAFETY
# =============================================================================


def check_mechanism_described(ctx: RuleContext) -> list[Issue]:
    """The IB should describe the mechanism of action backing the Protocol rationale."""
    ib, protocol = ctx.extracted.ib, ctx.extracted.protocol
    if ib is None or protocol is None:
        return []

    mechanism = (ib.mechanism_of_action or "").strip()
    if len(mechanism) >= MECHANISM_MIN_LENGTH:
        return []

    return [
        Issue.from_catalog(
            IssueCode.IB_MECHANISM_INCOMPLETE,
            "Mechanism of action not adequately described in IB",
            details=(
                "The Investigator's Brochure should describe the mechanism of action "
                "to support the Protocol rationale"
            ),
            locations=[
                IssueLocation(
                    document=DocumentType.IB,
                    document_id=ib.document_id,
                    field="mechanismOfAction",
                )
            ],
            metadata={"length": len(mechanism), "min_length": MECHANISM_MIN_LENGTH},
        )
    ]


def check_safety_profile(ctx: RuleContext) -> list[Issue]:
    """The IB should list the key risks the Protocol monitors."""
    ib, protocol = ctx.extracted.ib, ctx.extracted.protocol
    if ib is None or protocol is None:
        return []
    if any(has_text(risk) for risk in ib.key_risks):
        return []

    return [
        Issue.from_catalog(
            IssueCode.IB_SAFETY_PROFILE_MISSING,
            "Key risk profile not defined in IB",
            details=(
                "Known and potential risks support Protocol safety assessments "
                "and informed consent"
            ),
            locations=[
                IssueLocation(
                    document=DocumentType.IB, document_id=ib.document_id, field="keyRisks"
                )
            ],
        )
    ]


OBJECTIVE_ALIGNMENT_RULE = Rule(
    code=IssueCode.IB_PROTOCOL_OBJECTIVE_MISMATCH,
    name="objective_alignment",
    evaluate=check_objective_alignment,
    description="IB and Protocol primary objectives agree",
)

DOSE_CONSISTENCY_RULE = Rule(
    code=IssueCode.IB_PROTOCOL_DOSE_INCONSISTENT,
    name="dose_consistency",
    evaluate=check_dose_consistency,
    description="Protocol arm doses are supported by the IB",
)

POPULATION_DRIFT_RULE = Rule(
    code=IssueCode.IB_PROTOCOL_POPULATION_DRIFT,
    name="population_drift",
    evaluate=check_population_drift,
    description="IB target population is reflected in Protocol eligibility",
)

MECHANISM_RULE = Rule(
    code=IssueCode.IB_MECHANISM_INCOMPLETE,
    name="mechanism",
    evaluate=check_mechanism_described,
    description="IB describes the mechanism of action",
)

SAFETY_PROFILE_RULE = Rule(
    code=IssueCode.IB_SAFETY_PROFILE_MISSING,
    name="safety_profile",
    evaluate=check_safety_profile,
    description="IB lists key risks",
)
