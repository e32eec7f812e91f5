"""
CrossDoc Rules

Default rule set, in evaluation order.
"""

from crossdoc.rules.general import (
    EMPTY_COLLECTION_RULE,
    MISSING_DOCUMENT_RULE,
    POPULATION_COHERENCE_RULE,
    VERSION_RULE,
)
from crossdoc.rules.ib_protocol import (
    DOSE_CONSISTENCY_RULE,
    MECHANISM_RULE,
    OBJECTIVE_ALIGNMENT_RULE,
    POPULATION_DRIFT_RULE,
    SAFETY_PROFILE_RULE,
)
from crossdoc.rules.protocol_sap import (
    ANALYSIS_POPULATION_RULE,
    MULTIPLICITY_RULE,
    PRIMARY_ENDPOINT_DRIFT_RULE,
    SAMPLE_SIZE_DRIVER_RULE,
    TEST_SELECTION_RULE,
)
from crossdoc.rules.registry import (
    EngineOptions,
    Rule,
    RuleContext,
    RuleSet,
    evaluate_rule,
)

DEFAULT_RULES = (
    OBJECTIVE_ALIGNMENT_RULE,
    DOSE_CONSISTENCY_RULE,
    POPULATION_DRIFT_RULE,
    MECHANISM_RULE,
    SAFETY_PROFILE_RULE,
    PRIMARY_ENDPOINT_DRIFT_RULE,
    TEST_SELECTION_RULE,
    ANALYSIS_POPULATION_RULE,
    MULTIPLICITY_RULE,
    SAMPLE_SIZE_DRIVER_RULE,
    MISSING_DOCUMENT_RULE,
    EMPTY_COLLECTION_RULE,
    POPULATION_COHERENCE_RULE,
    VERSION_RULE,
)


def default_rules() -> RuleSet:
    """The default rule set."""
    return RuleSet(DEFAULT_RULES)


__all__ = [
    "Rule",
    "RuleContext",
    "RuleSet",
    "EngineOptions",
    "evaluate_rule",
    "default_rules",
    "DEFAULT_RULES",
]
