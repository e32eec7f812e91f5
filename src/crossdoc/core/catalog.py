"""
Issue Catalog

Versioned registry of every issue code the engine can emit, with its default
severity and category. Rules take severity and category from here unless the
code is tiered (PRIMARY_ENDPOINT_DRIFT escalates to critical on a mismatch).
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from crossdoc.core.enums import IssueCategory, IssueCode, Severity

ISSUE_CATALOG_VERSION = "1.1.0"

# old code -> (new code, catalog version of the rename). Empty since 1.0.0.
CATALOG_MIGRATIONS: Mapping[str, tuple[str, str]] = MappingProxyType({})


@dataclass(frozen=True)
class IssueCodeSpec:
    """Catalog entry for one issue code."""

    code: IssueCode
    severity: Severity
    category: IssueCategory
    summary: str


_ENTRIES = (
    IssueCodeSpec(
        IssueCode.IB_PROTOCOL_OBJECTIVE_MISMATCH,
        Severity.CRITICAL,
        IssueCategory.IB_PROTOCOL,
        "Primary objective differs between IB and Protocol",
    ),
    IssueCodeSpec(
        IssueCode.IB_PROTOCOL_OBJECTIVE_DRIFT,
        Severity.WARNING,
        IssueCategory.IB_PROTOCOL,
        "Primary objective wording drifts between IB and Protocol",
    ),
    IssueCodeSpec(
        IssueCode.IB_PROTOCOL_DOSE_INCONSISTENT,
        Severity.CRITICAL,
        IssueCategory.IB_PROTOCOL,
        "No Protocol arm dose is supported by the IB dosing information",
    ),
    IssueCodeSpec(
        IssueCode.IB_PROTOCOL_DOSE_NOT_IN_IB,
        Severity.WARNING,
        IssueCategory.IB_PROTOCOL,
        "Protocol arm dose not described in the IB",
    ),
    IssueCodeSpec(
        IssueCode.IB_PROTOCOL_POPULATION_DRIFT,
        Severity.WARNING,
        IssueCategory.IB_PROTOCOL,
        "IB target population poorly reflected in Protocol eligibility criteria",
    ),
    IssueCodeSpec(
        IssueCode.IB_MECHANISM_INCOMPLETE,
        Severity.INFO,
        IssueCategory.IB_PROTOCOL,
        "IB mechanism of action missing or too brief to support the Protocol rationale",
    ),
    IssueCodeSpec(
        IssueCode.IB_SAFETY_PROFILE_MISSING,
        Severity.WARNING,
        IssueCategory.IB_PROTOCOL,
        "IB lists no key risks for Protocol safety monitoring",
    ),
    IssueCodeSpec(
        IssueCode.PRIMARY_ENDPOINT_DRIFT,
        Severity.ERROR,
        IssueCategory.PROTOCOL_SAP,
        "SAP primary endpoint differs from the Protocol primary endpoint",
    ),
    IssueCodeSpec(
        IssueCode.TEST_MISMATCH,
        Severity.ERROR,
        IssueCategory.PROTOCOL_SAP,
        "SAP statistical test is not appropriate for the endpoint data type",
    ),
    IssueCodeSpec(
        IssueCode.TEST_MISSING,
        Severity.WARNING,
        IssueCategory.PROTOCOL_SAP,
        "Protocol primary endpoint has no SAP statistical test",
    ),
    IssueCodeSpec(
        IssueCode.TEST_ENDPOINT_UNRESOLVED,
        Severity.WARNING,
        IssueCategory.PROTOCOL_SAP,
        "SAP statistical test references an unknown endpoint",
    ),
    IssueCodeSpec(
        IssueCode.ANALYSIS_POPULATION_INCONSISTENT,
        Severity.WARNING,
        IssueCategory.PROTOCOL_SAP,
        "Analysis population defined in only one of Protocol and SAP",
    ),
    IssueCodeSpec(
        IssueCode.MULTIPLICITY_STRATEGY_MISSING,
        Severity.ERROR,
        IssueCategory.PROTOCOL_SAP,
        "Multiple primary endpoints without a multiplicity strategy",
    ),
    IssueCodeSpec(
        IssueCode.SAMPLE_SIZE_DRIVER_MISMATCH,
        Severity.ERROR,
        IssueCategory.PROTOCOL_SAP,
        "Sample size not driven by a Protocol primary endpoint",
    ),
    IssueCodeSpec(
        IssueCode.DOCUMENT_MISSING,
        Severity.INFO,
        IssueCategory.GLOBAL,
        "Document absent from the bundle",
    ),
    IssueCodeSpec(
        IssueCode.DOCUMENT_SECTION_EMPTY,
        Severity.WARNING,
        IssueCategory.GLOBAL,
        "Key document section is empty",
    ),
    IssueCodeSpec(
        IssueCode.DOCUMENT_VERSION_MISSING,
        Severity.INFO,
        IssueCategory.GLOBAL,
        "Document has no version information",
    ),
    IssueCodeSpec(
        IssueCode.GLOBAL_POPULATION_INCOHERENT,
        Severity.ERROR,
        IssueCategory.GLOBAL,
        "Neither the IB nor the Protocol defines the study population",
    ),
    IssueCodeSpec(
        IssueCode.GLOBAL_ANALYSIS_POPULATIONS_MISSING,
        Severity.WARNING,
        IssueCategory.GLOBAL,
        "Protocol defines eligibility but the SAP defines no analysis populations",
    ),
    IssueCodeSpec(
        IssueCode.DOCUMENT_UNUSABLE,
        Severity.CRITICAL,
        IssueCategory.STRUCTURAL,
        "Document could not be read and was skipped",
    ),
    IssueCodeSpec(
        IssueCode.DOCUMENT_FIELD_MALFORMED,
        Severity.WARNING,
        IssueCategory.STRUCTURAL,
        "Malformed document fields were dropped",
    ),
    IssueCodeSpec(
        IssueCode.RULE_EVALUATION_FAILED,
        Severity.INFO,
        IssueCategory.DIAGNOSTIC,
        "A rule failed and was skipped",
    ),
)

ISSUE_CATALOG: Mapping[IssueCode, IssueCodeSpec] = MappingProxyType(
    {entry.code: entry for entry in _ENTRIES}
)


def spec_for(code: IssueCode) -> IssueCodeSpec:
    """Return the catalog entry for a code."""
    return ISSUE_CATALOG[code]
