"""
CrossDoc Core Schemas

This module defines all Pydantic models (schemas) used throughout the engine.
These schemas represent the domain model and enforce invariants via validators.

Key Design Principles:
1. All schemas are immutable (frozen=True), collections are tuples
2. Every optional collection defaults to empty, every optional scalar to None
3. Inputs accept camelCase wire names and snake_case field names alike
4. Every issue code belongs to the closed catalog
5. A result's summary always agrees with its issue list
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel

from crossdoc.core.catalog import spec_for
from crossdoc.core.enums import (
    DocumentType,
    EndpointDataType,
    IssueCategory,
    IssueCode,
    ObjectiveType,
    Severity,
)


def _blank_to_none(value: Any) -> Any:
    """Blank strings are the same as an unset value."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _coerce_rank(value: Any) -> Any:
    """Accept 'Primary', 'primary objective', 'PRIMARY' and friends."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        for member in ObjectiveType:
            if lowered.startswith(member.value):
                return member
    return _blank_to_none(value)


_DATA_TYPE_SYNONYMS = {
    "dichotomous": EndpointDataType.BINARY,
    "categorical": EndpointDataType.BINARY,
    "tte": EndpointDataType.TIME_TO_EVENT,
    "survival": EndpointDataType.TIME_TO_EVENT,
}


def _coerce_data_type(value: Any) -> Any:
    """Accept 'Time-to-event', 'time to event', 'Continuous' and friends."""
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key in _DATA_TYPE_SYNONYMS:
            return _DATA_TYPE_SYNONYMS[key]
        return _blank_to_none(key)
    return value


OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
Rank = Annotated[ObjectiveType | None, BeforeValidator(_coerce_rank)]
DataType = Annotated[EndpointDataType | None, BeforeValidator(_coerce_data_type)]


class CrossDocModel(BaseModel):
    """Shared model configuration for every CrossDoc schema."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# DOCUMENT BUILDING BLOCKS
# =============================================================================


class Objective(CrossDocModel):
    """Study objective (IB or Protocol)."""

    id: OptionalText = None
    type: Rank = None
    description: OptionalText = Field(
        default=None, validation_alias=AliasChoices("description", "text")
    )


class DosingInfo(CrossDocModel):
    """Dose regimen described in the Investigator's Brochure."""

    id: OptionalText = None
    dose: OptionalText = None
    route: OptionalText = None
    frequency: OptionalText = None
    duration: OptionalText = None


class ProtocolEndpoint(CrossDocModel):
    """Endpoint defined by the Protocol."""

    id: OptionalText = None
    type: Rank = None
    name: OptionalText = None
    description: OptionalText = None
    data_type: DataType = None


class TreatmentArm(CrossDocModel):
    """Protocol treatment arm."""

    id: OptionalText = None
    name: OptionalText = None
    dose: OptionalText = None
    route: OptionalText = None
    frequency: OptionalText = None
    description: OptionalText = None


class Visit(CrossDocModel):
    """Scheduled visit. A bare string is read as the visit name."""

    id: OptionalText = None
    name: OptionalText = None
    day: int | None = None
    week: int | None = None

    @model_validator(mode="before")
    @classmethod
    def from_label(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data}
        return data


class AnalysisPopulation(CrossDocModel):
    """Analysis set. A bare string (e.g. 'FAS') is read as its abbreviation."""

    id: OptionalText = None
    name: OptionalText = None
    abbreviation: OptionalText = None
    description: OptionalText = None

    @model_validator(mode="before")
    @classmethod
    def from_label(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data, "abbreviation": data}
        return data

    @property
    def label(self) -> str | None:
        """Most specific identifying text available."""
        return self.abbreviation or self.name or self.description


class SapEndpoint(CrossDocModel):
    """Endpoint as restated by the SAP."""

    id: OptionalText = None
    name: OptionalText = None
    description: OptionalText = None
    # Foreign key to ProtocolEndpoint.id
    endpoint_id: OptionalText = None


class StatisticalTestSpec(CrossDocModel):
    """SAP assignment of a statistical test to an endpoint."""

    endpoint_id: OptionalText = None
    test: OptionalText = None
    description: OptionalText = None


# =============================================================================
# DOCUMENTS
# =============================================================================


class IBDocument(CrossDocModel):
    """Investigator's Brochure, structured."""

    id: OptionalText = None
    version: OptionalText = None
    objectives: tuple[Objective, ...] = ()
    mechanism_of_action: OptionalText = None
    target_population: OptionalText = None
    key_risks: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("keyRisks", "key_risks", "keyRiskProfile"),
    )
    dosing_information: tuple[DosingInfo, ...] = ()


class ProtocolDocument(CrossDocModel):
    """Clinical trial Protocol, structured."""

    id: OptionalText = None
    version: OptionalText = None
    objectives: tuple[Objective, ...] = ()
    endpoints: tuple[ProtocolEndpoint, ...] = ()
    arms: tuple[TreatmentArm, ...] = ()
    visit_schedule: tuple[Visit, ...] = ()
    inclusion_criteria: tuple[str, ...] = ()
    exclusion_criteria: tuple[str, ...] = ()
    analysis_populations: tuple[AnalysisPopulation, ...] = ()


class SAPDocument(CrossDocModel):
    """Statistical Analysis Plan, structured."""

    id: OptionalText = None
    version: OptionalText = None
    primary_endpoints: tuple[SapEndpoint, ...] = ()
    secondary_endpoints: tuple[SapEndpoint, ...] = ()
    statistical_tests: tuple[StatisticalTestSpec, ...] = ()
    analysis_populations: tuple[AnalysisPopulation, ...] = ()
    sample_size: int | None = None
    sample_size_justification: OptionalText = None
    sample_size_driver_endpoint: OptionalText = None
    multiplicity_strategy: OptionalText = None
    missing_data_strategy: OptionalText = None


DocumentModel = IBDocument | ProtocolDocument | SAPDocument

DOCUMENT_MODELS: dict[DocumentType, type[CrossDocModel]] = {
    DocumentType.IB: IBDocument,
    DocumentType.PROTOCOL: ProtocolDocument,
    DocumentType.SAP: SAPDocument,
}

# Bundle attribute holding each document type
DOCUMENT_FIELDS: dict[DocumentType, str] = {
    DocumentType.IB: "ib",
    DocumentType.PROTOCOL: "protocol",
    DocumentType.SAP: "sap",
}


class CrossDocBundle(CrossDocModel):
    """
    The documents of one study, each optional.

    Absence of any document is valid input.
    """

    ib: IBDocument | None = None
    protocol: ProtocolDocument | None = None
    sap: SAPDocument | None = None

    def document(self, doc_type: DocumentType) -> DocumentModel | None:
        """Return the document of the given type, if present."""
        return getattr(self, DOCUMENT_FIELDS[doc_type])

    def present(self) -> list[DocumentType]:
        """Document types present in the bundle, in canonical order."""
        return [doc_type for doc_type in DocumentType if self.document(doc_type) is not None]


# =============================================================================
# ISSUES & SUGGESTIONS
# =============================================================================


class IssueLocation(CrossDocModel):
    """Where in which document an issue was found."""

    document: DocumentType
    document_id: str | None = None
    section: str | None = None
    record_id: str | None = None
    field: str | None = None


class Patch(CrossDocModel):
    """
    A described, never applied, correction of one document field.

    The addressed value is ``<document>.<collection>[<record_id>].<target_field>``,
    where record_id is the record's ``id``; ``#<index>`` for a record without
    one; ``<id>#<index>`` for a later record repeating an earlier record's id
    (index is the position in the collection). Statistical tests are addressed
    by their ``endpointId``.
    """

    target_document: DocumentType
    document_id: str | None = None
    collection: str
    record_id: str
    target_field: str
    old_value: str | None = None
    new_value: str

    @property
    def path(self) -> str:
        return f"{self.collection}[{self.record_id}].{self.target_field}"


class Suggestion(CrossDocModel):
    """Proposed resolution of an issue."""

    id: str
    description: str
    auto_fixable: bool = False
    patches: tuple[Patch, ...] = ()

    @model_validator(mode="after")
    def validate_fixable_has_patches(self) -> "Suggestion":
        """An auto-fixable suggestion must carry at least one patch."""
        if self.auto_fixable and not self.patches:
            raise ValueError(f"Suggestion '{self.id}' is auto-fixable but has no patches")
        return self


class Issue(CrossDocModel):
    """One inconsistency found by a rule."""

    code: IssueCode
    severity: Severity
    category: IssueCategory
    message: str
    details: str | None = None
    locations: tuple[IssueLocation, ...] = ()
    suggestions: tuple[Suggestion, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_catalog(
        cls,
        code: IssueCode,
        message: str,
        *,
        severity: Severity | None = None,
        details: str | None = None,
        locations: list[IssueLocation] | None = None,
        suggestions: list[Suggestion] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "Issue":
        """Build an issue taking severity and category from the catalog."""
        entry = spec_for(code)
        return cls(
            code=code,
            severity=severity or entry.severity,
            category=entry.category,
            message=message,
            details=details,
            locations=tuple(locations or ()),
            suggestions=tuple(suggestions or ()),
            metadata=metadata or {},
        )

    @property
    def auto_fixable(self) -> bool:
        return any(s.auto_fixable for s in self.suggestions)


# =============================================================================
# RESULT
# =============================================================================


class Summary(CrossDocModel):
    """Issue counts by severity."""

    total: int = Field(default=0, ge=0)
    critical: int = Field(default=0, ge=0)
    error: int = Field(default=0, ge=0)
    warning: int = Field(default=0, ge=0)
    info: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_counts(self) -> "Summary":
        """Severity counts must add up to the total."""
        if self.critical + self.error + self.warning + self.info != self.total:
            raise ValueError("Severity counts do not sum to total")
        return self


class ValidationResult(CrossDocModel):
    """Outcome of one engine run."""

    issues: tuple[Issue, ...] = ()
    summary: Summary = Field(default_factory=Summary)

    @model_validator(mode="after")
    def validate_summary_matches(self) -> "ValidationResult":
        """Summary total must equal the number of issues."""
        if self.summary.total != len(self.issues):
            raise ValueError(
                f"Summary total {self.summary.total} != {len(self.issues)} issues"
            )
        return self

    @property
    def codes(self) -> list[IssueCode]:
        return [issue.code for issue in self.issues]

    def issues_by_category(self) -> dict[IssueCategory, list[Issue]]:
        """Group issues by category; every category is present."""
        grouped: dict[IssueCategory, list[Issue]] = {c: [] for c in IssueCategory}
        for issue in self.issues:
            grouped[issue.category].append(issue)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)
