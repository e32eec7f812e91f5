"""
CrossDoc Core Enumerations

This module defines all enumerations used throughout the CrossDoc engine.
These are critical for maintaining type safety and consistent vocabulary.
"""

from enum import Enum


class DocumentType(str, Enum):
    """Documents that take part in a cross-document check."""

    IB = "IB"
    PROTOCOL = "PROTOCOL"
    SAP = "SAP"


class ObjectiveType(str, Enum):
    """Rank of an objective or endpoint within a study."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    EXPLORATORY = "exploratory"


class EndpointDataType(str, Enum):
    """Measurement scale of an endpoint, drives statistical test choice."""

    CONTINUOUS = "continuous"
    BINARY = "binary"
    TIME_TO_EVENT = "time_to_event"
    ORDINAL = "ordinal"
    COUNT = "count"


class Severity(str, Enum):
    """Issue severity, most severe first."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(str, Enum):
    """Which document pair (or which engine concern) an issue belongs to."""

    IB_PROTOCOL = "ib_protocol"
    PROTOCOL_SAP = "protocol_sap"
    GLOBAL = "global"
    STRUCTURAL = "structural"
    DIAGNOSTIC = "diagnostic"


class AlignmentTier(str, Enum):
    """Classification of a similarity score against the configured thresholds."""

    ALIGNED = "aligned"
    DRIFT = "drift"
    MISMATCH = "mismatch"


class IssueCode(str, Enum):
    """
    Closed catalog of issue codes.

    Consumers match on these values. Never rename a member without adding a
    migration note to crossdoc.core.catalog.CATALOG_MIGRATIONS.
    """

    # IB <-> Protocol
    IB_PROTOCOL_OBJECTIVE_MISMATCH = "IB_PROTOCOL_OBJECTIVE_MISMATCH"
    IB_PROTOCOL_OBJECTIVE_DRIFT = "IB_PROTOCOL_OBJECTIVE_DRIFT"
    IB_PROTOCOL_DOSE_INCONSISTENT = "IB_PROTOCOL_DOSE_INCONSISTENT"
    IB_PROTOCOL_DOSE_NOT_IN_IB = "IB_PROTOCOL_DOSE_NOT_IN_IB"
    IB_PROTOCOL_POPULATION_DRIFT = "IB_PROTOCOL_POPULATION_DRIFT"
    IB_MECHANISM_INCOMPLETE = "IB_MECHANISM_INCOMPLETE"
    IB_SAFETY_PROFILE_MISSING = "IB_SAFETY_PROFILE_MISSING"

    # Protocol <-> SAP
    PRIMARY_ENDPOINT_DRIFT = "PRIMARY_ENDPOINT_DRIFT"
    TEST_MISMATCH = "TEST_MISMATCH"
    TEST_MISSING = "TEST_MISSING"
    TEST_ENDPOINT_UNRESOLVED = "TEST_ENDPOINT_UNRESOLVED"
    ANALYSIS_POPULATION_INCONSISTENT = "ANALYSIS_POPULATION_INCONSISTENT"
    MULTIPLICITY_STRATEGY_MISSING = "MULTIPLICITY_STRATEGY_MISSING"
    SAMPLE_SIZE_DRIVER_MISMATCH = "SAMPLE_SIZE_DRIVER_MISMATCH"

    # Bundle-wide
    DOCUMENT_MISSING = "DOCUMENT_MISSING"
    DOCUMENT_SECTION_EMPTY = "DOCUMENT_SECTION_EMPTY"
    DOCUMENT_VERSION_MISSING = "DOCUMENT_VERSION_MISSING"
    GLOBAL_POPULATION_INCOHERENT = "GLOBAL_POPULATION_INCOHERENT"
    GLOBAL_ANALYSIS_POPULATIONS_MISSING = "GLOBAL_ANALYSIS_POPULATIONS_MISSING"

    # Structural (raised by the normalizer)
    DOCUMENT_UNUSABLE = "DOCUMENT_UNUSABLE"
    DOCUMENT_FIELD_MALFORMED = "DOCUMENT_FIELD_MALFORMED"

    # Engine diagnostics
    RULE_EVALUATION_FAILED = "RULE_EVALUATION_FAILED"
