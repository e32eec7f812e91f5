"""
CrossDoc Extraction Layer

Canonical text, dose parsing and per-document field snapshots.
"""

from crossdoc.extraction.dose import DoseQuantity, parse_dose
from crossdoc.extraction.extractor import (
    ComparableText,
    ExtractedBundle,
    IBFields,
    ProtocolFields,
    SAPFields,
    extract_bundle,
    extract_ib,
    extract_protocol,
    extract_sap,
)
from crossdoc.extraction.text import canonicalize

__all__ = [
    "canonicalize",
    "parse_dose",
    "DoseQuantity",
    "ComparableText",
    "ExtractedBundle",
    "IBFields",
    "ProtocolFields",
    "SAPFields",
    "extract_bundle",
    "extract_ib",
    "extract_protocol",
    "extract_sap",
]
