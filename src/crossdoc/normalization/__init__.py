"""
Bundle normalization.
"""

from crossdoc.normalization.normalizer import (
    MAX_SALVAGE_PASSES,
    NormalizedBundle,
    normalize_bundle,
    salvage_document,
)

__all__ = ["NormalizedBundle", "normalize_bundle", "salvage_document", "MAX_SALVAGE_PASSES"]
