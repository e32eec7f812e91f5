"""
CrossDoc

Cross-document consistency engine for clinical-trial documents
(Investigator's Brochure, Protocol, Statistical Analysis Plan).
"""

__version__ = "0.1.0"

from crossdoc.config import Settings, get_settings
from crossdoc.core.catalog import ISSUE_CATALOG_VERSION
from crossdoc.engine import CrossDocEngine

__all__ = ["CrossDocEngine", "Settings", "get_settings", "ISSUE_CATALOG_VERSION", "__version__"]
