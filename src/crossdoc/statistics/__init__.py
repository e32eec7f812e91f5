"""
Statistics-mapping collaborator.
"""

from crossdoc.statistics.test_families import (
    DEFAULT_TEST_FAMILIES,
    TestFamily,
    TestFamilyLookup,
    canonical_test_name,
    default_test_family_lookup,
)

__all__ = [
    "TestFamily",
    "TestFamilyLookup",
    "DEFAULT_TEST_FAMILIES",
    "canonical_test_name",
    "default_test_family_lookup",
]
