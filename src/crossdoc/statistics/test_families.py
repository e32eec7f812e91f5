"""
Statistical Test Families

Default answer to "which statistical tests suit an endpoint of this data
type". The engine consumes it through the ``TestFamilyLookup`` callable, so a
sample-size/power service can be injected in its place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from crossdoc.core.enums import EndpointDataType

_ALIASES = {
    "analysis of covariance": "ancova",
    "analysis of variance": "anova",
    "students t": "t-test",
    "student's t-test": "t-test",
    "two-sample t-test": "t-test",
    "student t": "t-test",
    "t test": "t-test",
    "ttest": "t-test",
    "two sample t": "t-test",
    "mixed model for repeated measures": "mmrm",
    "mixed model repeated measures": "mmrm",
    "mann whitney": "mann-whitney",
    "mann whitney u": "mann-whitney",
    "mann-whitney u": "mann-whitney",
    "wilcoxon rank sum": "wilcoxon",
    "wilcoxon signed rank": "wilcoxon",
    "wilcoxon rank-sum": "wilcoxon",
    "wilcoxon signed-rank": "wilcoxon",
    "chi square": "chi-square",
    "chi squared": "chi-square",
    "chi-squared": "chi-square",
    "pearson chi-square": "chi-square",
    "fishers exact": "fisher exact",
    "fisher's exact": "fisher exact",
    "cochran mantel haenszel": "cmh",
    "cochran-mantel-haenszel": "cmh",
    "logistic": "logistic regression",
    "log rank": "log-rank",
    "logrank": "log-rank",
    "stratified log-rank": "log-rank",
    "cox": "cox regression",
    "cox proportional hazards": "cox regression",
    "cox proportional hazards regression": "cox regression",
    "cox proportional hazards model": "cox regression",
    "kaplan meier": "kaplan-meier",
    "proportional odds model": "proportional odds",
    "ordinal logistic regression": "proportional odds",
    "poisson": "poisson regression",
    "negative binomial regression": "negative binomial",
    "generalized linear mixed model": "glmm",
}

_TRAILING_TEST = re.compile(r"\s+(test|analysis)$")


def canonical_test_name(name: str | None) -> str:
    """
    Canonical form of a test name.

    "Chi-square test" -> "chi-square", "Analysis of covariance" -> "ancova",
    "Fisher's exact test" -> "fisher exact".
    """
    if not name:
        return ""
    key = " ".join(name.lower().replace("’", "'").replace("_", " ").split())
    key = key.strip(" .")
    if key in _ALIASES:
        return _ALIASES[key]
    key = _TRAILING_TEST.sub("", key)
    key = key.strip("()")
    return _ALIASES.get(key, key)


@dataclass(frozen=True)
class TestFamily:
    """Tests appropriate for one endpoint data type."""

    __test__ = False  # keep pytest from collecting this class

    data_type: EndpointDataType
    tests: frozenset[str]
    preferred: str | None = None

    def accepts(self, test_name: str | None) -> bool:
        return canonical_test_name(test_name) in self.tests


TestFamilyLookup = Callable[[EndpointDataType], TestFamily | None]


DEFAULT_TEST_FAMILIES: Mapping[EndpointDataType, TestFamily] = MappingProxyType(
    {
        EndpointDataType.CONTINUOUS: TestFamily(
            EndpointDataType.CONTINUOUS,
            frozenset({"t-test", "ancova", "anova", "mmrm", "mann-whitney", "wilcoxon"}),
            preferred="ANCOVA",
        ),
        EndpointDataType.BINARY: TestFamily(
            EndpointDataType.BINARY,
            frozenset({"chi-square", "fisher exact", "cmh", "logistic regression"}),
            preferred="Chi-square test",
        ),
        EndpointDataType.TIME_TO_EVENT: TestFamily(
            EndpointDataType.TIME_TO_EVENT,
            frozenset({"log-rank", "cox regression", "kaplan-meier"}),
            preferred="Log-rank test",
        ),
        EndpointDataType.ORDINAL: TestFamily(
            EndpointDataType.ORDINAL,
            frozenset({"mann-whitney", "wilcoxon", "proportional odds"}),
            preferred="Mann-Whitney U test",
        ),
        EndpointDataType.COUNT: TestFamily(
            EndpointDataType.COUNT,
            frozenset({"poisson regression", "negative binomial", "glmm"}),
            preferred="Poisson regression",
        ),
    }
)


def default_test_family_lookup(data_type: EndpointDataType) -> TestFamily | None:
    """Expected test family for an endpoint data type."""
    return DEFAULT_TEST_FAMILIES.get(data_type)
