"""
Severity Aggregator

Folds the issue list of a run into a ValidationResult. Issue order is kept
as produced: structural issues first, then rules in registration order.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from crossdoc.core.enums import Severity
from crossdoc.core.schemas import Issue, Summary, ValidationResult


def summarize(issues: Iterable[Issue]) -> Summary:
    """Count issues by severity."""
    counts = Counter(issue.severity for issue in issues)
    return Summary(
        total=sum(counts.values()),
        critical=counts[Severity.CRITICAL],
        error=counts[Severity.ERROR],
        warning=counts[Severity.WARNING],
        info=counts[Severity.INFO],
    )


def build_result(issues: Iterable[Issue]) -> ValidationResult:
    """Wrap issues and their summary in a ValidationResult."""
    issues = tuple(issues)
    return ValidationResult(issues=issues, summary=summarize(issues))
