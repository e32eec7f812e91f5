"""
Auto-fix suggestion generation.
"""

from crossdoc.autofix.generator import suggest_endpoint_fix, suggest_test_fix

__all__ = ["suggest_endpoint_fix", "suggest_test_fix"]
