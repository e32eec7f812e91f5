"""
Text Canonicalization

The single normalization every rule compares through: lowercase, trim,
collapse whitespace, strip trailing punctuation. Tokenization follows the
same canonical form so scores are consistent across rules.
"""

import re

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCT = re.compile(r"[\s.,;:!?]+$")
_TOKEN = re.compile(r"[a-z0-9]+")

STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "should", "could", "may", "might", "must", "can", "this", "that",
        "these", "those", "its", "their", "into", "versus", "vs",
    }
)

# Wording shared by most objectives and endpoints; carries no concept.
BOILERPLATE = frozenset(
    {
        "evaluate", "assess", "determine", "demonstrate", "investigate",
        "compare", "characterize", "explore", "estimate", "measure",
        "efficacy", "effect", "effects", "reduce", "reducing", "reduction",
        "improve", "improving", "improvement", "increase", "decrease",
        "patients", "patient", "subjects", "participants", "level", "levels",
        "change", "changes", "baseline", "study", "trial", "drug",
    }
)


def canonicalize(text: str | None) -> str:
    """Canonical comparison form of a free-text field ('' for unset)."""
    if not text:
        return ""
    lowered = _WHITESPACE.sub(" ", text.lower()).strip()
    return _TRAILING_PUNCT.sub("", lowered)


def tokenize(text: str | None) -> list[str]:
    """Alphanumeric tokens of the canonical form, single letters dropped."""
    return [t for t in _TOKEN.findall(canonicalize(text)) if len(t) > 1 or t.isdigit()]


def stem(token: str) -> str:
    """Strip a common English inflection so 'reducing' meets 'reduced'."""
    if len(token) <= 4 or token.isdigit():
        return token
    for suffix in ("ing", "ed", "es", "s"):
        if token.endswith(suffix) and len(token) - len(suffix) >= 3:
            return token[: -len(suffix)]
    return token


def content_tokens(text: str | None) -> list[str]:
    """
    Stemmed concept-bearing tokens.

    Falls back to all stemmed non-stopword tokens when removing boilerplate
    would leave nothing (e.g. the text is just "Change from baseline").
    """
    raw = tokenize(text)
    tokens = [t for t in raw if t not in STOPWORDS] or raw
    content = [t for t in tokens if t not in BOILERPLATE]
    return [stem(t) for t in (content or tokens)]


def has_text(text: str | None) -> bool:
    """True when the text has at least one comparable token."""
    return bool(tokenize(text))
