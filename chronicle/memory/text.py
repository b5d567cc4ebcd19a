"""Keyword extraction and set-overlap similarity.

All similarity in the memory engines is Jaccard over token sets. There is
no embedding search.
"""

import re

_PUNCTUATION = re.compile(r"[^\w\s]")
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "shall", "can", "need", "dare", "ought",
        "used", "to", "of", "in", "for", "on", "with", "at", "by", "from",
        "as", "into", "through", "during", "before", "after", "above", "below",
        "between", "out", "off", "over", "under", "again", "further", "then",
        "once", "here", "there", "when", "where", "why", "how", "all", "each",
        "every", "both", "few", "more", "most", "other", "some", "such", "no",
        "nor", "not", "only", "own", "same", "so", "than", "too", "very",
        "just", "because", "but", "and", "or", "if", "while", "about",
        "what", "which", "who", "whom", "this", "that", "these", "those",
        "it", "its", "i", "me", "my", "myself", "we", "our", "ours", "you",
        "your", "he", "him", "his", "she", "her", "they", "them", "their",
    }
)


def tokenize(text: str) -> set[str]:
    """Lowercase, strip punctuation, split on whitespace."""
    normalized = _PUNCTUATION.sub("", text.lower())
    return set(normalized.split())


def extract_keywords(text: str) -> list[str]:
    """Distinct non-stop-word tokens in order of first appearance."""
    cleaned = _NON_ALPHANUMERIC.sub(" ", text.lower())
    words = [w for w in cleaned.split() if w not in STOP_WORDS]
    return list(dict.fromkeys(words))


def jaccard(left: set[str], right: set[str]) -> float:
    """|intersection| / |union|. Two empty sets are identical."""
    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)


def content_similarity(a: str, b: str) -> float:
    """Token-set similarity of two texts, used for duplicate detection.

    Symmetric; sim("", "") == 1.0 and sim("x", "") == 0.0.
    """
    return jaccard(tokenize(a), tokenize(b))


def keyword_similarity(a: str, b: str) -> float:
    """Stop-word-filtered keyword overlap; 0.0 if either side has no keywords."""
    left = set(extract_keywords(a))
    right = set(extract_keywords(b))
    if not left or not right:
        return 0.0
    return jaccard(left, right)
