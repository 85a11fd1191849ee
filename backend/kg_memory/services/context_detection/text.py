"""Text normalization helpers shared by the detectors."""

import re
from collections.abc import Iterable

from kg_memory.constants import MAX_KEYWORDS

_SPLIT_RE = re.compile(r"\W+")
_SIMPLE_WORD_RE = re.compile(r"^\w+$")


def normalize(text: str) -> str:
    return text.lower().strip()


def tokenize(text: str) -> list[str]:
    """Lower-case and split on non-word boundaries, dropping empties."""
    return [token for token in _SPLIT_RE.split(normalize(text)) if token]


def word_set(text: str) -> frozenset[str]:
    return frozenset(tokenize(text))


def contains_keyword(normalized: str, words: frozenset[str], keyword: str) -> bool:
    """Check whether ``keyword`` occurs in the text.

    Plain words are matched against the word set. Keywords with punctuation
    or spaces (``node.js``, ``error handling``) are matched as phrases with
    word boundaries on the normalized text.
    """
    keyword = keyword.lower()
    if _SIMPLE_WORD_RE.match(keyword):
        return keyword in words
    return re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", normalized) is not None


def matched_keywords(text: str, keywords: Iterable[str]) -> list[str]:
    """Keywords present in ``text``, in keyword order."""
    normalized = normalize(text)
    words = word_set(normalized)
    return [k for k in keywords if contains_keyword(normalized, words, k)]


def extract_keywords(
    text: str, stop_words: frozenset[str], limit: int = MAX_KEYWORDS
) -> list[str]:
    """Significant words in first-seen order.

    A word is significant when it is longer than two characters, starts with
    a letter and is not a stop word.
    """
    seen: list[str] = []
    for token in tokenize(text):
        if len(token) <= 2 or not token[0].isalpha() or token in stop_words:
            continue
        if token not in seen:
            seen.append(token)
        if len(seen) >= limit:
            break
    return seen


def merge_unique(*groups: Iterable[str], limit: int | None = None) -> list[str]:
    """Concatenate groups keeping the first occurrence of each item."""
    merged: list[str] = []
    for group in groups:
        for item in group:
            if item and item not in merged:
                merged.append(item)
    return merged[:limit] if limit is not None else merged
