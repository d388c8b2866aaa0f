"""
Lexical scoring shared by the knowledge, self-help and similar-case rankers.

Japanese input has no reliable word segmentation, so a query token counts as a
hit when it appears anywhere inside the candidate text (substring containment).
"""

import re
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

# Whitespace plus Japanese sentence punctuation; ASCII punctuation stays inside tokens
_TOKEN_SPLIT = re.compile(r"[\s、。！？]+")


def normalize_text(text: str) -> str:
    """Trim and collapse whitespace runs to a single space."""
    return re.sub(r"\s+", " ", (text or "").strip())


def tokenize(text: str) -> list[str]:
    """Split on whitespace/punctuation and drop tokens of length <= 1."""
    return [t for t in _TOKEN_SPLIT.split(text or "") if len(t) > 1]


def score(query: str, candidate: str) -> float:
    """Share of query tokens contained in candidate, rounded to 2 decimals (0.0 for no tokens)."""
    tokens = tokenize(query)
    if not tokens:
        return 0.0
    matched = sum(1 for t in tokens if t in candidate)
    return round(matched / len(tokens), 2)


def rank(
    query: str,
    items: Iterable[T],
    text_of: Callable[[T], str],
    limit: Optional[int] = None,
) -> list[tuple[T, float]]:
    """
    Score every item against query, drop zero scores and sort by score descending.
    sorted() is stable, so equal scores keep corpus order.
    """
    scored = [(item, score(query, text_of(item))) for item in items]
    ranked = sorted(
        (pair for pair in scored if pair[1] > 0), key=lambda pair: pair[1], reverse=True
    )
    return ranked[:limit] if limit is not None else ranked


def truncate(text: str, limit: int, marker: str = "…") -> str:
    """Prefix of at most limit characters, with marker appended when text was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker
