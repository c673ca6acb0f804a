"""String similarity primitives used by entity resolution."""

from __future__ import annotations

import re

from .config import JARO_WINKLER_MAX_PREFIX, JARO_WINKLER_PREFIX_SCALE

_CURLY_SINGLE = re.compile(r"[‘’]")
_CURLY_DOUBLE = re.compile(r"[“”]")
_DISALLOWED = re.compile(r"[^\w\s'-]")
_WHITESPACE = re.compile(r"\s+")


def normalize(value: str) -> str:
    """Normalize a name for lookup keys and fuzzy comparison.

    Lowercases, unifies curly quotes, drops punctuation other than
    apostrophes and hyphens, and collapses whitespace. Punctuation is removed
    before whitespace is collapsed so the result is stable when normalized
    again.
    """
    text = value.lower()
    text = _CURLY_SINGLE.sub("'", text)
    text = _CURLY_DOUBLE.sub('"', text)
    text = _DISALLOWED.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def jaro(a: str, b: str) -> float:
    """Jaro similarity between two strings, in [0, 1]."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    match_distance = max(len(a), len(b)) // 2 - 1
    a_matches = [False] * len(a)
    b_matches = [False] * len(b)

    matches = 0
    for i, char in enumerate(a):
        start = max(0, i - match_distance)
        end = min(i + match_distance + 1, len(b))
        for j in range(start, end):
            if b_matches[j] or b[j] != char:
                continue
            a_matches[i] = True
            b_matches[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i, char in enumerate(a):
        if not a_matches[i]:
            continue
        while not b_matches[k]:
            k += 1
        if char != b[k]:
            transpositions += 1
        k += 1

    return (
        matches / len(a)
        + matches / len(b)
        + (matches - transpositions / 2) / matches
    ) / 3


def jaro_winkler(a: str, b: str, prefix_scale: float = JARO_WINKLER_PREFIX_SCALE) -> float:
    """Jaro similarity boosted by a shared prefix of up to four characters."""
    similarity = jaro(a, b)

    prefix_length = 0
    for char_a, char_b in zip(a[:JARO_WINKLER_MAX_PREFIX], b[:JARO_WINKLER_MAX_PREFIX]):
        if char_a != char_b:
            break
        prefix_length += 1

    return similarity + prefix_length * prefix_scale * (1 - similarity)
