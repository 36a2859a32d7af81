"""Normalized Levenshtein similarity."""

from __future__ import annotations


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions or substitutions."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j - 1] + cost,  # substitution
                current[j - 1] + 1,      # insertion
                previous[j] + 1,         # deletion
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Return ``(max_len - distance) / max_len``; two empty strings score 1.0."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein_distance(a, b)) / max_len
