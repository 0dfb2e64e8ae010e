"""
Nearest-match suggestions for error messages.
"""

from typing import Iterable, Optional

# Suggestions are only offered within this edit distance.
MAX_SUGGESTION_DISTANCE = 3


def levenshtein(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance."""
    if len(s1) < len(s2):
        return levenshtein(s2, s1)

    if len(s2) == 0:
        return len(s1)

    prev_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        curr_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = prev_row[j + 1] + 1
            deletions = curr_row[j] + 1
            substitutions = prev_row[j] + (c1 != c2)
            curr_row.append(min(insertions, deletions, substitutions))
        prev_row = curr_row

    return prev_row[-1]


def suggest(
    word: str,
    vocabulary: Iterable[str],
    max_distance: int = MAX_SUGGESTION_DISTANCE,
) -> Optional[str]:
    """
    Returns the closest vocabulary entry within max_distance, or None.

    Ties go to the entry listed first. A word is never matched to an entry
    that would require rewriting all of it.
    """
    best: Optional[str] = None
    best_distance = max_distance + 1

    for candidate in vocabulary:
        distance = levenshtein(word, candidate)
        if distance < best_distance and distance < len(word):
            best = candidate
            best_distance = distance

    return best
