"""
Text similarity for comparing training notes.

Uses the Sørensen–Dice coefficient over character bigrams, compared
case-insensitively with multiset matching (each bigram of the second string
can consume one occurrence from the first). The 0.90 threshold used by the
reconciler was tuned against this metric; other metrics cross the threshold
differently for the same inputs.
"""

from collections import Counter

SIMILARITY_THRESHOLD = 0.90


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_similarity(a: str, b: str) -> float:
    """Return the bigram Dice coefficient of *a* and *b* in [0, 1].

    Strings that are equal ignoring case score 1.0, including empty and
    one-character strings. Otherwise a string shorter than two characters
    has no bigrams and scores 0.0.

    Examples:
        >>> dice_similarity("Night", "night")
        1.0
        >>> dice_similarity("night", "nacht")
        0.25
    """
    a = a.lower()
    b = b.lower()
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    remaining = _bigrams(a)
    matches = 0
    for i in range(len(b) - 1):
        bigram = b[i:i + 2]
        if remaining[bigram] > 0:
            remaining[bigram] -= 1
            matches += 1

    return (2.0 * matches) / (len(a) + len(b) - 2)


def is_similar(a: str, b: str, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    """True if *a* and *b* score at or above *threshold*."""
    return dice_similarity(a, b) >= threshold


__all__ = ['SIMILARITY_THRESHOLD', 'dice_similarity', 'is_similar']
