"""
String edit-distance utilities used for pattern-to-pattern similarity.
"""


def levenshtein_distance(a: str, b: str) -> int:
    """
    Minimum number of single-character edits turning ``a`` into ``b``.

    Uses the two-row dynamic programming formulation.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the shorter string in the inner loop
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            insert = current[j - 1] + 1
            delete = previous[j] + 1
            substitute = previous[j - 1] + (char_a != char_b)
            current.append(min(insert, delete, substitute))
        previous = current

    return previous[-1]


def normalized_similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1]: ``1 - distance / max(len(a), len(b))``.

    Identical strings (including two empty strings) score 1.0.
    """
    if a == b:
        return 1.0

    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0

    return 1.0 - levenshtein_distance(a, b) / longest
