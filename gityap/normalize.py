"""Handle normalization and the fuzzy handle match used to guess code handles."""


def normalize_handle(handle: str) -> str:
    """Strip surrounding whitespace and any leading '@'."""
    return (handle or "").strip().lstrip("@").strip()


def handle_key(handle: str) -> str:
    """Case-insensitive comparison key for a handle."""
    return normalize_handle(handle).lower()


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr[j] = min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost)
        prev = curr
    return prev[-1]


def is_high_confidence_match(query: str, login: str) -> bool:
    """
    Whether ``login`` is plausibly the same person as ``query``.

    Accepts an exact match, a prefix match in either direction with a length
    difference of at most 2, or an edit distance of at most 1.
    """
    q = handle_key(query)
    l = handle_key(login)
    if not q or not l:
        return False
    if q == l:
        return True
    if (l.startswith(q) or q.startswith(l)) and abs(len(q) - len(l)) <= 2:
        return True
    return levenshtein_distance(q, l) <= 1
