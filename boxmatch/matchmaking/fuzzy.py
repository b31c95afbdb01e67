"""Fuzzy boxer name matching against a known roster."""

from dataclasses import dataclass

from boxmatch.matchmaking.types import BoxerSnapshot

DEFAULT_NAME_THRESHOLD = 0.6

EXACT_SCORE = 1.0
CONTAINS_SCORE = 0.9
PREFIX_SCORE = 0.85


@dataclass(frozen=True)
class NameMatch:
    """A roster boxer and how well their name matched the query."""

    boxer: BoxerSnapshot
    score: float


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance (insert / delete / substitute, unit cost)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def fuzzy_score(query: str, candidate: str) -> float:
    """Score how well a query matches a candidate name (0.0-1.0).

    Exact match scores 1.0, containment either way 0.9, a shared prefix
    0.85. Anything else falls back to normalised edit distance.
    """
    q = query.lower().strip()
    c = candidate.lower().strip()

    if q == c:
        return EXACT_SCORE
    if not q or not c:
        return 0.0

    if q in c or c in q:
        return CONTAINS_SCORE

    if c.startswith(q) or q.startswith(c):
        return PREFIX_SCORE

    distance = levenshtein_distance(q, c)
    return max(0.0, 1 - distance / max(len(q), len(c)))


def find_boxers_by_name(
    name_query: str,
    boxers: list[BoxerSnapshot],
    threshold: float = DEFAULT_NAME_THRESHOLD,
) -> list[NameMatch]:
    """Find roster boxers whose first, last or full name matches the query.

    Args:
        name_query: Name to search for
        boxers: Roster to match against
        threshold: Minimum score to keep a boxer

    Returns:
        Matches at or above the threshold, best first. Equal scores keep roster order.
    """
    results: list[NameMatch] = []
    for boxer in boxers:
        best_score = max(
            fuzzy_score(name_query, boxer.first_name),
            fuzzy_score(name_query, boxer.last_name),
            fuzzy_score(name_query, boxer.full_name),
        )
        if best_score >= threshold:
            results.append(NameMatch(boxer=boxer, score=best_score))

    return sorted(results, key=lambda match: match.score, reverse=True)
