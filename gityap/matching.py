"""
Best-match ranking over the candidate pool.

Given the source's counters, the pool is narrowed to its most active
entries, each candidate is scored by a combined normalized distance
(posts and commits weighted equally), and the nearest one wins. Ties keep
pool order. A categorical reason explains the pairing.

Deterministic: identical inputs always produce the same match.
"""

from typing import Iterable, List, Optional

from .models import CandidateEntry, MatchResult
from .normalize import handle_key

TOP_K = 5
POSTS_WEIGHT = 0.5
COMMITS_WEIGHT = 0.5

STRONG_THRESHOLD = 100
MOMENTUM_THRESHOLD = 50

REASON_STRONG_IN_BOTH = "Strong in both commits and posts. This team can ship and amplify."
REASON_POWER_YAPPERS = "Two power-yappers joining forces. This startup will be heard in the next galaxy."
REASON_BUILDERS = "Two strong builders pairing up. High shipping velocity potential."
REASON_MOMENTUM = "You have the momentum, they have the reach. A perfect match for scale."
REASON_VOLUME = "They provide the volume you've been looking for. Synergy in every post."
REASON_FALLBACK = "Complementary voices for a unified broadcast strategy."


def _relative_gap(a: int, b: int) -> float:
    return abs(a - b) / max(a, b, 1)


def combined_distance(source: CandidateEntry, candidate: CandidateEntry) -> float:
    """Weighted sum of the normalized post and commit gaps, in [0, 1]."""
    return (
        POSTS_WEIGHT * _relative_gap(source.post_count, candidate.post_count)
        + COMMITS_WEIGHT * _relative_gap(source.commit_count, candidate.commit_count)
    )


def match_reason(source: CandidateEntry, candidate: CandidateEntry) -> str:
    """First rule that fires, in fixed priority order."""
    both_post = source.post_count > STRONG_THRESHOLD and candidate.post_count > STRONG_THRESHOLD
    both_commit = source.commit_count > STRONG_THRESHOLD and candidate.commit_count > STRONG_THRESHOLD

    if both_post and both_commit:
        return REASON_STRONG_IN_BOTH
    if both_post:
        return REASON_POWER_YAPPERS
    if both_commit:
        return REASON_BUILDERS
    if source.post_count > MOMENTUM_THRESHOLD or source.commit_count > MOMENTUM_THRESHOLD:
        return REASON_MOMENTUM
    if candidate.post_count > MOMENTUM_THRESHOLD or candidate.commit_count > MOMENTUM_THRESHOLD:
        return REASON_VOLUME
    return REASON_FALLBACK


def shortlist(
    source_handle: str,
    pool: Iterable[CandidateEntry],
    exclude_handle: Optional[str] = None,
    top_k: int = TOP_K,
) -> List[CandidateEntry]:
    """Eligible candidates: source/excluded handles removed, top ``top_k`` by posts."""
    excluded = {handle_key(source_handle)}
    if exclude_handle and handle_key(exclude_handle):
        excluded.add(handle_key(exclude_handle))

    eligible = [c for c in pool if c.handle and handle_key(c.handle) not in excluded]
    # sorted() is stable, so equal post counts keep pool order
    return sorted(eligible, key=lambda c: c.post_count, reverse=True)[:top_k]


def find_best_match(
    source: CandidateEntry,
    pool: Iterable[CandidateEntry],
    exclude_handle: Optional[str] = None,
    top_k: int = TOP_K,
) -> MatchResult:
    """
    Nearest candidate to ``source`` and the reason for the pairing.

    Args:
        source: The source handle with its post and commit counters
        pool: Candidate pool snapshot
        exclude_handle: Optional extra handle to leave out (case-insensitive)
        top_k: How many of the most active candidates to rank

    Returns:
        MatchResult; empty (handle and reason None) when no candidate remains
    """
    candidates = shortlist(source.handle, pool, exclude_handle, top_k)
    if not candidates:
        return MatchResult()

    # min() keeps the first of equally distant candidates
    best = min(candidates, key=lambda c: combined_distance(source, c))
    return MatchResult(handle=best.handle, reason=match_reason(source, best))
