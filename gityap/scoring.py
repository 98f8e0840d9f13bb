"""
Scoring module: maps raw activity counters to comparable scalar scores.

Both scores damp every counter with log10 so a single huge number (a
viral channel, a bot-like commit stream) cannot dominate. Commit volume
carries the most weight on the code side; posting cadence carries the most
weight on the channel side.
"""

import math
from typing import Any, Dict

from .models import CHANNEL, CODE, DRAW, LEFT, RIGHT, ActivityProfile, ChannelProfile, ScoreSample

ACTIVITY_TARGET = 100_000


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _damp(count: int) -> float:
    return math.log10(max(count, 0) + 1)


def code_score(commits: int, followers: int, public_repos: int) -> int:
    return _round_half_up(_damp(commits) * 15 + _damp(followers) * 10 + _damp(public_repos) * 5)


def channel_score(participants: int, posts: int) -> int:
    return _round_half_up(_damp(participants) * 10 + _damp(posts) * 15)


def score_activity(profile: ActivityProfile) -> ScoreSample:
    counters = {
        "commits": profile.commit_count,
        "followers": profile.follower_count,
        "publicRepos": profile.public_repo_count,
    }
    return ScoreSample(
        source=CODE,
        counters=counters,
        score=code_score(profile.commit_count, profile.follower_count, profile.public_repo_count),
    )


def score_channel(channel: ChannelProfile) -> ScoreSample:
    counters = {"participants": channel.participant_count, "posts": channel.post_count}
    return ScoreSample(
        source=CHANNEL,
        counters=counters,
        score=channel_score(channel.participant_count, channel.post_count),
    )


def decide_winner(left_score: int, right_score: int) -> str:
    if left_score > right_score:
        return LEFT
    if right_score > left_score:
        return RIGHT
    return DRAW


def progress_to_target(current: int, target: int = ACTIVITY_TARGET) -> Dict[str, Any]:
    """How far ``current`` is toward ``target`` (percent capped at 100)."""
    return {
        "current": current,
        "target": target,
        "percent": min(current / target * 100, 100.0),
        "remaining": max(target - current, 0),
    }


def activity_breakdown(commits: int, posts: int) -> Dict[str, Any]:
    """Raw commits-vs-posts view shown next to the scores."""
    return {
        "commitsVsPosts": {
            "commits": commits,
            "posts": posts,
            "total": commits + posts,
            "difference": abs(commits - posts),
            "winner": decide_winner(commits, posts),
            "commitsProgress": progress_to_target(commits),
            "postsProgress": progress_to_target(posts),
        }
    }
