"""
Tests for score calculation.
"""

import itertools

import pytest

from gityap.models import ActivityProfile, ChannelProfile
from gityap.scoring import (
    activity_breakdown,
    channel_score,
    code_score,
    decide_winner,
    progress_to_target,
    score_activity,
    score_channel,
)

COUNTS = [0, 1, 9, 10, 99, 630, 1000, 123456]


class TestCodeScore:
    """Code-side score."""

    def test_zero_activity(self):
        assert code_score(0, 0, 0) == 0

    def test_known_values(self):
        # log10(10) == 1 for each counter
        assert code_score(9, 9, 9) == 30
        assert code_score(99, 0, 0) == 30
        assert code_score(0, 99, 0) == 20
        assert code_score(0, 0, 99) == 10

    def test_never_negative(self):
        for c, f, r in itertools.product(COUNTS, repeat=3):
            assert code_score(c, f, r) >= 0

    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_non_decreasing_in_each_argument(self, position):
        base = [5, 5, 5]
        previous = None
        for value in COUNTS:
            args = list(base)
            args[position] = value
            score = code_score(*args)
            if previous is not None:
                assert score >= previous
            previous = score


class TestChannelScore:
    """Channel-side score."""

    def test_zero_activity(self):
        assert channel_score(0, 0) == 0

    def test_known_values(self):
        assert channel_score(9, 9) == 25
        assert channel_score(0, 99) == 30
        assert channel_score(99, 0) == 20

    def test_non_decreasing(self):
        for participants in COUNTS:
            scores = [channel_score(participants, posts) for posts in COUNTS]
            assert scores == sorted(scores)
        for posts in COUNTS:
            scores = [channel_score(participants, posts) for participants in COUNTS]
            assert scores == sorted(scores)


class TestSamples:
    """Score samples built from profiles."""

    def test_activity_sample(self):
        profile = ActivityProfile(handle="octocat", commit_count=99, follower_count=9, public_repo_count=9)
        sample = score_activity(profile)
        assert sample.source == "code"
        assert sample.counters == {"commits": 99, "followers": 9, "publicRepos": 9}
        assert sample.score == 30 + 10 + 5

    def test_channel_sample(self):
        sample = score_channel(ChannelProfile(handle="yap", title="Yap", post_count=99, participant_count=9))
        assert sample.source == "channel"
        assert sample.score == 30 + 10


class TestVerdict:
    """Winner derivation."""

    def test_draw(self):
        assert decide_winner(42, 42) == "draw"

    def test_left(self):
        assert decide_winner(50, 10) == "left"

    def test_right(self):
        assert decide_winner(10, 50) == "right"


class TestBreakdown:
    """Commits-vs-posts view."""

    def test_progress_is_capped(self):
        assert progress_to_target(250_000)["percent"] == 100.0
        assert progress_to_target(250_000)["remaining"] == 0

    def test_progress_partial(self):
        progress = progress_to_target(25_000)
        assert progress["percent"] == pytest.approx(25.0)
        assert progress["remaining"] == 75_000

    def test_breakdown(self):
        view = activity_breakdown(commits=300, posts=1000)["commitsVsPosts"]
        assert view["total"] == 1300
        assert view["difference"] == 700
        assert view["winner"] == "right"
