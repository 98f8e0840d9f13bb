"""
Value objects passed between the resolver, the ranker, the orchestrator and
the repositories.

Upstream JSON is turned into these records at the collaborator boundary
(``from_payload``); nothing past the orchestrator ingress sees raw dicts.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import ValidationError
from .normalize import normalize_handle
from .schema import channel_field, validate_channel_payload, validate_user_payload

CODE = "code"
CHANNEL = "channel"

LEFT = "left"
RIGHT = "right"
DRAW = "draw"

USER_VS_CHANNEL = "user_vs_channel"
CHANNEL_VS_CHANNEL = "channel_vs_channel"


@dataclass(frozen=True)
class ActivityProfile:
    """Resolved activity counters for one code-platform handle."""
    handle: str
    avatar_url: str = ""
    follower_count: int = 0
    following_count: int = 0
    public_repo_count: int = 0
    commit_count: int = 0
    profile_url: str = ""
    name: Optional[str] = None
    bio: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any], commit_count: int = 0) -> "ActivityProfile":
        errors = validate_user_payload(data)
        if errors:
            raise ValidationError("user", errors)
        return cls(
            handle=data["login"],
            avatar_url=data.get("avatar_url") or "",
            follower_count=data["followers"],
            following_count=data["following"],
            public_repo_count=data["public_repos"],
            commit_count=commit_count,
            profile_url=data.get("html_url") or "",
            name=data.get("name"),
            bio=data.get("bio"),
        )

    def with_commits(self, commit_count: int) -> "ActivityProfile":
        return replace(self, commit_count=commit_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.handle,
            "avatarUrl": self.avatar_url,
            "profileUrl": self.profile_url,
            "followers": self.follower_count,
            "following": self.following_count,
            "publicRepos": self.public_repo_count,
            "commits": self.commit_count,
        }


@dataclass(frozen=True)
class ChannelProfile:
    """Counters for one messaging channel, as supplied by the channel collaborator."""
    handle: str
    title: str
    post_count: int = 0
    participant_count: int = 0

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ChannelProfile":
        errors = validate_channel_payload(data)
        if errors:
            raise ValidationError("channel", errors)
        handle = normalize_handle(data["username"])
        return cls(
            handle=handle,
            title=data.get("title") or handle,
            post_count=channel_field(data, "postCount"),
            participant_count=channel_field(data, "participantsCount"),
        )

    @property
    def avatar_url(self) -> str:
        return f"https://t.me/i/userpic/320/{self.handle}.jpg" if self.handle else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.handle,
            "title": self.title,
            "avatarUrl": self.avatar_url,
            "participants": self.participant_count,
            "posts": self.post_count,
        }


@dataclass(frozen=True)
class ScoreSample:
    source: str  # CODE or CHANNEL
    counters: Dict[str, int]
    score: int


@dataclass(frozen=True)
class CandidateEntry:
    """Channel and code counters joined by handle, as used for ranking."""
    handle: str
    post_count: int = 0
    commit_count: int = 0


@dataclass(frozen=True)
class ComparisonOutcome:
    """Durable record of one head-to-head comparison."""
    left_handle: str
    left_type: str
    right_handle: str
    right_type: str
    left_score: int
    right_score: int
    winner: str
    kind: str = USER_VS_CHANNEL
    left_avatar_url: str = ""
    right_avatar_url: str = ""
    created_at: Optional[datetime] = None

    def pair_key(self) -> tuple:
        """
        Identity used to supersede earlier records of the same pair.

        Sides keep their order when their types differ; same-type pairs are
        unordered, so B vs A supersedes A vs B.
        """
        sides = [(self.left_type, self.left_handle.lower()), (self.right_type, self.right_handle.lower())]
        if self.left_type == self.right_type:
            sides.sort()
        return (self.kind,) + sides[0] + sides[1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "left": {"username": self.left_handle, "avatarUrl": self.left_avatar_url, "type": self.left_type},
            "right": {"username": self.right_handle, "avatarUrl": self.right_avatar_url, "type": self.right_type},
            "leftScore": self.left_score,
            "rightScore": self.right_score,
            "winner": self.winner,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class ComparisonResult:
    """What a comparison hands back to the presentation layer."""
    outcome: ComparisonOutcome
    left: Any  # ActivityProfile or ChannelProfile
    right: ChannelProfile
    breakdown: Dict[str, Any] = field(default_factory=dict)
    recorded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        left = dict(self.left.to_dict(), score=self.outcome.left_score)
        right = dict(self.right.to_dict(), score=self.outcome.right_score)
        return {
            "left": left,
            "right": right,
            "comparison": {
                "winner": self.outcome.winner,
                "score": abs(self.outcome.left_score - self.outcome.right_score),
                **self.breakdown,
            },
        }


@dataclass(frozen=True)
class MatchResult:
    handle: Optional[str] = None
    reason: Optional[str] = None
    code_handle_guess: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.handle is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {"handle": self.handle, "reason": self.reason}
        if self.code_handle_guess:
            data["codeHandleGuess"] = self.code_handle_guess
        return data
