"""
Repositories for profiles, the candidate pool and comparison history.

Two implementations share one interface and are chosen once at process
start: ``MemoryRepository`` (dict-backed, writes serialized by a lock) for
tests and development, and ``SqlRepository`` (SQLAlchemy over SQLite).
Read operations never mutate state.
"""

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from itertools import count
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .database import ChannelRecord, CodeProfileRecord, ComparisonRecord, init_database
from .errors import GityapError
from .models import ActivityProfile, CandidateEntry, ChannelProfile, ComparisonOutcome
from .normalize import handle_key
from .retry import RetryError, exponential_backoff


class RepositoryError(GityapError):
    """A repository write or read failed."""


def _pair_key(outcome: ComparisonOutcome) -> str:
    return "|".join(outcome.pair_key())


def _exclusion_keys(exclude_handles: Optional[Iterable[str]]) -> set:
    return {handle_key(h) for h in (exclude_handles or []) if h and handle_key(h)}


class ActivityRepository:
    """Persistence contract used by the orchestrator."""

    def upsert_activity_profile(self, profile: ActivityProfile) -> None:
        raise NotImplementedError

    def upsert_channel_profile(self, channel: ChannelProfile) -> None:
        raise NotImplementedError

    def get_activity_profile(self, handle: str) -> Optional[ActivityProfile]:
        raise NotImplementedError

    def get_channel_profile(self, handle: str) -> Optional[ChannelProfile]:
        raise NotImplementedError

    def query_candidate_pool(self, exclude_handles: Optional[Iterable[str]] = None) -> List[CandidateEntry]:
        """Channels joined with code counters by handle, most posts first."""
        raise NotImplementedError

    def record_outcome(self, outcome: ComparisonOutcome) -> ComparisonOutcome:
        """Replace any outcome for the same kind and handle pair; return the stored outcome."""
        raise NotImplementedError

    def query_outcomes(self, limit: int = 10) -> List[ComparisonOutcome]:
        """Most recent outcomes first."""
        raise NotImplementedError

    def count_outcomes(self) -> int:
        raise NotImplementedError

    def code_leaderboard(self) -> List[ActivityProfile]:
        raise NotImplementedError

    def channel_leaderboard(self, by: str = "posts") -> List[ChannelProfile]:
        raise NotImplementedError

    def source_entry(self, channel_handle: str, code_handle: Optional[str] = None) -> CandidateEntry:
        """Counters of a match source; missing records count as 0."""
        channel = self.get_channel_profile(channel_handle)
        profile = self.get_activity_profile(code_handle or channel_handle)
        return CandidateEntry(
            handle=channel_handle,
            post_count=channel.post_count if channel else 0,
            commit_count=profile.commit_count if profile else 0,
        )

    def leaderboard_snapshot(self) -> Dict[str, Any]:
        return {
            "code": [
                {"username": p.handle, "avatarUrl": p.avatar_url, "commits": p.commit_count}
                for p in self.code_leaderboard()
            ],
            "channels": [c.to_dict() for c in self.channel_leaderboard("posts")],
            "channelsByParticipants": [c.to_dict() for c in self.channel_leaderboard("participants")],
            "comparisonsCount": self.count_outcomes(),
        }


class MemoryRepository(ActivityRepository):
    """Map-backed repository; one lock serializes writers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._profiles: Dict[str, ActivityProfile] = {}
        self._channels: Dict[str, ChannelProfile] = {}
        self._outcomes: List[tuple] = []  # (seq, outcome)
        self._seq = count(1)
        # Insertion order stands in for updated_at when ranking ties
        self._touched: Dict[str, int] = {}

    def upsert_activity_profile(self, profile: ActivityProfile) -> None:
        with self._lock:
            key = handle_key(profile.handle)
            self._profiles[key] = profile
            self._touched["code:" + key] = next(self._seq)

    def upsert_channel_profile(self, channel: ChannelProfile) -> None:
        with self._lock:
            key = handle_key(channel.handle)
            self._channels[key] = channel
            self._touched["channel:" + key] = next(self._seq)

    def get_activity_profile(self, handle: str) -> Optional[ActivityProfile]:
        return self._profiles.get(handle_key(handle))

    def get_channel_profile(self, handle: str) -> Optional[ChannelProfile]:
        return self._channels.get(handle_key(handle))

    def query_candidate_pool(self, exclude_handles: Optional[Iterable[str]] = None) -> List[CandidateEntry]:
        excluded = _exclusion_keys(exclude_handles)
        with self._lock:
            channels = [(k, c) for k, c in self._channels.items() if k not in excluded]
            profiles = dict(self._profiles)
        channels.sort(key=lambda kc: kc[1].post_count, reverse=True)
        return [
            CandidateEntry(
                handle=channel.handle,
                post_count=channel.post_count,
                commit_count=profiles[key].commit_count if key in profiles else 0,
            )
            for key, channel in channels
        ]

    def record_outcome(self, outcome: ComparisonOutcome) -> ComparisonOutcome:
        key = _pair_key(outcome)
        with self._lock:
            stored = replace(outcome, created_at=outcome.created_at or datetime.now())
            self._outcomes = [(seq, o) for seq, o in self._outcomes if _pair_key(o) != key]
            self._outcomes.append((next(self._seq), stored))
        return stored

    def query_outcomes(self, limit: int = 10) -> List[ComparisonOutcome]:
        with self._lock:
            ordered = sorted(self._outcomes, key=lambda so: (so[1].created_at, so[0]), reverse=True)
        return [o for _, o in ordered[:limit]]

    def count_outcomes(self) -> int:
        return len(self._outcomes)

    def code_leaderboard(self) -> List[ActivityProfile]:
        with self._lock:
            items = [(self._touched["code:" + k], p) for k, p in self._profiles.items()]
        items.sort(key=lambda tp: (tp[1].commit_count, tp[0]), reverse=True)
        return [p for _, p in items]

    def channel_leaderboard(self, by: str = "posts") -> List[ChannelProfile]:
        attr = "participant_count" if by == "participants" else "post_count"
        with self._lock:
            items = [(self._touched["channel:" + k], c) for k, c in self._channels.items()]
        items.sort(key=lambda tc: (getattr(tc[1], attr), tc[0]), reverse=True)
        return [c for _, c in items]


def _profile_from_record(row: CodeProfileRecord) -> ActivityProfile:
    return ActivityProfile(
        handle=row.handle,
        avatar_url=row.avatar_url or "",
        follower_count=row.followers or 0,
        following_count=row.following or 0,
        public_repo_count=row.public_repos or 0,
        commit_count=row.commit_count or 0,
        profile_url=row.profile_url or "",
        name=row.name,
        bio=row.bio,
    )


def _channel_from_record(row: ChannelRecord) -> ChannelProfile:
    return ChannelProfile(
        handle=row.handle,
        title=row.title or row.handle,
        post_count=row.post_count or 0,
        participant_count=row.participant_count or 0,
    )


def _outcome_from_record(row: ComparisonRecord) -> ComparisonOutcome:
    return ComparisonOutcome(
        left_handle=row.left_handle,
        left_type=row.left_type,
        right_handle=row.right_handle,
        right_type=row.right_type,
        left_score=row.left_score,
        right_score=row.right_score,
        winner=row.winner,
        kind=row.kind,
        left_avatar_url=row.left_avatar_url or "",
        right_avatar_url=row.right_avatar_url or "",
        created_at=row.created_at,
    )


_write_retry = exponential_backoff(max_retries=2, base_delay=0.1, exceptions=(OperationalError,))


class SqlRepository(ActivityRepository):
    """SQLite-backed repository. Each write is one transaction."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.engine = init_database(db_path)
        self._Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def _session(self):
        session = self._Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    def _write(self, func, *args):
        try:
            return _write_retry(func)(*args)
        except (SQLAlchemyError, RetryError) as e:
            raise RepositoryError(f"Database write failed: {e}")

    def _read(self, func, *args):
        try:
            return func(*args)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Database read failed: {e}")

    def upsert_activity_profile(self, profile: ActivityProfile) -> None:
        def write():
            with self._session() as s:
                row = s.get(CodeProfileRecord, handle_key(profile.handle))
                if row is None:
                    row = CodeProfileRecord(handle_key=handle_key(profile.handle))
                    s.add(row)
                row.handle = profile.handle
                row.avatar_url = profile.avatar_url
                row.name = profile.name
                row.bio = profile.bio
                row.profile_url = profile.profile_url
                row.public_repos = profile.public_repo_count
                row.commit_count = profile.commit_count
                row.followers = profile.follower_count
                row.following = profile.following_count
                row.updated_at = datetime.now()
        self._write(write)

    def upsert_channel_profile(self, channel: ChannelProfile) -> None:
        def write():
            with self._session() as s:
                row = s.get(ChannelRecord, handle_key(channel.handle))
                if row is None:
                    row = ChannelRecord(handle_key=handle_key(channel.handle))
                    s.add(row)
                row.handle = channel.handle
                row.title = channel.title
                row.post_count = channel.post_count
                row.participant_count = channel.participant_count
                row.updated_at = datetime.now()
        self._write(write)

    def get_activity_profile(self, handle: str) -> Optional[ActivityProfile]:
        def read():
            with self._session() as s:
                row = s.get(CodeProfileRecord, handle_key(handle))
                return _profile_from_record(row) if row else None
        return self._read(read)

    def get_channel_profile(self, handle: str) -> Optional[ChannelProfile]:
        def read():
            with self._session() as s:
                row = s.get(ChannelRecord, handle_key(handle))
                return _channel_from_record(row) if row else None
        return self._read(read)

    def query_candidate_pool(self, exclude_handles: Optional[Iterable[str]] = None) -> List[CandidateEntry]:
        excluded = _exclusion_keys(exclude_handles)

        def read():
            with self._session() as s:
                q = (
                    s.query(ChannelRecord.handle, ChannelRecord.post_count, CodeProfileRecord.commit_count)
                    .outerjoin(CodeProfileRecord, CodeProfileRecord.handle_key == ChannelRecord.handle_key)
                )
                if excluded:
                    q = q.filter(ChannelRecord.handle_key.notin_(excluded))
                q = q.order_by(ChannelRecord.post_count.desc(), ChannelRecord.updated_at.desc())
                return [
                    CandidateEntry(handle=h, post_count=posts or 0, commit_count=commits or 0)
                    for h, posts, commits in q.all()
                ]
        return self._read(read)

    def record_outcome(self, outcome: ComparisonOutcome) -> ComparisonOutcome:
        key = _pair_key(outcome)

        def write():
            with self._session() as s:
                s.query(ComparisonRecord).filter(ComparisonRecord.pair_key == key).delete(
                    synchronize_session=False
                )
                row = ComparisonRecord(
                    pair_key=key,
                    kind=outcome.kind,
                    left_handle=outcome.left_handle,
                    left_type=outcome.left_type,
                    left_avatar_url=outcome.left_avatar_url,
                    right_handle=outcome.right_handle,
                    right_type=outcome.right_type,
                    right_avatar_url=outcome.right_avatar_url,
                    left_score=outcome.left_score,
                    right_score=outcome.right_score,
                    winner=outcome.winner,
                    created_at=outcome.created_at or datetime.now(),
                )
                s.add(row)
                s.flush()
                return _outcome_from_record(row)
        return self._write(write)

    def query_outcomes(self, limit: int = 10) -> List[ComparisonOutcome]:
        def read():
            with self._session() as s:
                rows = (
                    s.query(ComparisonRecord)
                    .order_by(ComparisonRecord.created_at.desc(), ComparisonRecord.id.desc())
                    .limit(limit)
                    .all()
                )
                return [_outcome_from_record(r) for r in rows]
        return self._read(read)

    def count_outcomes(self) -> int:
        def read():
            with self._session() as s:
                return s.query(ComparisonRecord).count()
        return self._read(read)

    def code_leaderboard(self) -> List[ActivityProfile]:
        def read():
            with self._session() as s:
                rows = (
                    s.query(CodeProfileRecord)
                    .order_by(CodeProfileRecord.commit_count.desc(), CodeProfileRecord.updated_at.desc())
                    .all()
                )
                return [_profile_from_record(r) for r in rows]
        return self._read(read)

    def channel_leaderboard(self, by: str = "posts") -> List[ChannelProfile]:
        column = ChannelRecord.participant_count if by == "participants" else ChannelRecord.post_count

        def read():
            with self._session() as s:
                rows = s.query(ChannelRecord).order_by(column.desc(), ChannelRecord.updated_at.desc()).all()
                return [_channel_from_record(r) for r in rows]
        return self._read(read)


def open_repository(settings: Settings) -> ActivityRepository:
    """Repository selected by ``settings.store``."""
    if settings.store == "memory":
        return MemoryRepository()
    return SqlRepository(settings.database_path)
