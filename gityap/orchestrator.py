"""
Reconciliation orchestrator: the public comparison and matching operations.

Both sides of a comparison resolve in parallel. Existence failures
(NotFound, RateLimited, Unauthenticated, UpstreamError) propagate; commit
enrichment and the code-handle guess degrade silently. Recording the
outcome is best-effort and logged either way. Read operations never write.
"""

import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import GityapError, NotFound, ResolutionTimeout
from .logger import StructuredLogger, get_logger
from .matching import find_best_match
from .models import (
    CHANNEL,
    CHANNEL_VS_CHANNEL,
    CODE,
    USER_VS_CHANNEL,
    ActivityProfile,
    ChannelProfile,
    ComparisonOutcome,
    ComparisonResult,
    MatchResult,
)
from .normalize import is_high_confidence_match, normalize_handle
from .resolver import CommitResolver
from .scoring import activity_breakdown, decide_winner, score_activity, score_channel
from .sources.channels import ChannelInfoProvider
from .sources.github import UpstreamClient
from .storage import ActivityRepository

SEARCH_RESULTS = 5


class Reconciler:
    """Composes resolver, scorer, ranker and repository into the public operations."""

    def __init__(
        self,
        client: UpstreamClient,
        channels: ChannelInfoProvider,
        repository: ActivityRepository,
        resolver: Optional[CommitResolver] = None,
        timeout: Optional[float] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.client = client
        self.channels = channels
        self.repository = repository
        self.logger = logger or get_logger()
        self.resolver = resolver or CommitResolver(client, logger=self.logger)
        self.timeout = timeout

    # Parallel execution with an outer deadline

    def _run_pair(
        self,
        left: Callable[[threading.Event], Any],
        right: Callable[[threading.Event], Any],
        timeout: Optional[float],
    ) -> Tuple[Any, Any]:
        left_result, right_result = self._run_within([left, right], timeout)
        return left_result, right_result

    def _run_within(self, calls: List[Callable[[threading.Event], Any]], timeout: Optional[float]) -> List[Any]:
        """
        Run the callables in parallel and return their results in order.

        The first exception raised by any of them propagates. On timeout the
        cancel event is set so the resolver stops issuing requests, and
        whatever it had accumulated is discarded.
        """
        timeout = timeout if timeout is not None else self.timeout
        cancel = threading.Event()
        pool = ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="reconcile")
        try:
            futures = [pool.submit(call, cancel) for call in calls]
            done, pending = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)
            for f in done:
                if f.exception() is not None:
                    cancel.set()
                    raise f.exception()
            if pending:
                cancel.set()
                self.logger.record_upstream_error("Timeout")
                self.logger.warning("Resolution timed out", timeout=timeout)
                raise ResolutionTimeout(timeout)
            return [f.result() for f in futures]
        finally:
            pool.shutdown(wait=False)

    # Collaborator ingress

    def fetch_code_profile(
        self,
        handle: str,
        credential: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ActivityProfile:
        """
        Profile plus best-effort commit count for ``handle``.

        Raises:
            NotFound: Empty handle or unknown user
            RateLimited: Upstream quota exhausted
            UpstreamError: Any other upstream failure
        """
        clean = normalize_handle(handle)
        if not clean:
            raise NotFound("GitHub username is required")
        profile = ActivityProfile.from_payload(self.client.fetch_user(clean, credential))
        commits = self.resolver.resolve_commit_count(profile.handle, credential, cancel)
        return profile.with_commits(commits)

    def fetch_channel_profile(self, handle: str, session: Optional[str]) -> ChannelProfile:
        channel = self.channels.resolve(handle, session)
        if not isinstance(channel, ChannelProfile):
            channel = ChannelProfile.from_payload(channel)
        return channel

    def search_code_profiles(self, query: str, credential: Optional[str] = None) -> List[ActivityProfile]:
        """Up to five enriched profiles for a user search; individual failures are skipped."""
        profiles = []
        for login in self.client.search_user_logins(query, credential, limit=SEARCH_RESULTS):
            try:
                profiles.append(self.fetch_code_profile(login, credential))
            except GityapError as e:
                self.logger.debug("Skipping search result", login=login, error=e.message)
        return profiles

    def guess_code_handle(self, query: str, credential: Optional[str] = None) -> Optional[str]:
        """First high-confidence code handle for ``query``, or None on any failure."""
        clean = normalize_handle(query)
        if not clean:
            return None
        try:
            logins = self.client.search_user_logins(clean, credential, limit=SEARCH_RESULTS)
        except GityapError as e:
            self.logger.record_enrichment_failure("handle_guess")
            self.logger.info("Code handle guess failed", query=clean, error=e.message)
            return None
        return next((login for login in logins if is_high_confidence_match(clean, login)), None)

    # Recording

    def _record(self, outcome: ComparisonOutcome, *profiles) -> bool:
        try:
            for p in profiles:
                if isinstance(p, ActivityProfile):
                    self.repository.upsert_activity_profile(p)
                else:
                    self.repository.upsert_channel_profile(p)
            self.repository.record_outcome(outcome)
        except GityapError as e:
            self.logger.record_outcome_write(False)
            self.logger.error(
                "Failed to record outcome",
                kind=outcome.kind,
                left=outcome.left_handle,
                right=outcome.right_handle,
                error=e.message,
            )
            return False
        self.logger.record_outcome_write(True)
        self.logger.info(
            "Outcome recorded",
            kind=outcome.kind,
            left=outcome.left_handle,
            right=outcome.right_handle,
            winner=outcome.winner,
        )
        return True

    # Public operations

    def compare_entities(
        self,
        code_handle: str,
        channel_handle: str,
        session: Optional[str] = None,
        credential: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ComparisonResult:
        """
        Builder (code handle) vs talker (channel handle).

        Returns:
            ComparisonResult; ``recorded`` tells whether persisting succeeded

        Raises:
            NotFound, RateLimited, Unauthenticated, UpstreamError: From either side
            ResolutionTimeout: Deadline elapsed
        """
        profile, channel = self._run_pair(
            lambda cancel: self.fetch_code_profile(code_handle, credential, cancel),
            lambda cancel: self.fetch_channel_profile(channel_handle, session),
            timeout,
        )

        left = score_activity(profile)
        right = score_channel(channel)
        outcome = ComparisonOutcome(
            left_handle=profile.handle,
            left_type=CODE,
            right_handle=channel.handle,
            right_type=CHANNEL,
            left_score=left.score,
            right_score=right.score,
            winner=decide_winner(left.score, right.score),
            kind=USER_VS_CHANNEL,
            left_avatar_url=profile.avatar_url,
            right_avatar_url=channel.avatar_url,
        )
        recorded = self._record(outcome, profile, channel)
        return ComparisonResult(
            outcome=outcome,
            left=profile,
            right=channel,
            breakdown=activity_breakdown(profile.commit_count, channel.post_count),
            recorded=recorded,
        )

    def _channel_commits(
        self,
        channel: ChannelProfile,
        code_hint: Optional[str],
        credential: Optional[str],
        cancel: Optional[threading.Event],
    ) -> int:
        """Commit count behind a channel, tried from cheapest to dearest; 0 if none."""
        lookup = normalize_handle(code_hint or "") or channel.handle
        stored = self.repository.get_activity_profile(lookup)
        if stored and stored.commit_count:
            return stored.commit_count

        if code_hint:
            try:
                return self.fetch_code_profile(lookup, credential, cancel).commit_count
            except GityapError as e:
                self.logger.debug("Code hint did not resolve", hint=lookup, error=e.message)

        guess = self.guess_code_handle(lookup, credential)
        if guess:
            try:
                return self.fetch_code_profile(guess, credential, cancel).commit_count
            except GityapError as e:
                self.logger.debug("Guessed handle did not resolve", guess=guess, error=e.message)
        self.logger.record_enrichment_failure("channel_commits")
        return 0

    def compare_channels(
        self,
        channel_a: str,
        channel_b: str,
        session: Optional[str] = None,
        code_hint_a: Optional[str] = None,
        code_hint_b: Optional[str] = None,
        credential: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ComparisonResult:
        """Talker vs talker, with best-effort commit counts behind each channel."""

        def side(handle, hint):
            def run(cancel):
                channel = self.fetch_channel_profile(handle, session)
                return channel, self._channel_commits(channel, hint, credential, cancel)
            return run

        (left, left_commits), (right, right_commits) = self._run_pair(
            side(channel_a, code_hint_a), side(channel_b, code_hint_b), timeout
        )

        left_score = score_channel(left).score
        right_score = score_channel(right).score
        outcome = ComparisonOutcome(
            left_handle=left.handle,
            left_type=CHANNEL,
            right_handle=right.handle,
            right_type=CHANNEL,
            left_score=left_score,
            right_score=right_score,
            winner=decide_winner(left_score, right_score),
            kind=CHANNEL_VS_CHANNEL,
            left_avatar_url=left.avatar_url,
            right_avatar_url=right.avatar_url,
        )
        recorded = self._record(outcome, left, right)
        return ComparisonResult(
            outcome=outcome,
            left=left,
            right=right,
            breakdown={"commits": {"left": left_commits, "right": right_commits}},
            recorded=recorded,
        )

    def find_cofounder_match(
        self,
        channel_handle: str,
        code_handle_hint: Optional[str] = None,
        exclude_handle: Optional[str] = None,
        credential: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> MatchResult:
        """
        Nearest previously observed channel to ``channel_handle``.

        The code-handle guess for the match is optional enrichment and is
        left out when it cannot be resolved.

        Raises:
            ResolutionTimeout: Deadline elapsed before the match was ready
        """
        source_handle = normalize_handle(channel_handle)
        hint = normalize_handle(code_handle_hint or "") or None
        exclude = normalize_handle(exclude_handle or "") or None

        def run(cancel):
            source = self.repository.source_entry(source_handle, hint)
            pool = self.repository.query_candidate_pool([h for h in (source_handle, exclude) if h])
            match = find_best_match(source, pool, exclude)
            if not match.found:
                self.logger.info("No match candidates", source=source_handle)
                return match

            guess = self.guess_code_handle(match.handle, credential)
            self.logger.info("Match found", source=source_handle, match=match.handle, guess=guess)
            return MatchResult(handle=match.handle, reason=match.reason, code_handle_guess=guess)

        [result] = self._run_within([run], timeout)
        return result

    def leaderboard(self) -> Dict[str, Any]:
        return self.repository.leaderboard_snapshot()

    def recent_comparisons(self, limit: int = 10) -> List[Dict[str, Any]]:
        return [o.to_dict() for o in self.repository.query_outcomes(limit)]
