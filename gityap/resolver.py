"""
Commit-count resolution.

Total commits for a handle are resolved best-effort, in tiers:

1. Aggregate tier: one commit-search call, ``total_count`` taken as is.
   Cheap, may lag behind the search index.
2. Enumeration tier: list every repository of the handle, then count the
   handle's commits in each one with a ``per_page=1`` listing whose
   ``rel="last"`` pagination link carries the count. Repository lookups run
   in batches of ``concurrency``; a batch completes before the next one is
   submitted.

Resolution never raises for count failures. Failed lookups count as 0 and
the sum accumulated so far is returned.
"""

import re
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .errors import GityapError, PartialEnrichmentFailure, RateLimited, UpstreamError
from .logger import StructuredLogger, get_logger
from .normalize import normalize_handle
from .retry import CircuitBreaker, CircuitOpenError
from .schema import validate_repo_list
from .sources.github import COMMIT_SEARCH_ACCEPT, UpstreamClient, UpstreamResponse

CONCURRENCY = 10
REPOS_PER_PAGE = 100

# [?&] keeps "per_page=1" from being read as the page number
LAST_PAGE_RE = re.compile(r'[?&]page=(\d+)[^>]*>;\s*rel="last"')


def parse_last_page(link_header: Optional[str]) -> Optional[int]:
    """Page number of the ``rel="last"`` link, or None when there is none."""
    if not link_header:
        return None
    match = LAST_PAGE_RE.search(link_header)
    return int(match.group(1)) if match else None


def _is_rate_limited(resp: UpstreamResponse) -> bool:
    return resp.status_code == 403 and resp.headers.get("x-ratelimit-remaining") == "0"


class CommitResolver:
    """Resolves total commit counts against the code-platform API."""

    def __init__(
        self,
        client: UpstreamClient,
        concurrency: int = CONCURRENCY,
        per_page: int = REPOS_PER_PAGE,
        logger: Optional[StructuredLogger] = None,
    ):
        self.client = client
        self.concurrency = concurrency
        self.per_page = per_page
        self.logger = logger or get_logger()

    def resolve_commit_count(
        self,
        handle: str,
        credential: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        """
        Best-effort total commit count for ``handle``.

        Args:
            handle: Code-platform handle (leading '@' allowed)
            credential: Bearer token overriding the client default
            cancel: Once set, no further pages or batches are requested

        Returns:
            Commit count; 0 when nothing could be resolved
        """
        clean = normalize_handle(handle)
        if not clean:
            return 0

        try:
            total = self.search_tier(clean, credential)
            self.logger.debug("Commit count resolved", handle=clean, tier="search", commits=total)
            return total
        except PartialEnrichmentFailure as e:
            self._degraded(clean, e)

        total = self.enumeration_tier(clean, credential, cancel)
        self.logger.debug("Commit count resolved", handle=clean, tier="enumeration", commits=total)
        return total

    def _degraded(self, handle: str, failure: PartialEnrichmentFailure) -> None:
        self.logger.record_enrichment_failure(failure.tier)
        self.logger.info("Commit count degraded", handle=handle, tier=failure.tier, error=str(failure.cause))

    # Tier 1

    def search_tier(self, handle: str, credential: Optional[str] = None) -> int:
        """
        Raises:
            PartialEnrichmentFailure: Search unavailable or returned no usable count
        """
        try:
            resp = self.client.fetch_json(
                "/search/commits", {"q": f"author:{handle}"}, credential, accept=COMMIT_SEARCH_ACCEPT
            )
        except GityapError as e:
            raise PartialEnrichmentFailure("search", e)
        if not resp.ok:
            raise PartialEnrichmentFailure("search", UpstreamError(f"HTTP {resp.status_code}", resp.status_code, resp.reason))

        total = resp.body.get("total_count") if isinstance(resp.body, dict) else None
        if not isinstance(total, int) or isinstance(total, bool) or total < 0:
            raise PartialEnrichmentFailure("search", UpstreamError("missing total_count"))
        return total

    # Tier 2

    def list_repositories(
        self,
        handle: str,
        credential: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[str]:
        """Names of all repositories of ``handle``; stops early on the first failed page."""
        names: List[str] = []
        page = 1
        while cancel is None or not cancel.is_set():
            try:
                resp = self.client.fetch_json(
                    f"/users/{handle}/repos",
                    {"per_page": self.per_page, "page": page, "sort": "updated"},
                    credential,
                )
            except GityapError as e:
                self._degraded(handle, PartialEnrichmentFailure("repositories", e))
                break
            if not resp.ok:
                self._degraded(handle, PartialEnrichmentFailure(
                    "repositories", UpstreamError(f"HTTP {resp.status_code}", resp.status_code, resp.reason)
                ))
                break

            errors = validate_repo_list(resp.body)
            if errors:
                self._degraded(handle, PartialEnrichmentFailure("repositories", UpstreamError("; ".join(errors))))
                break
            if not resp.body:
                break

            names.extend(repo["name"] for repo in resp.body)
            if len(resp.body) < self.per_page:
                break
            page += 1
        return names

    def count_repository_commits(self, handle: str, repo: str, credential: Optional[str] = None) -> int:
        """
        Commits authored by ``handle`` in ``handle/repo``.

        Raises:
            RateLimited: Upstream quota exhausted
            UpstreamError: Transport failure or unexpected body
        """
        resp = self.client.fetch_json(
            f"/repos/{handle}/{repo}/commits", {"author": handle, "per_page": 1}, credential
        )
        if _is_rate_limited(resp):
            raise RateLimited()
        if not resp.ok:
            return 0

        link = resp.headers.get("link")
        if link:
            last = parse_last_page(link)
            return last if last is not None else 1

        if not isinstance(resp.body, list):
            raise UpstreamError(f"Unexpected commit listing for {handle}/{repo}")
        return len(resp.body)

    def _count_or_zero(self, handle: str, repo: str, credential: Optional[str], breaker: CircuitBreaker) -> int:
        if breaker.is_open:
            return 0
        try:
            return breaker.call(self.count_repository_commits, handle, repo, credential)
        except (GityapError, CircuitOpenError) as e:
            self.logger.record_enrichment_failure("repository")
            self.logger.debug("Repository commit count failed", handle=handle, repo=repo, error=str(e))
            return 0

    def enumeration_tier(
        self,
        handle: str,
        credential: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> int:
        repos = self.list_repositories(handle, credential, cancel)
        if not repos:
            return 0

        # One rate-limit response stops the rest of this resolution from spending quota
        breaker = CircuitBreaker(failure_threshold=1, expected_exception=RateLimited)
        total = 0
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="commits") as pool:
            for start in range(0, len(repos), self.concurrency):
                if cancel is not None and cancel.is_set():
                    break
                batch = repos[start:start + self.concurrency]
                futures = [
                    pool.submit(self._count_or_zero, handle, repo, credential, breaker)
                    for repo in batch
                ]
                total += sum(f.result() for f in futures)
        return total
