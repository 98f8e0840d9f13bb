"""Authenticated client for the code-platform REST API."""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from ..config import DEFAULT_API_URL
from ..errors import NotFound, RateLimited, UpstreamError
from ..logger import StructuredLogger, get_logger

ACCEPT = "application/vnd.github.v3+json"
COMMIT_SEARCH_ACCEPT = "application/vnd.github.cloak-preview+json"
USER_AGENT = "Gityap-App"
POOL_SIZE = 10


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    headers: Mapping[str, str]
    body: Any
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class UpstreamClient:
    """
    Thin wrapper over a shared ``requests.Session``.

    ``fetch_json`` never retries and never raises on HTTP status; callers
    inspect the status or pass the response through ``raise_for_status``.
    Transport and decode failures are raised as ``UpstreamError``.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or get_logger()
        self.session = session or requests.Session()
        if session is None:
            self.session.mount(self.base_url, HTTPAdapter(pool_connections=1, pool_maxsize=POOL_SIZE))

    def headers(self, credential: Optional[str] = None, accept: str = ACCEPT) -> Dict[str, str]:
        headers = {"Accept": accept, "User-Agent": USER_AGENT}
        token = credential or self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def fetch_json(
        self,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        credential: Optional[str] = None,
        accept: str = ACCEPT,
    ) -> UpstreamResponse:
        """
        GET ``path`` relative to the API base.

        Args:
            path: API path, e.g. "/users/octocat"
            query: Query string parameters
            credential: Bearer token overriding the client default
            accept: Accept header value

        Returns:
            UpstreamResponse; body is None for non-2xx responses without JSON

        Raises:
            UpstreamError: On transport failure or undecodable 2xx body
        """
        url = f"{self.base_url}{path}"
        self.logger.record_api_call()
        try:
            resp = self.session.get(
                url, params=query, headers=self.headers(credential, accept), timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            self.logger.record_upstream_error("Timeout")
            raise UpstreamError("GitHub request timed out. Try again later.")
        except requests.exceptions.RequestException as e:
            self.logger.record_upstream_error("RequestException")
            raise UpstreamError(f"GitHub request error: {e}")

        body = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                if resp.ok:
                    self.logger.record_upstream_error("DecodeError")
                    raise UpstreamError(f"GitHub returned an undecodable body for {path}")

        return UpstreamResponse(
            status_code=resp.status_code,
            headers=resp.headers,
            body=body,
            reason=resp.reason or "",
        )

    def raise_for_status(self, resp: UpstreamResponse, subject: str = "") -> UpstreamResponse:
        """Map a non-2xx response onto the error taxonomy."""
        if resp.ok:
            return resp
        if resp.status_code == 404:
            self.logger.record_upstream_error("NotFound")
            raise NotFound(f"GitHub user \"{subject}\" not found" if subject else "GitHub resource not found")
        if resp.status_code == 403 and resp.headers.get("x-ratelimit-remaining") == "0":
            self.logger.record_upstream_error("RateLimited")
            raise RateLimited()
        self.logger.record_upstream_error(f"HTTP_{resp.status_code}")
        if resp.status_code == 403:
            raise UpstreamError(
                "GitHub API access denied. Check your GITHUB_TOKEN.", resp.status_code, resp.reason
            )
        raise UpstreamError(f"GitHub API error: {resp.reason}", resp.status_code, resp.reason)

    def get_json(self, path: str, query: Optional[Dict[str, Any]] = None, credential: Optional[str] = None,
                 accept: str = ACCEPT, subject: str = "") -> Any:
        return self.raise_for_status(self.fetch_json(path, query, credential, accept), subject).body

    def fetch_user(self, handle: str, credential: Optional[str] = None) -> Dict[str, Any]:
        """Raw ``/users/{handle}`` body; NotFound/RateLimited/UpstreamError on failure."""
        return self.get_json(f"/users/{handle}", credential=credential, subject=handle)

    def search_user_logins(self, query: str, credential: Optional[str] = None, limit: int = 5) -> List[str]:
        """Logins of the top ``limit`` results of a user search."""
        body = self.get_json("/search/users", {"q": query.strip(), "per_page": 10}, credential=credential)
        items = body.get("items") if isinstance(body, dict) else None
        if not isinstance(items, list):
            raise UpstreamError("GitHub user search returned no items list")
        logins = [item.get("login") for item in items if isinstance(item, dict)]
        return [login for login in logins if isinstance(login, str) and login][:limit]
