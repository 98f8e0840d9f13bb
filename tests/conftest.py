"""
Pytest configuration and shared fixtures.

The code-platform API is replaced by ``FakeGitHub``, a requests transport
adapter mounted on the client's session. It routes by path, can delay every
response, and counts how many requests are in flight at once.
"""

import json
import threading
import time
from http import HTTPStatus
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qsl, urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from gityap.logger import StructuredLogger, get_logger, reset_logger
from gityap.orchestrator import Reconciler
from gityap.resolver import CommitResolver
from gityap.sources.channels import StaticChannelProvider
from gityap.sources.github import UpstreamClient
from gityap.storage import MemoryRepository

API = "https://api.test"
SESSION = "valid-session"


class FakeGitHub(BaseAdapter):
    """Path-routed fake of the code-platform REST API."""

    def __init__(self, delay: float = 0.0):
        super().__init__()
        self.routes: Dict[str, Any] = {}
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def add(self, path: str, body: Any = None, status: int = 200, headers: Optional[dict] = None):
        """Register a fixed response, or a callable(query) -> (status, body, headers)."""
        if callable(body):
            self.routes[path] = body
        else:
            self.routes[path] = lambda query: (status, body, headers or {})
        return self

    def paths(self):
        return [path for path, _ in self.calls]

    def send(self, request, **kwargs):
        parsed = urlparse(request.url)
        query = dict(parse_qsl(parsed.query))
        with self._lock:
            self.calls.append((parsed.path, query))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            route = self.routes.get(parsed.path)
            if route is None:
                status, body, headers = 404, {"message": "Not Found"}, {}
            else:
                status, body, headers = route(query)
        finally:
            with self._lock:
                self.in_flight -= 1

        if isinstance(status, Exception):
            raise status
        return _build_response(request, status, body, headers)

    def close(self):
        pass


def _build_response(request, status: int, body: Any, headers: dict) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = HTTPStatus(status).phrase
    resp.headers = CaseInsensitiveDict(headers)
    resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.encoding = "utf-8"
    resp.url = request.url
    resp.request = request
    return resp


def user_payload(login: str, followers: int = 0, following: int = 0, public_repos: int = 0) -> dict:
    return {
        "login": login,
        "id": 1,
        "avatar_url": f"https://avatars.test/{login}",
        "html_url": f"https://github.test/{login}",
        "name": None,
        "bio": None,
        "followers": followers,
        "following": following,
        "public_repos": public_repos,
    }


def last_page_link(handle: str, repo: str, last: int) -> str:
    base = f"{API}/repositories/1/commits?author={handle}&per_page=1"
    return f'<{base}&page=2>; rel="next", <{base}&page={last}>; rel="last"'


def commits_route(handle: str, repo: str, count: int) -> Callable:
    """Commit listing for one repository holding ``count`` commits by ``handle``."""
    def route(query):
        if count > 1:
            return 200, [{"sha": "x"}], {"link": last_page_link(handle, repo, count)}
        return 200, [{"sha": "x"}] * count, {}
    return route


def repos_route(names, per_page: int) -> Callable:
    def route(query):
        page = int(query.get("page", 1))
        chunk = names[(page - 1) * per_page: page * per_page]
        return 200, [{"name": n} for n in chunk], {}
    return route


@pytest.fixture(autouse=True)
def quiet_global_logger(tmp_path):
    """Keep the process-wide logger off the console and out of the working tree."""
    reset_logger()
    get_logger(log_dir=tmp_path, enable_console=False)
    yield
    reset_logger()


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(name="gityap-test", level="DEBUG", enable_file=False, enable_console=False)


@pytest.fixture
def fake() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def client(fake, logger) -> UpstreamClient:
    session = requests.Session()
    session.mount(API, fake)
    return UpstreamClient(token=None, base_url=API, session=session, logger=logger)


@pytest.fixture
def resolver(client, logger) -> CommitResolver:
    return CommitResolver(client, logger=logger)


@pytest.fixture
def channels() -> StaticChannelProvider:
    return StaticChannelProvider(
        {
            "bigyap": {"title": "Big Yap", "postCount": 1000, "participantsCount": 50000},
            "quiet": {"title": "Quiet", "postCount": 10, "participantsCount": 10},
            "even": {"title": "Even", "postCount": 630, "participantsCount": 0},
        },
        valid_sessions={SESSION},
    )


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def reconciler(client, channels, repository, resolver, logger) -> Reconciler:
    return Reconciler(client, channels, repository, resolver=resolver, timeout=5.0, logger=logger)
