"""Shared fixtures: a fake HTTP session, a controllable clock, an in-memory store."""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from pkgmeta.models import PackageRecord, RefreshLog, SourceRecord

REASONS = {
    200: "OK",
    301: "Moved Permanently",
    404: "Not Found",
    405: "Method Not Allowed",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def make_response(
    status: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
    url: str = "",
    headers: Optional[dict] = None,
) -> requests.Response:
    """Build a real ``requests.Response`` without touching the network."""
    response = requests.Response()
    response.status_code = status
    response.reason = REASONS.get(status, "")
    response.url = url
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    if json_body is not None:
        response._content = json.dumps(json_body).encode()
        response.headers.setdefault("Content-Type", "application/json")
    else:
        response._content = (text or "").encode()
    return response


@dataclass
class Call:
    method: str
    url: str
    params: Any = None
    headers: Optional[dict] = None
    timeout: Optional[float] = None


Reply = Union[requests.Response, Exception]


@dataclass
class FakeSession:
    """Stand-in for ``requests.Session`` with a static route table.

    Routes match on method and URL (query params are recorded, not matched).
    A route holds a list of replies consumed in order; the last one repeats.
    Exceptions in the list are raised. Unrouted URLs answer 404.
    """

    routes: dict[tuple[str, str], list[Reply]] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)
    headers: dict = field(default_factory=dict)

    def add(self, url: str, *replies: Reply, method: str = "GET") -> None:
        self.routes[(method, url)] = list(replies)

    def add_json(self, url: str, body: Any, status: int = 200, method: str = "GET") -> None:
        self.add(url, make_response(status, json_body=body, url=url), method=method)

    def request(self, method, url, params=None, headers=None, **kwargs):
        self.calls.append(Call(method, url, params, headers, kwargs.get("timeout")))
        replies = self.routes.get((method, url))
        if not replies:
            return make_response(404, url=url)
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def calls_to(self, url: str) -> list[Call]:
        return [c for c in self.calls if c.url == url]


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class InMemoryPackageStore:
    """Dict-backed ``PackageStore``."""

    def __init__(self):
        self.sources: dict[str, SourceRecord] = {}
        self.packages: dict[str, PackageRecord] = {}
        self.logs: list[RefreshLog] = []
        self.updates: list[tuple[str, dict]] = []
        self.broken_sources: set[str] = set()

    def add_source(self, id, slug, name=None, api_endpoint="https://api.example.org"):
        source = SourceRecord(id=id, name=name or slug.title(), slug=slug, api_endpoint=api_endpoint)
        self.sources[id] = source
        return source

    def add_package(self, id, source_id, identifier, **fields):
        pkg = PackageRecord(id=id, source_id=source_id, identifier=identifier, **fields)
        self.packages[id] = pkg
        return pkg

    def list_sources(self, source_id=None):
        if source_id is not None:
            return [s for s in self.sources.values() if s.id == source_id]
        return list(self.sources.values())

    def list_packages(self, source_id):
        if source_id in self.broken_sources:
            raise RuntimeError("database unavailable")
        return [p for p in self.packages.values() if p.source_id == source_id]

    def update_package(self, package_id, changes):
        self.updates.append((package_id, changes))
        self.packages[package_id] = self.packages[package_id].model_copy(update=changes)

    def add_refresh_log(self, log):
        self.logs.append(log)

    def get_package(self, package_id):
        pkg = self.packages.get(package_id)
        if pkg is None:
            return None
        return pkg, self.sources[pkg.source_id]

    def list_refresh_logs(self, limit=50):
        return sorted(self.logs, key=lambda l: l.started_at, reverse=True)[:limit]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def store():
    return InMemoryPackageStore()


@pytest.fixture
def adapter_kwargs(session, clock, sleeper):
    """Constructor arguments that keep adapters off the network and the wall clock."""
    return dict(session=session, clock=clock, sleep=sleeper, retry_delay=0)
