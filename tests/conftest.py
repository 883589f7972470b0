from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any

import pytest
import requests

from provisioner.github_client import GitHubClient

API = "https://api.test"
TOKEN = "testtoken"


def make_response(status: int, body: Any = None, *, text: str | None = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    if text is not None:
        r._content = text.encode("utf-8")
    elif body is not None:
        r._content = json.dumps(body).encode("utf-8")
        r.headers["Content-Type"] = "application/json"
    else:
        r._content = b""
    r.encoding = "utf-8"
    return r


def blob(content: bytes) -> dict[str, str]:
    encoded = base64.b64encode(content).decode("ascii")
    # GitHub wraps base64 blob content at 60 characters.
    wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))
    return {"encoding": "base64", "content": wrapped + "\n"}


@dataclass
class Call:
    method: str
    path: str
    headers: dict[str, str]
    json: Any
    params: dict[str, str] | None
    timeout: float | None


class FakeSession:
    """
    Stand-in for `requests.Session`: routes (method, path) to queued responses.
    The last queued response for a route repeats; unrouted requests fail the test.
    """

    def __init__(self, base: str = API) -> None:
        self.base = base
        self.routes: dict[tuple[str, str], list[requests.Response]] = {}
        self.calls: list[Call] = []

    def add(self, method: str, path: str, *responses: requests.Response) -> "FakeSession":
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def request(self, method, url, headers=None, json=None, params=None, timeout=None):
        assert url.startswith(self.base), url
        path = url[len(self.base) :]
        self.calls.append(Call(method, path, dict(headers or {}), json, params, timeout))
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {path}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> GitHubClient:
    return GitHubClient(TOKEN, API, session=session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
