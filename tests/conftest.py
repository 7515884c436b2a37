from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from http.client import HTTPMessage
from types import SimpleNamespace

import pytest
import requests
from requests import Response
from requests.cookies import extract_cookies_to_jar

from servicetrade_api_client import (
    InMemoryCredentialStore,
    ManualScheduler,
    ServiceTradeClient,
)

BASE_URL = "https://api.servicetrade.test/api"


def make_response(status: int = 200, body=None, headers: dict | None = None) -> Response:
    resp = Response()
    resp.status_code = status
    if body is None:
        resp._content = b""
    elif isinstance(body, (bytes, str)):
        resp._content = body.encode("utf-8") if isinstance(body, str) else body
    else:
        resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    if headers:
        resp.headers.update(headers)
    return resp


class FakeHttp:
    """Stands in for requests.Session and records every call."""

    def __init__(self) -> None:
        self.calls = []
        self.replies = []

    def queue(self, reply) -> None:
        self.replies.append(reply)

    def _reply(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if not self.replies:
            raise AssertionError(f"unexpected {method} {url}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def post(self, url, **kwargs):
        return self._reply("POST", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._reply("DELETE", url, **kwargs)

    def get(self, url, **kwargs):
        return self._reply("GET", url, **kwargs)


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def with_cookies(resp: Response, *set_cookie: str, url: str = f"{BASE_URL}/auth") -> Response:
    """Fill the response cookie jar from raw Set-Cookie headers, as the adapter does."""
    msg = HTTPMessage()
    for header in set_cookie:
        msg["Set-Cookie"] = header
    raw = SimpleNamespace(_original_response=SimpleNamespace(msg=msg))
    extract_cookies_to_jar(resp.cookies, requests.Request("POST", url).prepare(), raw)
    return resp


def login_ok(*set_cookie: str) -> Response:
    headers = set_cookie or ("PHPSESSID=abc123; path=/; HttpOnly",)
    resp = make_response(200, {"data": {}}, headers={"Set-Cookie": ", ".join(headers)})
    return with_cookies(resp, *headers)


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def client(http, clock, store, scheduler):
    return ServiceTradeClient(
        store=store, scheduler=scheduler, base_url=BASE_URL, http=http, clock=clock
    )
