from __future__ import annotations

import json
import threading

import httpx
import pytest

from mythbuster.config import Settings
from mythbuster.infra.cache import ResponseCache
from mythbuster.infra.db import init_db
from mythbuster.llm.provider_client import ProviderClient
from mythbuster.services.orchestrator import AIOrchestrator
from mythbuster.services.quota import QuotaLedger

PROVIDER_URL = "https://provider.test/chat/completions"


class FakeClock:
    def __init__(self, start: float = 1_767_225_600.0):  # 2026-01-01T00:00:00Z
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider:
    """MockTransport handler that replays queued replies; the last one repeats."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []
        self.lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self.lock:
            self.requests.append(request)
            reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, type) and issubclass(reply, Exception):
            raise reply("scripted failure", request=request)
        if callable(reply):
            return reply(request)
        status, body = reply if isinstance(reply, tuple) else (200, reply)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


def completion(content, citations=None) -> dict:
    if not isinstance(content, str):
        content = json.dumps(content)
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if citations is not None:
        body["citations"] = citations
    return body


def make_settings(**overrides) -> Settings:
    values = dict(
        provider_api_key="house-key",
        provider_api_url=PROVIDER_URL,
        provider_model="sonar",
        provider_search_context="medium",
        provider_json_schema=True,
        provider_retries=1,
        request_timeout=5.0,
        cache_maxsize=128,
        redis_url=None,
        database_url="sqlite:///:memory:",
        quota_daily_limit=10,
    )
    values.update(overrides)
    return Settings(**values)


def make_client(provider: ScriptedProvider, retries: int = 1, json_schema: bool = True) -> ProviderClient:
    return ProviderClient(
        api_url=PROVIDER_URL,
        model="sonar",
        search_context="medium",
        timeout=5.0,
        retries=retries,
        json_schema=json_schema,
        backoff=0.0,
        transport=httpx.MockTransport(provider),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    database = init_db("sqlite:///:memory:")
    yield database
    database.close()


@pytest.fixture
def build_orchestrator(clock, db):
    def _build(provider: ScriptedProvider, **overrides) -> AIOrchestrator:
        settings = make_settings(**overrides)
        cache = ResponseCache(redis_client=None, maxsize=settings.cache_maxsize, now_fn=clock)
        ledger = QuotaLedger(db, now_fn=clock)
        return AIOrchestrator(settings, cache, ledger, make_client(provider, retries=settings.provider_retries))

    return _build
