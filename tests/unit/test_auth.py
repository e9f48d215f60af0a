"""Tests for watsonx authentication flows and the bearer token cache."""

import threading
import time
from urllib.parse import parse_qs

import httpx
import pytest

from labexplain.inference.auth import (
    BearerTokenAuth,
    IamTokenExchanger,
    TokenCache,
    build_auth,
)
from labexplain.inference.exceptions import InferenceConfigurationError, TokenExchangeError
from tests.conftest import FakeClock


class CountingExchange:
    def __init__(self, expires_in: float = 3600.0) -> None:
        self.calls = 0
        self.expires_in = expires_in
        self.timeouts: list[float | None] = []

    def __call__(self, timeout_seconds: float | None = None) -> tuple[str, float]:
        self.calls += 1
        self.timeouts.append(timeout_seconds)
        return f"token-{self.calls}", self.expires_in


class TestTokenCache:
    def test_first_call_exchanges(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        exchange = CountingExchange()
        assert cache.get_or_refresh(exchange) == "token-1"
        assert cache.entry is not None
        assert cache.entry.expires_at == clock.now + 3600.0

    def test_reuses_fresh_token(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        exchange = CountingExchange()
        cache.get_or_refresh(exchange)
        clock.advance(3000)
        assert cache.get_or_refresh(exchange) == "token-1"
        assert exchange.calls == 1

    def test_refreshes_inside_safety_margin(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        exchange = CountingExchange()
        cache.get_or_refresh(exchange)
        clock.advance(3600 - TokenCache.SAFETY_MARGIN_SECONDS)
        assert cache.get_or_refresh(exchange) == "token-2"
        assert exchange.calls == 2

    def test_invalidate_forces_exchange(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        exchange = CountingExchange()
        cache.get_or_refresh(exchange)
        cache.invalidate()
        assert cache.entry is None
        assert cache.get_or_refresh(exchange) == "token-2"

    def test_failed_exchange_keeps_cache_empty(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)

        def failing(timeout_seconds: float | None) -> tuple[str, float]:
            raise TokenExchangeError("boom")

        with pytest.raises(TokenExchangeError):
            cache.get_or_refresh(failing)
        assert cache.entry is None

    def test_concurrent_callers_share_one_exchange(self) -> None:
        cache = TokenCache()
        calls = []

        def slow_exchange(timeout_seconds: float | None) -> tuple[str, float]:
            calls.append(1)
            time.sleep(0.05)
            return "shared", 3600.0

        tokens: list[str] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            tokens.append(cache.get_or_refresh(slow_exchange))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert tokens == ["shared"] * 8

    def test_concurrent_callers_share_one_failed_exchange(self) -> None:
        cache = TokenCache()
        calls = []

        def failing_exchange(timeout_seconds: float | None) -> tuple[str, float]:
            calls.append(1)
            time.sleep(0.1)
            raise TokenExchangeError("IAM token exchange failed: 500")

        errors: list[str] = []
        durations: list[float] = []
        barrier = threading.Barrier(6)

        def worker() -> None:
            barrier.wait()
            started = time.monotonic()
            try:
                cache.get_or_refresh(failing_exchange, timeout_seconds=0.5)
            except TokenExchangeError as exc:
                errors.append(str(exc))
            durations.append(time.monotonic() - started)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(errors) == 6
        assert max(durations) < 0.4

    def test_recent_failure_is_reused_until_backoff_ends(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        calls = []

        def failing(timeout_seconds: float | None) -> tuple[str, float]:
            calls.append(1)
            raise TokenExchangeError("boom")

        with pytest.raises(TokenExchangeError, match="boom"):
            cache.get_or_refresh(failing)
        with pytest.raises(TokenExchangeError, match="Recent token exchange failed: boom"):
            cache.get_or_refresh(failing)
        assert len(calls) == 1

        clock.advance(TokenCache.FAILURE_BACKOFF_SECONDS)
        assert cache.get_or_refresh(CountingExchange()) == "token-1"

    def test_lock_wait_is_bounded_by_timeout(self) -> None:
        cache = TokenCache()
        release = threading.Event()
        started = threading.Event()

        def blocking(timeout_seconds: float | None) -> tuple[str, float]:
            started.set()
            release.wait(2.0)
            return "late", 3600.0

        holder = threading.Thread(target=cache.get_or_refresh, args=(blocking,))
        holder.start()
        started.wait(1.0)
        try:
            begun = time.monotonic()
            with pytest.raises(TokenExchangeError, match="Timed out"):
                cache.get_or_refresh(CountingExchange(), timeout_seconds=0.1)
            assert time.monotonic() - begun < 1.0
        finally:
            release.set()
            holder.join()

    def test_exchange_receives_remaining_time(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        exchange = CountingExchange()
        cache.get_or_refresh(exchange, timeout_seconds=5.0)
        (timeout,) = exchange.timeouts
        assert timeout is not None
        assert 0 < timeout <= 5.0

    def test_no_timeout_passes_none(self, clock: FakeClock) -> None:
        exchange = CountingExchange()
        TokenCache(clock).get_or_refresh(exchange)
        assert exchange.timeouts == [None]


class TestIamTokenExchanger:
    def _exchanger(self, handler) -> IamTokenExchanger:
        return IamTokenExchanger(
            api_key="secret",
            iam_url="https://iam.example.com/identity/token",
            timeout_seconds=5,
            transport=httpx.MockTransport(handler),
        )

    def test_posts_apikey_grant(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"access_token": "abc", "expires_in": 1200})

        token, expires_in = self._exchanger(handler)()

        assert (token, expires_in) == ("abc", 1200.0)
        assert seen["url"] == "https://iam.example.com/identity/token"
        assert seen["form"] == {
            "grant_type": ["urn:ibm:params:oauth:grant-type:apikey"],
            "apikey": ["secret"],
        }

    def test_missing_expiry_defaults_to_one_hour(self) -> None:
        exchanger = self._exchanger(lambda r: httpx.Response(200, json={"access_token": "abc"}))
        assert exchanger() == ("abc", 3600.0)

    def test_http_error_raises(self) -> None:
        exchanger = self._exchanger(lambda r: httpx.Response(400, json={"error": "bad key"}))
        with pytest.raises(TokenExchangeError, match="IAM token exchange failed"):
            exchanger()

    def test_missing_token_raises(self) -> None:
        exchanger = self._exchanger(lambda r: httpx.Response(200, json={"expires_in": 10}))
        with pytest.raises(TokenExchangeError, match="no access_token"):
            exchanger()

    def test_non_json_raises(self) -> None:
        exchanger = self._exchanger(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(TokenExchangeError, match="not JSON"):
            exchanger()

    def test_call_timeout_caps_configured_timeout(self) -> None:
        seen: list[float] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.extensions["timeout"]["read"])
            return httpx.Response(200, json={"access_token": "abc"})

        exchanger = self._exchanger(handler)
        exchanger(2.0)
        exchanger(30.0)
        exchanger()

        assert seen == [2.0, 5, 5]


class TestBearerTokenAuth:
    def test_sets_bearer_header(self, clock: FakeClock) -> None:
        auth = BearerTokenAuth(TokenCache(clock), CountingExchange())
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={})

        with httpx.Client(auth=auth, transport=httpx.MockTransport(handler)) as client:
            client.get("https://service.example.com/")
            client.get("https://service.example.com/")

        assert seen == ["Bearer token-1", "Bearer token-1"]

    def test_unauthorized_invalidates_cache(self, clock: FakeClock) -> None:
        cache = TokenCache(clock)
        exchange = CountingExchange()
        auth = BearerTokenAuth(cache, exchange)
        statuses = iter([401, 200])
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(next(statuses), json={})

        with httpx.Client(auth=auth, transport=httpx.MockTransport(handler)) as client:
            client.get("https://service.example.com/")
            assert cache.entry is None
            client.get("https://service.example.com/")

        assert seen == ["Bearer token-1", "Bearer token-2"]

    def test_refresh_is_bounded_by_request_timeout(self, clock: FakeClock) -> None:
        exchange = CountingExchange()
        auth = BearerTokenAuth(TokenCache(clock), exchange)
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))

        with httpx.Client(auth=auth, transport=transport, timeout=30.0) as client:
            client.get("https://service.example.com/", timeout=3.0)

        (timeout,) = exchange.timeouts
        assert timeout is not None
        assert 0 < timeout <= 3.0


class TestBuildAuth:
    def test_apikey_flow_uses_basic_auth(self) -> None:
        auth = build_auth(flow="apikey", api_key="secret", iam_url="", timeout_seconds=5)
        assert isinstance(auth, httpx.BasicAuth)

    def test_iam_flow_uses_bearer_auth(self) -> None:
        auth = build_auth(flow="IAM", api_key="secret", iam_url="https://iam", timeout_seconds=5)
        assert isinstance(auth, BearerTokenAuth)

    def test_empty_flow_defaults_to_apikey(self) -> None:
        auth = build_auth(flow="", api_key="secret", iam_url="", timeout_seconds=5)
        assert isinstance(auth, httpx.BasicAuth)

    def test_unknown_flow_raises(self) -> None:
        with pytest.raises(InferenceConfigurationError, match="Unknown auth flow"):
            build_auth(flow="oauth", api_key="secret", iam_url="", timeout_seconds=5)

    def test_missing_key_raises(self) -> None:
        with pytest.raises(InferenceConfigurationError, match="WATSON_APIKEY is required"):
            build_auth(flow="iam", api_key="", iam_url="", timeout_seconds=5)
