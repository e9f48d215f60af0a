"""Authentication flows for the watsonx prediction endpoint.

Two flows are supported:

* ``apikey``: HTTP Basic credentials ``apikey:<key>`` on every request.
* ``iam``: the API key is exchanged for a short-lived bearer token, cached
  until 60 seconds before it expires.
"""

import threading
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass

import httpx

from labexplain.inference.exceptions import InferenceConfigurationError, TokenExchangeError
from labexplain.logging.logger import Log

Clock = Callable[[], float]
TokenExchange = Callable[[float | None], tuple[str, float]]

AUTH_FLOWS = ("apikey", "iam")
_DEFAULT_EXPIRES_IN_SECONDS = 3600.0


@dataclass(frozen=True)
class TokenCacheEntry:
    token: str
    expires_at: float


@dataclass(frozen=True)
class _ExchangeFailure:
    message: str
    retry_at: float


class TokenCache:
    """Process-wide bearer token cache guarded by a lock.

    Only one caller performs an exchange at a time; concurrent callers wait
    for it and then reuse the fresh entry. A failed exchange is remembered
    for ``FAILURE_BACKOFF_SECONDS`` so waiting callers fail fast instead of
    repeating it one after another.
    """

    SAFETY_MARGIN_SECONDS = 60.0
    FAILURE_BACKOFF_SECONDS = 5.0

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: TokenCacheEntry | None = None
        self._failure: _ExchangeFailure | None = None

    @property
    def entry(self) -> TokenCacheEntry | None:
        return self._entry

    def get_or_refresh(
        self,
        exchange: TokenExchange,
        timeout_seconds: float | None = None,
    ) -> str:
        """Return a fresh token, exchanging a new one if needed.

        Args:
            exchange: Performs the exchange; receives the time left.
            timeout_seconds: Upper bound for waiting on the lock plus the
                exchange itself. None waits without limit.

        Raises:
            TokenExchangeError: if the exchange fails, failed recently, or
                the lock is not acquired in time.
        """
        started = time.monotonic()
        wait = -1.0 if timeout_seconds is None else max(timeout_seconds, 0.0)
        if not self._lock.acquire(timeout=wait):
            raise TokenExchangeError(
                f"Timed out after {timeout_seconds}s waiting for a bearer token refresh"
            )
        try:
            entry = self._entry
            if entry is not None and self._is_fresh(entry):
                return entry.token

            failure = self._failure
            if failure is not None and failure.retry_at > self._clock():
                raise TokenExchangeError(f"Recent token exchange failed: {failure.message}")

            remaining = None
            if timeout_seconds is not None:
                remaining = timeout_seconds - (time.monotonic() - started)
                if remaining <= 0:
                    raise TokenExchangeError(
                        f"No time left for a bearer token exchange within {timeout_seconds}s"
                    )

            try:
                token, expires_in = exchange(remaining)
            except TokenExchangeError as exc:
                self._failure = _ExchangeFailure(
                    message=str(exc),
                    retry_at=self._clock() + self.FAILURE_BACKOFF_SECONDS,
                )
                raise
            self._failure = None
            self._entry = TokenCacheEntry(token=token, expires_at=self._clock() + expires_in)
            Log.debug(f"Bearer token refreshed, valid for {expires_in:.0f}s")
            return token
        finally:
            self._lock.release()

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None

    def _is_fresh(self, entry: TokenCacheEntry) -> bool:
        return entry.expires_at - self.SAFETY_MARGIN_SECONDS > self._clock()


class IamTokenExchanger:
    """Exchanges an API key for an IAM access token."""

    GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"

    def __init__(
        self,
        *,
        api_key: str,
        iam_url: str,
        timeout_seconds: float,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._iam_url = iam_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def __call__(self, timeout_seconds: float | None = None) -> tuple[str, float]:
        timeout = self._timeout_seconds
        if timeout_seconds is not None:
            timeout = min(timeout, timeout_seconds)
        try:
            with httpx.Client(transport=self._transport, timeout=timeout) as client:
                response = client.post(
                    self._iam_url,
                    data={"grant_type": self.GRANT_TYPE, "apikey": self._api_key},
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"IAM token exchange failed: {exc}") from exc
        except ValueError as exc:
            raise TokenExchangeError(f"IAM token response is not JSON: {exc}") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise TokenExchangeError("IAM token response has no access_token")
        expires_in = data.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)) or expires_in <= 0:
            expires_in = _DEFAULT_EXPIRES_IN_SECONDS
        return token, float(expires_in)


class BearerTokenAuth(httpx.Auth):
    """Adds ``Authorization: Bearer <token>`` using a shared TokenCache.

    The token refresh is bounded by the request's own timeout, so a slow
    token endpoint cannot outlast the call it authenticates.
    """

    def __init__(self, cache: TokenCache, exchange: TokenExchange) -> None:
        self._cache = cache
        self._exchange = exchange

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._cache.get_or_refresh(self._exchange, _request_timeout(request))
        request.headers["Authorization"] = f"Bearer {token}"
        response = yield request
        if response.status_code == 401:
            # Revoked early; the next call performs a fresh exchange.
            self._cache.invalidate()


def _request_timeout(request: httpx.Request) -> float | None:
    timeout = request.extensions.get("timeout")
    if not isinstance(timeout, dict):
        return None
    read = timeout.get("read")
    return read if read is not None else timeout.get("connect")


def build_auth(
    *,
    flow: str,
    api_key: str,
    iam_url: str,
    timeout_seconds: float,
    token_cache: TokenCache | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Auth:
    """Create the httpx auth object for the configured flow."""
    flow = (flow or "apikey").lower()
    if flow not in AUTH_FLOWS:
        raise InferenceConfigurationError(
            f"Unknown auth flow '{flow}'. Choose from: {list(AUTH_FLOWS)}"
        )
    if not api_key:
        raise InferenceConfigurationError(f"WATSON_APIKEY is required for {flow} auth")
    if flow == "apikey":
        return httpx.BasicAuth(username="apikey", password=api_key)
    exchanger = IamTokenExchanger(
        api_key=api_key,
        iam_url=iam_url,
        timeout_seconds=timeout_seconds,
        transport=transport,
    )
    return BearerTokenAuth(token_cache or TokenCache(), exchanger)
