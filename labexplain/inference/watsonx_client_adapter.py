import httpx

from labexplain.inference.client_base import BaseInferenceClient
from labexplain.inference.exceptions import InferenceError, InferenceNetworkError

_MAX_ERROR_BODY_CHARS = 500


class WatsonxClientAdapter(BaseInferenceClient):
    """Inference transport for watsonx deployment prediction endpoints."""

    def __init__(
        self,
        *,
        url: str,
        auth: httpx.Auth,
        timeout_seconds: float,
        api_version: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._params = {"version": api_version} if api_version else None
        self._client = httpx.Client(
            auth=auth,
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def url(self) -> str:
        return self._url

    def send(
        self,
        payload: dict[str, object],
        *,
        timeout_seconds: float | None = None,
    ) -> object:
        timeout = timeout_seconds if timeout_seconds is not None else httpx.USE_CLIENT_DEFAULT
        try:
            response = self._client.post(
                self._url,
                json=payload,
                params=self._params,
                timeout=timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:_MAX_ERROR_BODY_CHARS]
            raise InferenceNetworkError(
                f"AI service rejected request: HTTP {exc.response.status_code}: {body}"
            ) from exc
        except httpx.HTTPError as exc:
            raise InferenceNetworkError(f"AI service network error: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise InferenceError(f"AI service returned a non-JSON body: {exc}") from exc

    def close(self) -> None:
        self._client.close()
