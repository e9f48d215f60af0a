"""Tests for the watsonx HTTP transport."""

import base64
import json

import httpx
import pytest

from labexplain.inference.exceptions import InferenceError, InferenceNetworkError
from labexplain.inference.watsonx_client_adapter import WatsonxClientAdapter

URL = "https://us-south.ml.cloud.ibm.com/ml/v1/deployments/dep-1/text/chat"


def _adapter(handler, *, api_version: str = "") -> WatsonxClientAdapter:
    return WatsonxClientAdapter(
        url=URL,
        auth=httpx.BasicAuth(username="apikey", password="secret"),
        timeout_seconds=5,
        api_version=api_version,
        transport=httpx.MockTransport(handler),
    )


class TestSend:
    def test_posts_json_with_basic_auth(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["auth"] = request.headers["Authorization"]
            seen["accept"] = request.headers["Accept"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": []})

        body = _adapter(handler).send({"input": {"text": "hi"}})

        expected = base64.b64encode(b"apikey:secret").decode()
        assert body == {"choices": []}
        assert seen["method"] == "POST"
        assert seen["auth"] == f"Basic {expected}"
        assert seen["accept"] == "application/json"
        assert seen["body"] == {"input": {"text": "hi"}}

    def test_sends_version_param(self) -> None:
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, json={})

        _adapter(handler, api_version="2023-05-29").send({})
        assert seen[0].params["version"] == "2023-05-29"

    def test_no_version_param_by_default(self) -> None:
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, json={})

        _adapter(handler).send({})
        assert "version" not in seen[0].params

    def test_http_error_raises_network_error(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(400, text="unsupported payload"))
        with pytest.raises(InferenceNetworkError, match="HTTP 400: unsupported payload"):
            adapter.send({})

    def test_transport_error_raises_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(InferenceNetworkError, match="network error"):
            _adapter(handler).send({})

    def test_non_json_body_raises(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(InferenceError, match="non-JSON"):
            adapter.send({})

    def test_url_property(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(200, json={}))
        assert adapter.url == URL
        adapter.close()
