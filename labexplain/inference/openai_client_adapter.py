import httpx
import openai

from labexplain.inference.client_base import BaseInferenceClient
from labexplain.inference.exceptions import InferenceError, InferenceNetworkError


class OpenAIClientAdapter(BaseInferenceClient):
    """Inference transport built on an OpenAI-compatible chat API.

    Every request shape is mapped onto chat messages, and the answer is
    returned as a chat-style body (``choices[0].message.content``).
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        temperature: float = 0.2,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._model = model
        self._temperature = max(0.0, min(1.0, temperature))

    def send(
        self,
        payload: dict[str, object],
        *,
        timeout_seconds: float | None = None,
    ) -> object:
        messages = to_chat_messages(payload)
        extra: dict[str, object] = {}
        if timeout_seconds is not None:
            extra["timeout"] = timeout_seconds
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                messages=messages,  # type: ignore[arg-type]
                **extra,  # type: ignore[arg-type]
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise InferenceNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise InferenceNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise InferenceError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise InferenceError("AI returned empty response")
        return {"choices": [{"message": {"role": "assistant", "content": content}}]}

    def close(self) -> None:
        self._client.close()


def to_chat_messages(payload: dict[str, object]) -> list[dict[str, str]]:
    """Map completion, role/content and author/text bodies onto chat messages."""
    raw_messages = payload.get("messages")
    if isinstance(raw_messages, list):
        messages: list[dict[str, str]] = []
        for raw in raw_messages:
            if not isinstance(raw, dict):
                continue
            role = raw.get("role") or raw.get("author") or "user"
            content = raw.get("content", raw.get("text", ""))
            messages.append({"role": str(role), "content": str(content or "")})
        if messages:
            return messages

    raw_input = payload.get("input")
    text = raw_input.get("text") if isinstance(raw_input, dict) else None
    if not isinstance(text, str) or not text:
        raise InferenceError("Request payload has neither messages nor input text")
    return [{"role": "user", "content": text}]
