"""Turns upstream AI responses of any known shape into a NormalizedAIResult."""

import json
import re
from typing import Any

from labexplain.inference.models import (
    ChatResponse,
    CompletionResponse,
    Explanation,
    Method,
    NormalizedAIResult,
    OpaqueResponse,
    UpstreamResponse,
)

OPAQUE_KEY = "ai_response"
RESULT_FIELDS = ("explanations", "action_items", "questions")

_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*\n?(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Find and parse the first JSON object embedded in assistant text.

    Markdown fences are unwrapped and inline backticks dropped before
    searching. Trailing commas before a closing brace or bracket are
    tolerated. Returns None when no object can be parsed.
    """
    if not text or not isinstance(text, str):
        return None
    cleaned = _FENCE_RE.sub(r"\1", text).replace("`", "")

    for candidate in _object_candidates(cleaned):
        parsed = _loads_lenient(candidate)
        if isinstance(parsed, dict):
            return parsed
    return None


def _object_candidates(text: str) -> list[str]:
    start = text.find("{")
    if start == -1:
        return []
    candidates: list[str] = []
    balanced = _balanced_span(text, start)
    if balanced is not None:
        candidates.append(balanced)
    end = text.rfind("}")
    if end > start:
        widest = text[start : end + 1]
        if widest not in candidates:
            candidates.append(widest)
    return candidates


def _balanced_span(text: str, start: int) -> str | None:
    """Return text[start:] up to the brace closing the one at *start*."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _loads_lenient(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))
    except json.JSONDecodeError:
        return None


def classify_response(body: Any) -> UpstreamResponse:
    """Name the shape of an upstream response body."""
    if isinstance(body, dict):
        content = _chat_content(body)
        if content is not None:
            return ChatResponse(content=content)

        predictions = body.get("predictions")
        if isinstance(predictions, list) and predictions:
            first = predictions[0]
            if isinstance(first, dict):
                return CompletionResponse(
                    result=first.get("result") or first.get("output") or first
                )
            return CompletionResponse(result=first)

        results = body.get("results")
        if isinstance(results, list) and results and isinstance(results[0], dict):
            generated = results[0].get("generated_text")
            if isinstance(generated, str):
                return CompletionResponse(result=generated)
    return OpaqueResponse(payload=body)


def _chat_content(body: dict[str, Any]) -> str | None:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def normalize_response(upstream: UpstreamResponse) -> NormalizedAIResult:
    """Build the canonical result for a classified upstream response."""
    if isinstance(upstream, ChatResponse):
        return _from_text(upstream.content)
    payload = upstream.result if isinstance(upstream, CompletionResponse) else upstream.payload
    if isinstance(payload, str):
        return _from_text(payload)
    if isinstance(payload, dict) and _has_result_fields(payload):
        return build_result(payload, Method.REMOTE_SUCCESS)
    return opaque_result(json.dumps(payload, ensure_ascii=False, default=str))


def parse_response(body: Any) -> NormalizedAIResult:
    """Classify and normalize in one step."""
    return normalize_response(classify_response(body))


def _from_text(text: str) -> NormalizedAIResult:
    parsed = extract_json_object(text)
    if parsed is not None and _has_result_fields(parsed):
        return build_result(parsed, Method.REMOTE_SUCCESS)
    return opaque_result(text)


def _has_result_fields(data: dict[str, Any]) -> bool:
    return any(name in data for name in RESULT_FIELDS)


def opaque_result(raw: str) -> NormalizedAIResult:
    """Carry unparsed upstream content as a single explanation."""
    text = raw.strip()
    explanations = [Explanation(key=OPAQUE_KEY, explanation=text)] if text else []
    return NormalizedAIResult(
        explanations=explanations,
        method=Method.REMOTE_OPAQUE,
        raw_content=raw,
    )


def build_result(data: dict[str, Any], method: Method) -> NormalizedAIResult:
    return NormalizedAIResult(
        explanations=_coerce_explanations(data.get("explanations")),
        action_items=_coerce_strings(data.get("action_items")),
        questions=_coerce_strings(data.get("questions")),
        method=method,
    )


def _coerce_explanations(raw: Any) -> list[Explanation]:
    if isinstance(raw, dict):
        # {"hemoglobin": "..."} style
        raw = [{"key": k, "explanation": v} for k, v in raw.items()]
    if not isinstance(raw, list):
        return []
    explanations: list[Explanation] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        text = item.get("explanation")
        if not isinstance(text, str) or not text.strip():
            continue
        key = item.get("key")
        severity = item.get("severity")
        explanations.append(
            Explanation(
                key=str(key).strip() if key else "lab_result",
                explanation=text.strip(),
                severity=str(severity).strip().lower() if severity else "unknown",
            )
        )
    return explanations


def _coerce_strings(raw: Any) -> list[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [item.strip() for item in raw if isinstance(item, str) and item.strip()]
