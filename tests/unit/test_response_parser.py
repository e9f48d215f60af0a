"""Tests for upstream response classification and normalization."""

import pytest

from labexplain.inference.models import (
    ChatResponse,
    CompletionResponse,
    Explanation,
    Method,
    OpaqueResponse,
)
from labexplain.inference.response_parser import (
    OPAQUE_KEY,
    classify_response,
    extract_json_object,
    normalize_response,
    parse_response,
)

VALID_JSON = (
    '{"explanations": [{"key": "hemoglobin", "explanation": "Your hemoglobin is low.",'
    ' "severity": "Severe"}], "action_items": ["See a doctor"], "questions": ["Why?"]}'
)


def _chat(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestExtractJsonObject:
    def test_plain_object(self) -> None:
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_object(self) -> None:
        text = 'Here you go:\n```json\n{"a": 1}\n```\nThanks.'
        assert extract_json_object(text) == {"a": 1}

    def test_object_surrounded_by_prose(self) -> None:
        assert extract_json_object('Sure! {"a": {"b": 2}} Hope this helps.') == {"a": {"b": 2}}

    def test_braces_inside_strings(self) -> None:
        assert extract_json_object('{"a": "x } y", "b": 1}') == {"a": "x } y", "b": 1}

    def test_trailing_comma_is_tolerated(self) -> None:
        assert extract_json_object('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}

    def test_inline_backticks_are_dropped(self) -> None:
        assert extract_json_object('`{"a": 1}`') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "no json here", "{broken", "[1, 2]"])
    def test_returns_none_without_object(self, text: str) -> None:
        assert extract_json_object(text) is None


class TestClassifyResponse:
    def test_chat(self) -> None:
        assert classify_response(_chat("hello")) == ChatResponse(content="hello")

    def test_predictions_with_result(self) -> None:
        body = {"predictions": [{"result": "text"}]}
        assert classify_response(body) == CompletionResponse(result="text")

    def test_predictions_with_output(self) -> None:
        body = {"predictions": [{"output": {"questions": []}}]}
        assert classify_response(body) == CompletionResponse(result={"questions": []})

    def test_predictions_item_itself(self) -> None:
        body = {"predictions": [{"explanations": []}]}
        assert classify_response(body) == CompletionResponse(result={"explanations": []})

    def test_generated_text(self) -> None:
        body = {"results": [{"generated_text": "text", "stop_reason": "eos"}]}
        assert classify_response(body) == CompletionResponse(result="text")

    def test_empty_chat_content_is_not_chat(self) -> None:
        assert isinstance(classify_response(_chat("")), OpaqueResponse)

    @pytest.mark.parametrize("body", [{"status": "ok"}, [], "text", None, {"choices": []}])
    def test_unknown_shapes_are_opaque(self, body: object) -> None:
        assert classify_response(body) == OpaqueResponse(payload=body)


class TestParseResponse:
    def test_chat_with_fenced_json(self) -> None:
        result = parse_response(_chat(f"```json\n{VALID_JSON}\n```"))
        assert result.method is Method.REMOTE_SUCCESS
        assert result.explanations == [
            Explanation(key="hemoglobin", explanation="Your hemoglobin is low.", severity="severe")
        ]
        assert result.action_items == ["See a doctor"]
        assert result.questions == ["Why?"]
        assert result.raw_content is None

    def test_plain_prose_is_opaque(self) -> None:
        prose = "Your results look mostly fine, but please talk to your doctor."
        result = parse_response(_chat(prose))
        assert result.method is Method.REMOTE_OPAQUE
        assert result.is_opaque
        assert result.explanations == [Explanation(key=OPAQUE_KEY, explanation=prose)]
        assert result.action_items == []
        assert result.questions == []
        assert result.raw_content == prose

    def test_json_without_result_fields_is_opaque(self) -> None:
        result = parse_response(_chat('{"answer": "fine"}'))
        assert result.is_opaque
        assert result.explanations[0].explanation == '{"answer": "fine"}'

    def test_structured_prediction(self) -> None:
        body = {"predictions": [{"result": {"questions": ["Q1", "", 3]}}]}
        result = parse_response(body)
        assert result.method is Method.REMOTE_SUCCESS
        assert result.questions == ["Q1"]
        assert result.explanations == []

    def test_generated_text_with_json(self) -> None:
        result = parse_response({"results": [{"generated_text": VALID_JSON}]})
        assert result.method is Method.REMOTE_SUCCESS
        assert result.explanations[0].key == "hemoglobin"

    def test_opaque_body_is_serialized(self) -> None:
        result = parse_response({"status": "ok"})
        assert result.is_opaque
        assert result.explanations == [Explanation(key=OPAQUE_KEY, explanation='{"status": "ok"}')]

    def test_blank_text_yields_no_explanations(self) -> None:
        result = normalize_response(CompletionResponse(result="   "))
        assert result.is_opaque
        assert result.explanations == []


class TestTolerantCoercion:
    def test_explanations_mapping(self) -> None:
        result = parse_response(_chat('{"explanations": {"hemoglobin": "Low."}}'))
        assert result.explanations == [Explanation(key="hemoglobin", explanation="Low.")]

    def test_invalid_entries_are_skipped(self) -> None:
        text = (
            '{"explanations": ["text", {"key": "a"}, {"explanation": "  "},'
            ' {"explanation": "Kept."}], "action_items": "Rest"}'
        )
        result = parse_response(_chat(text))
        assert result.explanations == [Explanation(key="lab_result", explanation="Kept.")]
        assert result.action_items == ["Rest"]

    def test_non_list_fields_become_empty(self) -> None:
        result = parse_response(_chat('{"explanations": 5, "questions": {"a": 1}}'))
        assert result.method is Method.REMOTE_SUCCESS
        assert result.explanations == []
        assert result.questions == []

    def test_to_dict(self) -> None:
        data = parse_response(_chat(VALID_JSON)).to_dict()
        assert data["method"] == "remote-success"
        assert data["explanations"][0]["severity"] == "severe"
        assert "raw_content" not in data
