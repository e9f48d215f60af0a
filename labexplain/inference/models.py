from dataclasses import dataclass, field
from enum import Enum


class Method(str, Enum):
    """Provenance of a NormalizedAIResult."""

    REMOTE_SUCCESS = "remote-success"
    REMOTE_OPAQUE = "remote-opaque"
    LOCAL_FALLBACK = "local-fallback"


class GatewayState(str, Enum):
    NOT_CONFIGURED = "not_configured"
    READY = "ready"
    CALLING = "calling"
    SUCCESS = "success"
    SHAPE_FALLBACK = "shape_fallback"
    LOCAL_FALLBACK = "local_fallback"


@dataclass(frozen=True)
class Explanation:
    """Plain-language explanation of one lab item."""

    key: str
    explanation: str
    severity: str = "unknown"


@dataclass(frozen=True)
class NormalizedAIResult:
    """Canonical gateway output, whatever the upstream returned."""

    explanations: list[Explanation] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    method: Method = Method.LOCAL_FALLBACK
    raw_content: str | None = None

    @property
    def is_opaque(self) -> bool:
        return self.method is Method.REMOTE_OPAQUE

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "explanations": [
                {"key": e.key, "explanation": e.explanation, "severity": e.severity}
                for e in self.explanations
            ],
            "action_items": list(self.action_items),
            "questions": list(self.questions),
            "method": self.method.value,
        }
        if self.raw_content is not None:
            data["raw_content"] = self.raw_content
        return data


# Upstream response variants


@dataclass(frozen=True)
class ChatResponse:
    """``choices[0].message.content`` of a chat-style response."""

    content: str


@dataclass(frozen=True)
class CompletionResponse:
    """Prediction or text-generation output (text or structured)."""

    result: object


@dataclass(frozen=True)
class OpaqueResponse:
    """Any other body, carried as-is."""

    payload: object


UpstreamResponse = ChatResponse | CompletionResponse | OpaqueResponse
