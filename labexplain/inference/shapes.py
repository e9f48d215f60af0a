"""Request payload shapes and the ordered fallback ladder built from them."""

from collections.abc import Callable
from dataclasses import dataclass

PayloadBuilder = Callable[[str, str], dict[str, object]]


@dataclass(frozen=True)
class RequestShape:
    """A named way of wrapping (preamble, prompt) into a request body."""

    name: str
    builder: PayloadBuilder

    def build(self, prompt: str, preamble: str) -> dict[str, object]:
        return self.builder(prompt, preamble)


def _without_preamble(prompt: str, preamble: str) -> str:
    # Chat shapes send the preamble on its own; drop the copy the prompt opens with.
    if preamble and prompt.startswith(preamble):
        return prompt[len(preamble):].lstrip("\n")
    return prompt


def _completion(prompt: str, preamble: str) -> dict[str, object]:
    # The prompt already opens with the preamble.
    return {"input": {"text": prompt}}


def _chat(prompt: str, preamble: str) -> dict[str, object]:
    return {
        "messages": [
            {"role": "system", "content": preamble},
            {"role": "user", "content": _without_preamble(prompt, preamble)},
        ]
    }


def _chat_merged(prompt: str, preamble: str) -> dict[str, object]:
    # Some chat backends reject a dedicated system role.
    body = _without_preamble(prompt, preamble)
    return {"messages": [{"role": "user", "content": f"{preamble}\n\n{body}"}]}


def _chat_envelope(prompt: str, preamble: str) -> dict[str, object]:
    return {
        "messages": [
            {"author": "system", "type": "text", "text": preamble},
            {"author": "user", "type": "text", "text": _without_preamble(prompt, preamble)},
        ]
    }


COMPLETION = RequestShape("completion", _completion)
CHAT = RequestShape("chat", _chat)
CHAT_MERGED = RequestShape("chat_merged", _chat_merged)
CHAT_ENVELOPE = RequestShape("chat_envelope", _chat_envelope)

PRIMARY_SHAPES = {shape.name: shape for shape in (COMPLETION, CHAT)}


def build_ladder(primary: str, chat_capable: bool) -> list[RequestShape]:
    """Primary shape first, then the chat variants for chat-capable targets."""
    shape = PRIMARY_SHAPES.get(primary)
    if shape is None:
        raise ValueError(f"Unknown request shape '{primary}'. Choose from: {list(PRIMARY_SHAPES)}")
    ladder = [shape]
    if chat_capable:
        ladder.extend([CHAT_MERGED, CHAT_ENVELOPE])
    return ladder
