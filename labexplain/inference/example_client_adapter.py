"""Example inference client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseInferenceClient and register the provider in GatewayFactory.
"""

import json
import re

from labexplain.inference.client_base import BaseInferenceClient
from labexplain.inference.openai_client_adapter import to_chat_messages

_LAB_LINE_RE = re.compile(r"^- (\w+): .*severity: (\w+)\s*$", re.MULTILINE)


class ExampleClientAdapter(BaseInferenceClient):
    """Example adapter that answers with a canned chat-style response.

    No network calls. Echoes the lab items listed in the prompt so local
    development exercises the full parsing path.
    """

    QUESTIONS = (
        "What could be causing these results?",
        "Do I need any follow-up tests?",
        "Should I change anything in my diet or medication?",
    )

    def send(
        self,
        payload: dict[str, object],
        *,
        timeout_seconds: float | None = None,
    ) -> object:
        _ = timeout_seconds
        prompt = "\n".join(m["content"] for m in to_chat_messages(payload))
        explanations = []
        action_items = []
        for key, severity in _LAB_LINE_RE.findall(prompt):
            explanations.append({
                "key": key,
                "explanation": f"This is an example explanation for your {key} result.",
                "severity": severity,
            })
            if severity in ("moderate", "severe"):
                action_items.append(f"URGENT: see a doctor about your {key}")
        content = json.dumps({
            "explanations": explanations,
            "action_items": action_items,
            "questions": list(self.QUESTIONS),
        })
        return {"choices": [{"message": {"role": "assistant", "content": f"```json\n{content}\n```"}}]}
