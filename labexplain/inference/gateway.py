"""Never-failing orchestration of the external inference call.

States: NOT_CONFIGURED -> READY -> CALLING -> SUCCESS | SHAPE_FALLBACK |
LOCAL_FALLBACK, where SHAPE_FALLBACK re-enters CALLING with the next request
shape of the ladder. Every path ends in a NormalizedAIResult.
"""

import json
import time
from collections.abc import Callable, Sequence

from labexplain.assessment.models import AssessmentResult
from labexplain.inference.client_base import BaseInferenceClient
from labexplain.inference.exceptions import InferenceError
from labexplain.inference.fallback import build_local_fallback
from labexplain.inference.models import GatewayState, NormalizedAIResult
from labexplain.inference.response_parser import parse_response
from labexplain.inference.shapes import COMPLETION, RequestShape
from labexplain.logging.logger import Log
from labexplain.prompting.prompt_builder import SAFETY_PREAMBLE

Clock = Callable[[], float]


class InferenceGateway:
    """Calls the AI service through an ordered ladder of request shapes.

    The first shape that gets an answer wins. Failures are logged and never
    surfaced: when every shape fails, or no client is configured, the result
    is synthesized locally from the assessments.
    """

    def __init__(
        self,
        *,
        client: BaseInferenceClient | None,
        ladder: Sequence[RequestShape] = (COMPLETION,),
        preamble: str = SAFETY_PREAMBLE,
        call_timeout_seconds: float | None = None,
        deadline_seconds: float | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        if client is not None and not ladder:
            raise ValueError("A configured gateway needs at least one request shape")
        self._client = client
        self._ladder = tuple(ladder)
        self._preamble = preamble
        self._call_timeout_seconds = call_timeout_seconds
        self._deadline_seconds = deadline_seconds
        self._clock = clock

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    @property
    def ladder(self) -> list[str]:
        return [shape.name for shape in self._ladder]

    def explain(
        self,
        prompt: str,
        assessments: Sequence[AssessmentResult],
    ) -> NormalizedAIResult:
        """Return a normalized AI result. Never raises."""
        result, _ = self.explain_with_trace(prompt, assessments)
        return result

    def explain_with_trace(
        self,
        prompt: str,
        assessments: Sequence[AssessmentResult],
    ) -> tuple[NormalizedAIResult, list[GatewayState]]:
        """Same as :meth:`explain`, plus the states the call went through."""
        trace: list[GatewayState] = []
        try:
            return self._run(prompt, assessments, trace), trace
        except Exception as exc:
            Log.exception(f"Inference gateway failed unexpectedly: {exc}")
            trace.append(GatewayState.LOCAL_FALLBACK)
            return build_local_fallback(assessments), trace

    def _run(
        self,
        prompt: str,
        assessments: Sequence[AssessmentResult],
        trace: list[GatewayState],
    ) -> NormalizedAIResult:
        client = self._client
        if client is None:
            trace.extend([GatewayState.NOT_CONFIGURED, GatewayState.LOCAL_FALLBACK])
            Log.info("Inference service not configured, using local fallback")
            return build_local_fallback(assessments)

        trace.append(GatewayState.READY)
        started = self._clock()
        for index, shape in enumerate(self._ladder):
            if index > 0:
                trace.append(GatewayState.SHAPE_FALLBACK)
            timeout = self._timeout_for(started)
            if timeout is not None and timeout <= 0:
                Log.warning(
                    f"Analysis deadline of {self._deadline_seconds}s spent before "
                    f"'{shape.name}' attempt"
                )
                break

            trace.append(GatewayState.CALLING)
            body = self._attempt(client, shape, prompt, timeout)
            if body is None:
                continue

            if Log.is_debug():
                Log.debug(f"AI raw response:\n{json.dumps(body, ensure_ascii=False, default=str)}")
            result = parse_response(body)
            trace.append(GatewayState.SUCCESS)
            Log.info(
                f"AI explanation received via '{shape.name}' shape "
                f"({result.method.value}, {len(result.explanations)} explanations)"
            )
            return result

        trace.append(GatewayState.LOCAL_FALLBACK)
        Log.warning(f"All {len(self._ladder)} request shapes failed, using local fallback")
        return build_local_fallback(assessments)

    def _attempt(
        self,
        client: BaseInferenceClient,
        shape: RequestShape,
        prompt: str,
        timeout: float | None,
    ) -> object | None:
        try:
            return client.send(shape.build(prompt, self._preamble), timeout_seconds=timeout)
        except InferenceError as exc:
            Log.warning(f"Inference attempt '{shape.name}' failed: {exc}")
        except Exception as exc:
            Log.warning(f"Inference attempt '{shape.name}' failed unexpectedly: {exc!r}")
        return None

    def _timeout_for(self, started: float) -> float | None:
        if self._deadline_seconds is None:
            return self._call_timeout_seconds
        remaining = self._deadline_seconds - (self._clock() - started)
        if self._call_timeout_seconds is None:
            return remaining
        return min(remaining, self._call_timeout_seconds)
