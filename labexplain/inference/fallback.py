from collections.abc import Sequence

from labexplain.assessment.models import AssessmentResult, Severity, Status
from labexplain.inference.models import Explanation, Method, NormalizedAIResult

GENERIC_QUESTION = "Please consult a doctor for next steps."


def build_local_fallback(assessments: Sequence[AssessmentResult]) -> NormalizedAIResult:
    """Template a result from the rule engine output alone.

    Urgent action items are produced for ``severe`` items only.
    """
    return NormalizedAIResult(
        explanations=[
            Explanation(key=a.key, explanation=_explain(a), severity=a.severity.value)
            for a in assessments
        ],
        action_items=[
            f"URGENT: see a doctor for {a.key}"
            for a in assessments
            if a.severity is Severity.SEVERE
        ],
        questions=[GENERIC_QUESTION],
        method=Method.LOCAL_FALLBACK,
    )


def _explain(a: AssessmentResult) -> str:
    unit = f" {a.unit}" if a.unit else ""
    if a.status is Status.UNKNOWN:
        return (
            f"Your {a.key} value is {a.value:g}{unit}. No reference range is configured "
            f"for it, so please ask your doctor what it means."
        )
    if a.status is Status.NORMAL:
        low = _bound(a.normal_range.low)
        high = _bound(a.normal_range.high)
        return f"Your {a.key} is within the normal range ({low}-{high}{unit})."
    return (
        f"Your {a.key} is {a.status.value} (value {a.value:g}{unit}). "
        f"Severity: {a.severity.value}. We recommend medical follow-up."
    )


def _bound(value: float | None) -> str:
    return "n/a" if value is None else f"{value:g}"
