"""Renders assessed lab values into an instruction document for the AI service."""

import json
from collections.abc import Sequence
from pathlib import Path

from labexplain.assessment.models import AssessmentResult
from labexplain.extraction.models import PatientMeta
from labexplain.prompting.prompt_loader import load_prompt_template

SAFETY_PREAMBLE = (
    "You are a helpful, concise medical assistant that explains lab results "
    "in plain language for patients."
)


class PromptBuilder:
    """Builds the lab explanation prompt from a bundled template."""

    def __init__(self, template_path: Path | None = None) -> None:
        self._template = load_prompt_template(template_path)

    def build(
        self,
        assessments: Sequence[AssessmentResult],
        patient_meta: PatientMeta | None = None,
    ) -> str:
        meta = patient_meta.as_dict() if patient_meta is not None else {}
        return self._template.format(
            safety_preamble=SAFETY_PREAMBLE,
            patient_meta=json.dumps(meta, ensure_ascii=False),
            lab_results=self._format_results(assessments),
        )

    @staticmethod
    def _format_results(assessments: Sequence[AssessmentResult]) -> str:
        if not assessments:
            return "- No recognizable lab values were found."
        return "\n".join(format_assessment_line(a) for a in assessments)


def format_assessment_line(assessment: AssessmentResult) -> str:
    """One prompt line: value, unit, normal range, status and severity."""
    unit = f" {assessment.unit}" if assessment.unit else ""
    low = _format_bound(assessment.normal_range.low)
    high = _format_bound(assessment.normal_range.high)
    return (
        f"- {assessment.key}: {_format_number(assessment.value)}{unit} "
        f"(normal range: {low}-{high}{unit}). "
        f"Status: {assessment.status.value}, severity: {assessment.severity.value}"
    )


def _format_bound(bound: float | None) -> str:
    return "n/a" if bound is None else _format_number(bound)


def _format_number(value: float) -> str:
    return f"{value:.10g}"
