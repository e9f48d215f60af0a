"""Folds normalized AI output back into a report analysis."""

import re
from dataclasses import replace

from labexplain.inference.models import Explanation, NormalizedAIResult
from labexplain.merging.models import ReportAnalysis

LAB_HIGHLIGHTS_MARKER = "**Lab Highlights:**"
LAB_INSIGHTS_MARKER = "**Lab Insights:**"
LAB_FOLLOW_UPS_MARKER = "**Lab Follow-ups:**"

_MAX_FINDING_BULLETS = 3
_EXTRACTION_FAILED_RE = re.compile(r"no text could be extracted", re.IGNORECASE)


class ResultMerger:
    """Merges a NormalizedAIResult into a ReportAnalysis.

    Sections are appended under fixed markers and skipped when the marker is
    already present, so merging twice gives the same analysis as merging once.
    """

    def merge(self, base: ReportAnalysis, result: NormalizedAIResult) -> ReportAnalysis:
        return replace(
            base,
            summary=self._merge_summary(base.summary, result.explanations),
            findings=self._merge_findings(base.findings, result.explanations),
            recommendations=self._merge_recommendations(base.recommendations, result.action_items),
            lab_narrative=build_narrative(result),
        )

    @staticmethod
    def _merge_summary(summary: str, explanations: list[Explanation]) -> str:
        # An empty summary stays empty; the highlights only annotate existing text.
        if not explanations or not summary.strip() or LAB_HIGHLIGHTS_MARKER in summary:
            return summary
        return f"{summary}\n\n{LAB_HIGHLIGHTS_MARKER}\n{_finding_bullets(explanations)}"

    @staticmethod
    def _merge_findings(findings: str, explanations: list[Explanation]) -> str:
        if not explanations or LAB_INSIGHTS_MARKER in findings:
            return findings
        section = f"{LAB_INSIGHTS_MARKER}\n{_finding_bullets(explanations)}"
        if not findings.strip() or _EXTRACTION_FAILED_RE.search(findings):
            return section
        return f"{findings}\n\n{section}"

    @staticmethod
    def _merge_recommendations(recommendations: str, action_items: list[str]) -> str:
        if not action_items or LAB_FOLLOW_UPS_MARKER in recommendations:
            return recommendations
        actions = "\n".join(f"• {item}" for item in action_items)
        section = f"{LAB_FOLLOW_UPS_MARKER}\n{actions}"
        if not recommendations.strip():
            return section
        return f"{recommendations}\n\n{section}"


def build_narrative(result: NormalizedAIResult) -> str | None:
    """Flatten a result into patient-readable sentences, or None if empty."""
    sentences: list[str] = []
    for item in result.explanations:
        text = item.explanation.strip().rstrip(".")
        if not text:
            continue
        label = _label(item.key) or "This result"
        sentences.append(f"{label}: {text} (severity: {item.severity}).")

    if result.action_items:
        sentences.append(f"Recommended actions: {'; '.join(result.action_items)}.")
    if result.questions:
        sentences.append(
            f"Questions to discuss with your doctor: {'; '.join(result.questions)}."
        )
    return " ".join(sentences) if sentences else None


def _finding_bullets(explanations: list[Explanation]) -> str:
    return "\n".join(_finding_bullet(e) for e in explanations[:_MAX_FINDING_BULLETS])


def _finding_bullet(item: Explanation) -> str:
    label = (_label(item.key) or "lab result").upper()
    return f"• {label} ({item.severity}): {item.explanation}"


def _label(key: str) -> str:
    return key.replace("_", " ").strip()
