from dataclasses import dataclass


@dataclass(frozen=True)
class ReportAnalysis:
    """Narrative sections of an analyzed report."""

    summary: str = ""
    findings: str = ""
    recommendations: str = ""
    lab_narrative: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "summary": self.summary,
            "findings": self.findings,
            "recommendations": self.recommendations,
            "labNarrative": self.lab_narrative,
        }
