from labexplain.merging.merger import (
    LAB_FOLLOW_UPS_MARKER,
    LAB_HIGHLIGHTS_MARKER,
    LAB_INSIGHTS_MARKER,
    ResultMerger,
    build_narrative,
)
from labexplain.merging.models import ReportAnalysis

__all__ = [
    "LAB_FOLLOW_UPS_MARKER",
    "LAB_HIGHLIGHTS_MARKER",
    "LAB_INSIGHTS_MARKER",
    "ReportAnalysis",
    "ResultMerger",
    "build_narrative",
]
