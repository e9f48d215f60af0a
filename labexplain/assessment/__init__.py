from labexplain.assessment.assessor import SeverityAssessor
from labexplain.assessment.exceptions import ReferenceRangeError
from labexplain.assessment.loader import build_reference_ranges, load_reference_ranges
from labexplain.assessment.models import (
    AssessmentResult,
    Bounds,
    ReferenceRange,
    Severity,
    SeverityCutoffs,
    Status,
)

__all__ = [
    "AssessmentResult",
    "Bounds",
    "ReferenceRange",
    "ReferenceRangeError",
    "Severity",
    "SeverityAssessor",
    "SeverityCutoffs",
    "Status",
    "build_reference_ranges",
    "load_reference_ranges",
]
