from dataclasses import dataclass, field
from enum import Enum


class Status(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SeverityCutoffs:
    """Ratio cutoffs relative to a normal bound, for one direction.

    Low direction (ratio = value / normal_low): below ``mild`` is mild,
    below ``moderate`` is moderate, below ``severe`` is severe.
    High direction (ratio = value / normal_high): above each cutoff escalates.
    """

    moderate: float
    severe: float
    mild: float = 1.0


DEFAULT_LOW_CUTOFFS = SeverityCutoffs(moderate=0.85, severe=0.70)
DEFAULT_HIGH_CUTOFFS = SeverityCutoffs(moderate=1.20, severe=1.50)


@dataclass(frozen=True)
class Bounds:
    """Normal low/high bounds; either may be missing."""

    low: float | None = None
    high: float | None = None


@dataclass(frozen=True)
class ReferenceRange:
    """Reference range configuration for one analyte."""

    key: str
    unit: str = ""
    normal_low: float | None = None
    normal_high: float | None = None
    sex_overrides: dict[str, Bounds] = field(default_factory=dict)
    low_cutoffs: SeverityCutoffs = DEFAULT_LOW_CUTOFFS
    high_cutoffs: SeverityCutoffs = DEFAULT_HIGH_CUTOFFS
    rescale_above: float | None = None
    rescale_divisor: float = 1.0

    def bounds_for(self, sex: str | None) -> Bounds:
        """Resolve bounds for *sex*, falling back per bound to the generic ones."""
        override = self.sex_overrides.get(sex) if sex else None
        if override is None:
            return Bounds(low=self.normal_low, high=self.normal_high)
        return Bounds(
            low=override.low if override.low is not None else self.normal_low,
            high=override.high if override.high is not None else self.normal_high,
        )

    def rescale(self, value: float) -> float:
        """Convert values reported in a smaller unit (raw counts) to the table's unit."""
        if self.rescale_above is not None and value > self.rescale_above:
            return value / self.rescale_divisor
        return value


@dataclass(frozen=True)
class AssessmentResult:
    """Classified lab value."""

    key: str
    value: float
    unit: str
    normal_range: Bounds
    status: Status
    severity: Severity

    @property
    def is_urgent(self) -> bool:
        return self.severity in (Severity.MODERATE, Severity.SEVERE)

    def to_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "value": self.value,
            "unit": self.unit,
            "normalRange": {"low": self.normal_range.low, "high": self.normal_range.high},
            "status": self.status.value,
            "severity": self.severity.value,
        }
