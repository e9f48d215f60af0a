"""Rule engine classifying lab values against reference ranges."""

from collections.abc import Mapping

from labexplain.assessment.models import (
    AssessmentResult,
    Bounds,
    ReferenceRange,
    Severity,
    SeverityCutoffs,
    Status,
)
from labexplain.extraction.models import PatientMeta
from labexplain.logging.logger import Log


class SeverityAssessor:
    """Maps (analyte, value, sex) to a status and severity.

    Pure and total: unknown analytes and missing bounds degrade to
    ``unknown``/``normal`` instead of raising.
    """

    def __init__(self, ranges: Mapping[str, ReferenceRange]) -> None:
        self._ranges = dict(ranges)

    def assess(
        self,
        key: str,
        value: float,
        patient_meta: PatientMeta | None = None,
    ) -> AssessmentResult:
        conf = self._ranges.get(key)
        if conf is None:
            Log.debug(f"No reference range configured for '{key}'")
            return AssessmentResult(
                key=key,
                value=value,
                unit="",
                normal_range=Bounds(),
                status=Status.UNKNOWN,
                severity=Severity.UNKNOWN,
            )

        value = conf.rescale(value)
        sex = patient_meta.sex if patient_meta is not None else None
        bounds = conf.bounds_for(sex)

        low, high = bounds.low, bounds.high
        # Only analytes with both bounds are evaluated on the low side.
        if low is not None and high is not None and low > 0 and value < low:
            severity = _classify_low(value / low, conf.low_cutoffs)
            status = Status.LOW
        else:
            severity = _classify_high(value, high, conf.high_cutoffs)
            status = Status.HIGH

        return AssessmentResult(
            key=key,
            value=value,
            unit=conf.unit,
            normal_range=bounds,
            status=status if severity is not Severity.NORMAL else Status.NORMAL,
            severity=severity,
        )

    def assess_all(
        self,
        values: Mapping[str, float],
        patient_meta: PatientMeta | None = None,
    ) -> list[AssessmentResult]:
        """Assess every value, keeping the input order."""
        return [self.assess(key, value, patient_meta) for key, value in values.items()]


def _classify_low(ratio: float, cutoffs: SeverityCutoffs) -> Severity:
    if ratio < cutoffs.severe:
        return Severity.SEVERE
    if ratio < cutoffs.moderate:
        return Severity.MODERATE
    if ratio < cutoffs.mild:
        return Severity.MILD
    return Severity.NORMAL


def _classify_high(value: float, normal_high: float | None, cutoffs: SeverityCutoffs) -> Severity:
    if normal_high is None or normal_high <= 0 or value <= normal_high:
        return Severity.NORMAL
    ratio = value / normal_high
    if ratio > cutoffs.severe:
        return Severity.SEVERE
    if ratio > cutoffs.moderate:
        return Severity.MODERATE
    if ratio > cutoffs.mild:
        return Severity.MILD
    return Severity.NORMAL
