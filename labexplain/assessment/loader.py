"""Loads and validates the reference range table."""

import json
from pathlib import Path
from typing import Any

from labexplain.assessment.exceptions import ReferenceRangeError
from labexplain.assessment.models import (
    DEFAULT_HIGH_CUTOFFS,
    DEFAULT_LOW_CUTOFFS,
    Bounds,
    ReferenceRange,
    SeverityCutoffs,
)

_DEFAULT_TABLE_PATH = Path(__file__).parent / "reference_ranges.json"
_VALID_SEXES = frozenset({"male", "female", "other"})


def load_reference_ranges(path: Path | None = None) -> dict[str, ReferenceRange]:
    """Load the reference range table from a JSON file.

    Args:
        path: Path to the table. Defaults to the bundled reference_ranges.json.

    Returns:
        Mapping of analyte key to ReferenceRange.

    Raises:
        ReferenceRangeError: if the file cannot be read or fails validation.
    """
    if path is None:
        path = _DEFAULT_TABLE_PATH
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ReferenceRangeError(f"Failed to load reference ranges: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ReferenceRangeError(f"Invalid reference range JSON: {exc}") from exc
    return build_reference_ranges(raw)


def build_reference_ranges(data: Any) -> dict[str, ReferenceRange]:
    """Validate a parsed table and build ReferenceRange objects."""
    if not isinstance(data, dict):
        raise ReferenceRangeError("Reference range table must be an object")
    if not data:
        raise ReferenceRangeError("Reference range table is empty")
    return {key: _build_range(key, entry) for key, entry in data.items()}


def _build_range(key: str, raw: Any) -> ReferenceRange:
    if not isinstance(raw, dict):
        raise ReferenceRangeError(f"Analyte '{key}': entry must be an object")
    unit = raw.get("unit", "")
    if not isinstance(unit, str):
        raise ReferenceRangeError(f"Analyte '{key}': 'unit' must be a string")

    normal_low = _optional_number(raw.get("normal_low"), key, "normal_low")
    normal_high = _optional_number(raw.get("normal_high"), key, "normal_high")
    _check_order(normal_low, normal_high, key, "normal")

    sex_overrides = _build_sex_overrides(raw.get("sex"), key)
    if normal_low is None and normal_high is None and not sex_overrides:
        raise ReferenceRangeError(f"Analyte '{key}': at least one normal bound is required")

    low_cutoffs, high_cutoffs = _build_severity(raw.get("severity"), key)
    rescale_above, rescale_divisor = _build_rescale(raw.get("rescale"), key)

    return ReferenceRange(
        key=key,
        unit=unit,
        normal_low=normal_low,
        normal_high=normal_high,
        sex_overrides=sex_overrides,
        low_cutoffs=low_cutoffs,
        high_cutoffs=high_cutoffs,
        rescale_above=rescale_above,
        rescale_divisor=rescale_divisor,
    )


def _build_sex_overrides(raw: Any, key: str) -> dict[str, Bounds]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ReferenceRangeError(f"Analyte '{key}': 'sex' must be an object")
    overrides: dict[str, Bounds] = {}
    for sex, bounds in raw.items():
        if sex not in _VALID_SEXES:
            raise ReferenceRangeError(
                f"Analyte '{key}': unknown sex '{sex}', expected one of {sorted(_VALID_SEXES)}"
            )
        if not isinstance(bounds, dict):
            raise ReferenceRangeError(f"Analyte '{key}': 'sex.{sex}' must be an object")
        low = _optional_number(bounds.get("normal_low"), key, f"sex.{sex}.normal_low")
        high = _optional_number(bounds.get("normal_high"), key, f"sex.{sex}.normal_high")
        _check_order(low, high, key, f"sex.{sex}")
        overrides[sex] = Bounds(low=low, high=high)
    return overrides


def _build_severity(raw: Any, key: str) -> tuple[SeverityCutoffs, SeverityCutoffs]:
    if raw is None:
        return DEFAULT_LOW_CUTOFFS, DEFAULT_HIGH_CUTOFFS
    if not isinstance(raw, dict):
        raise ReferenceRangeError(f"Analyte '{key}': 'severity' must be an object")
    low = _build_cutoffs(raw.get("low"), key, "low", DEFAULT_LOW_CUTOFFS)
    high = _build_cutoffs(raw.get("high"), key, "high", DEFAULT_HIGH_CUTOFFS)
    if low.mild < 1.0:
        raise ReferenceRangeError(f"Analyte '{key}': low 'mild' cutoff must be >= 1.0")
    if high.mild > 1.0:
        raise ReferenceRangeError(f"Analyte '{key}': high 'mild' cutoff must be <= 1.0")
    if not low.severe <= low.moderate <= low.mild:
        raise ReferenceRangeError(
            f"Analyte '{key}': low cutoffs must satisfy severe <= moderate <= mild"
        )
    if not high.mild <= high.moderate <= high.severe:
        raise ReferenceRangeError(
            f"Analyte '{key}': high cutoffs must satisfy mild <= moderate <= severe"
        )
    return low, high


def _build_cutoffs(
    raw: Any,
    key: str,
    direction: str,
    default: SeverityCutoffs,
) -> SeverityCutoffs:
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ReferenceRangeError(f"Analyte '{key}': 'severity.{direction}' must be an object")
    values: dict[str, float] = {}
    for name in ("mild", "moderate", "severe"):
        number = _optional_number(raw.get(name), key, f"severity.{direction}.{name}")
        values[name] = number if number is not None else getattr(default, name)
    return SeverityCutoffs(**values)


def _build_rescale(raw: Any, key: str) -> tuple[float | None, float]:
    if raw is None:
        return None, 1.0
    if not isinstance(raw, dict):
        raise ReferenceRangeError(f"Analyte '{key}': 'rescale' must be an object")
    above = _optional_number(raw.get("above"), key, "rescale.above")
    divisor = _optional_number(raw.get("divisor"), key, "rescale.divisor")
    if above is None or divisor is None or divisor <= 0:
        raise ReferenceRangeError(
            f"Analyte '{key}': 'rescale' needs 'above' and a positive 'divisor'"
        )
    return above, divisor


def _optional_number(raw: Any, key: str, field: str) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ReferenceRangeError(f"Analyte '{key}': '{field}' must be a number or null")
    return float(raw)


def _check_order(low: float | None, high: float | None, key: str, field: str) -> None:
    if low is not None and high is not None and low > high:
        raise ReferenceRangeError(f"Analyte '{key}': {field} low bound exceeds high bound")
