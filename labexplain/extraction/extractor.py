"""Regex-driven extraction of lab values from free report text."""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import ClassVar

from labexplain.extraction.models import Observation
from labexplain.logging.logger import Log

_WHITESPACE_RE = re.compile(r"\s+")

# Up to 20 non-digit characters may sit between a label and its value,
# e.g. "hemoglobin (hb): 8.9" or "platelet count ....... 220,000".
_GAP = r"[^0-9]{0,20}"
_NUMBER = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"


def normalize_text(text: str) -> str:
    """Lower-case *text* and collapse every whitespace run into one space."""
    return _WHITESPACE_RE.sub(" ", text or "").strip().lower()


@dataclass(frozen=True)
class AnalytePattern:
    """Label synonyms for one analyte, compiled into a single tolerant regex."""

    key: str
    labels: tuple[str, ...]
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.labels:
            raise ValueError(f"Analyte '{self.key}' needs at least one label")
        alternatives = "|".join(re.escape(label.lower()) for label in self.labels)
        compiled = re.compile(rf"(?<![a-z])(?:{alternatives})(?![a-z]){_GAP}{_NUMBER}")
        object.__setattr__(self, "regex", compiled)

    def search(self, normalized: str) -> float | None:
        match = self.regex.search(normalized)
        if match is None:
            return None
        return float(match.group(1).replace(",", ""))


class ValueExtractor:
    """Maps report text to named numeric observations.

    Each analyte yields at most one observation: the first match wins.
    Analytes without a match are absent from the output.
    """

    DEFAULT_PATTERNS: ClassVar[tuple[AnalytePattern, ...]] = (
        AnalytePattern("hemoglobin", ("hemoglobin", "haemoglobin", "hgb", "hb")),
        AnalytePattern("platelet", ("platelet count", "platelets", "platelet", "plt")),
        AnalytePattern(
            "glucose_fasting",
            ("fasting glucose", "fasting blood sugar", "blood sugar fasting", "fbs", "glucose"),
        ),
    )

    def __init__(self, patterns: Sequence[AnalytePattern] | None = None) -> None:
        self._patterns = tuple(patterns) if patterns is not None else self.DEFAULT_PATTERNS

    @property
    def keys(self) -> list[str]:
        return [p.key for p in self._patterns]

    def extract(self, text: str) -> dict[str, float]:
        """Return ``{analyte_key: value}`` for every analyte found in *text*."""
        normalized = normalize_text(text)
        found: dict[str, float] = {}
        for pattern in self._patterns:
            if pattern.key in found:
                continue
            value = pattern.search(normalized)
            if value is not None:
                found[pattern.key] = value
        Log.debug(f"Extracted {len(found)} lab values: {sorted(found)}")
        return found

    def observations(self, text: str) -> list[Observation]:
        """Same as :meth:`extract`, as ordered Observation objects."""
        return [Observation(key=k, value=v) for k, v in self.extract(text).items()]
