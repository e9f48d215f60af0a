from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

_SEX_ALIASES = {
    "male": "male",
    "m": "male",
    "man": "male",
    "female": "female",
    "f": "female",
    "woman": "female",
    "other": "other",
}


@dataclass(frozen=True)
class Observation:
    """A single numeric lab value found in report text."""

    key: str
    value: float


@dataclass(frozen=True)
class PatientMeta:
    """Patient metadata used for sex-specific ranges and prompt context."""

    name: str | None = None
    dob: str | None = None
    sex: str | None = None
    age: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sex", normalize_sex(self.sex))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "PatientMeta":
        """Build from a loose mapping, ignoring unknown keys."""
        age = raw.get("age")
        if isinstance(age, str) and age.strip().isdigit():
            age = int(age.strip())
        return cls(
            name=_optional_str(raw.get("name")),
            dob=_optional_str(raw.get("dob")),
            sex=_optional_str(raw.get("sex")),
            age=age if isinstance(age, int) and not isinstance(age, bool) else None,
        )

    def as_dict(self) -> dict[str, object]:
        """Return only the fields that are set."""
        data: dict[str, object] = {
            "name": self.name,
            "dob": self.dob,
            "sex": self.sex,
            "age": self.age,
        }
        return {k: v for k, v in data.items() if v is not None}


def normalize_sex(raw: str | None) -> str | None:
    """Map free-form sex values onto male/female/other, or None."""
    if not raw:
        return None
    return _SEX_ALIASES.get(raw.strip().lower())


def _optional_str(raw: object) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None
