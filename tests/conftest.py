import pytest

from labexplain.assessment.assessor import SeverityAssessor
from labexplain.assessment.loader import load_reference_ranges
from labexplain.assessment.models import ReferenceRange


class FakeClock:
    """Manually advanced clock for token expiry and deadline tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def reference_ranges() -> dict[str, ReferenceRange]:
    """The bundled reference range table."""
    return load_reference_ranges()


@pytest.fixture()
def assessor(reference_ranges: dict[str, ReferenceRange]) -> SeverityAssessor:
    return SeverityAssessor(reference_ranges)


@pytest.fixture()
def sample_report_text() -> str:
    return (
        "Patient Name: Jane Doe\n"
        "Date of Birth: 1980-02-14 (45 years)\n"
        "Sex: Female\n"
        "\n"
        "COMPLETE BLOOD COUNT\n"
        "Hemoglobin (Hb): 8.9 g/dL\n"
        "Platelet Count ........ 220,000 /uL\n"
        "Fasting Glucose\t105 mg/dL\n"
    )
