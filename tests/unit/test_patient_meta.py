"""Tests for patient metadata parsing and normalization."""

from labexplain.extraction.models import PatientMeta, normalize_sex
from labexplain.extraction.patient_meta import extract_patient_meta


class TestExtractPatientMeta:
    def test_reads_header_fields(self, sample_report_text: str) -> None:
        meta = extract_patient_meta(sample_report_text)
        assert meta.name == "Jane Doe"
        assert meta.dob == "1980-02-14 (45 years)"
        assert meta.sex == "female"
        assert meta.age == 45

    def test_missing_fields_stay_none(self) -> None:
        meta = extract_patient_meta("Hemoglobin: 13.5 g/dL")
        assert meta == PatientMeta()

    def test_empty_text(self) -> None:
        assert extract_patient_meta("") == PatientMeta()

    def test_case_insensitive_labels(self) -> None:
        meta = extract_patient_meta("SEX: MALE\nPATIENT NAME: John Roe")
        assert meta.sex == "male"
        assert meta.name == "John Roe"


class TestPatientMeta:
    def test_sex_aliases(self) -> None:
        assert normalize_sex("M") == "male"
        assert normalize_sex(" Female ") == "female"
        assert normalize_sex("unknown") is None
        assert normalize_sex(None) is None

    def test_sex_is_normalized_on_construction(self) -> None:
        assert PatientMeta(sex="F").sex == "female"

    def test_from_mapping(self) -> None:
        meta = PatientMeta.from_mapping({"name": "A", "sex": "male", "age": "52", "extra": 1})
        assert meta == PatientMeta(name="A", sex="male", age=52)

    def test_from_mapping_ignores_bad_age(self) -> None:
        assert PatientMeta.from_mapping({"age": "old"}).age is None
        assert PatientMeta.from_mapping({"age": True}).age is None

    def test_as_dict_drops_unset_fields(self) -> None:
        assert PatientMeta(sex="male", age=40).as_dict() == {"sex": "male", "age": 40}
