from labexplain.extraction.extractor import AnalytePattern, ValueExtractor, normalize_text
from labexplain.extraction.models import Observation, PatientMeta
from labexplain.extraction.patient_meta import extract_patient_meta

__all__ = [
    "AnalytePattern",
    "Observation",
    "PatientMeta",
    "ValueExtractor",
    "extract_patient_meta",
    "normalize_text",
]
