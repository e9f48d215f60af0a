import re

from labexplain.extraction.models import PatientMeta

_NAME_RE = re.compile(r"patient name:[ \t]*(.+?)[ \t]*(?:\n|$)", re.IGNORECASE)
_DOB_RE = re.compile(r"date of birth:[ \t]*(.+?)[ \t]*(?:\n|$)", re.IGNORECASE)
_SEX_RE = re.compile(r"sex:\s*(male|female|other)\b", re.IGNORECASE)
_AGE_RE = re.compile(r"\((\d{1,3})\s+years?\)", re.IGNORECASE)


def extract_patient_meta(text: str) -> PatientMeta:
    """Read name, date of birth, sex and age from report header lines.

    Works on the raw text because the name and date patterns are line-based.
    Fields that are not found stay None.
    """
    if not text:
        return PatientMeta()

    name = _first_group(_NAME_RE, text)
    dob = _first_group(_DOB_RE, text)
    sex = _first_group(_SEX_RE, text)
    age_raw = _first_group(_AGE_RE, text)
    return PatientMeta(
        name=name,
        dob=dob,
        sex=sex,
        age=int(age_raw) if age_raw else None,
    )


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None
