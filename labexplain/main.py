import argparse
import json
import sys
from pathlib import Path

from labexplain.analyzer import build_analyzer
from labexplain.assessment.exceptions import ReferenceRangeError
from labexplain.config.settings import Settings
from labexplain.extraction.models import PatientMeta
from labexplain.extraction.patient_meta import extract_patient_meta
from labexplain.logging.logger import Log
from labexplain.prompting.exceptions import PromptError


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="labexplain",
        description="Explain the lab values found in a medical report text.",
    )
    parser.add_argument(
        "report",
        nargs="?",
        default="-",
        help="Path to a plain-text report, or '-' for stdin (default).",
    )
    parser.add_argument("--sex", help="Patient sex (male/female/other).")
    parser.add_argument("--age", type=int, help="Patient age in years.")
    return parser.parse_args(argv)


def _read_report(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    """Entry point: load settings -> build analyzer -> analyze -> print JSON."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    try:
        text = _read_report(args.report)
    except OSError as exc:
        Log.error(f"Cannot read report: {exc}")
        return 2

    meta = extract_patient_meta(text)
    if args.sex or args.age is not None:
        meta = PatientMeta(
            name=meta.name,
            dob=meta.dob,
            sex=args.sex or meta.sex,
            age=args.age if args.age is not None else meta.age,
        )

    try:
        analyzer = build_analyzer(settings)
    except (ReferenceRangeError, PromptError, ValueError) as exc:
        Log.error(f"Invalid configuration: {exc}")
        return 1

    analysis = analyzer.analyze(text, meta)
    json.dump(analysis.to_dict(), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
