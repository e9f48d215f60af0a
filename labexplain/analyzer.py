from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from labexplain.assessment.assessor import SeverityAssessor
from labexplain.assessment.loader import load_reference_ranges
from labexplain.assessment.models import AssessmentResult
from labexplain.config.settings import Settings
from labexplain.exceptions import AnalysisInputError
from labexplain.extraction.extractor import ValueExtractor
from labexplain.extraction.models import PatientMeta
from labexplain.extraction.patient_meta import extract_patient_meta
from labexplain.inference.factory import GatewayFactory
from labexplain.inference.gateway import InferenceGateway
from labexplain.inference.models import NormalizedAIResult
from labexplain.logging.logger import Log
from labexplain.merging.merger import ResultMerger
from labexplain.merging.models import ReportAnalysis
from labexplain.prompting.prompt_builder import PromptBuilder


@dataclass(frozen=True)
class LabAnalysis:
    """Output of one analysis: rule engine results plus the AI explanation."""

    assessments: list[AssessmentResult] = field(default_factory=list)
    result: NormalizedAIResult = field(default_factory=NormalizedAIResult)
    patient_meta: PatientMeta = field(default_factory=PatientMeta)

    def to_dict(self) -> dict[str, object]:
        return {
            "assessments": [a.to_dict() for a in self.assessments],
            "result": self.result.to_dict(),
            "patientMeta": self.patient_meta.as_dict(),
        }


class LabAnalyzer:
    """Orchestrates the lab explanation pipeline.

    Pipeline: extract -> assess -> build prompt -> infer (-> merge).
    """

    def __init__(
        self,
        extractor: ValueExtractor,
        assessor: SeverityAssessor,
        prompt_builder: PromptBuilder,
        gateway: InferenceGateway,
        merger: ResultMerger,
    ) -> None:
        self._extractor = extractor
        self._assessor = assessor
        self._prompt_builder = prompt_builder
        self._gateway = gateway
        self._merger = merger

    def analyze(
        self,
        raw_text: str,
        patient_meta: PatientMeta | Mapping[str, Any] | None = None,
    ) -> LabAnalysis:
        """Analyze report text. Only malformed input raises.

        Raises:
            AnalysisInputError: if raw_text is not a string or patient_meta
                is neither PatientMeta, a mapping, nor None.
        """
        meta = self._resolve_meta(raw_text, patient_meta)

        values = self._extractor.extract(raw_text)
        assessments = self._assessor.assess_all(values, meta)
        Log.info(
            f"Assessed {len(assessments)} lab values: "
            f"{[f'{a.key}={a.severity.value}' for a in assessments]}"
        )

        prompt = self._prompt_builder.build(assessments, meta)
        Log.debug(f"Lab explanation prompt:\n{prompt}")

        result = self._gateway.explain(prompt, assessments)
        Log.info(f"Lab analysis complete ({result.method.value})")
        return LabAnalysis(assessments=assessments, result=result, patient_meta=meta)

    def analyze_into(
        self,
        base: ReportAnalysis,
        raw_text: str,
        patient_meta: PatientMeta | Mapping[str, Any] | None = None,
    ) -> tuple[ReportAnalysis, LabAnalysis]:
        """Analyze and merge the explanation into an existing report analysis."""
        lab_analysis = self.analyze(raw_text, patient_meta)
        return self._merger.merge(base, lab_analysis.result), lab_analysis

    @staticmethod
    def _resolve_meta(
        raw_text: object,
        patient_meta: PatientMeta | Mapping[str, Any] | None,
    ) -> PatientMeta:
        if not isinstance(raw_text, str):
            raise AnalysisInputError(
                f"raw_text must be a string, got {type(raw_text).__name__}"
            )
        if patient_meta is None:
            return extract_patient_meta(raw_text)
        if isinstance(patient_meta, PatientMeta):
            return patient_meta
        if isinstance(patient_meta, Mapping):
            return PatientMeta.from_mapping(patient_meta)
        raise AnalysisInputError(
            f"patient_meta must be a mapping, got {type(patient_meta).__name__}"
        )


def build_analyzer(settings: Settings) -> LabAnalyzer:
    """Build a LabAnalyzer with all required collaborators.

    Raises:
        ReferenceRangeError: if the reference range table cannot be loaded.
    """
    ranges = load_reference_ranges(settings.reference_ranges_path)
    return LabAnalyzer(
        extractor=ValueExtractor(),
        assessor=SeverityAssessor(ranges),
        prompt_builder=PromptBuilder(),
        gateway=GatewayFactory.create(settings),
        merger=ResultMerger(),
    )


_default_analyzer: LabAnalyzer | None = None


def analyze(
    raw_text: str,
    patient_meta: PatientMeta | Mapping[str, Any] | None = None,
) -> LabAnalysis:
    """Analyze with an analyzer built from environment settings on first use."""
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = build_analyzer(Settings())
    return _default_analyzer.analyze(raw_text, patient_meta)
