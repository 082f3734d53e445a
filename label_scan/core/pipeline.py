import logging
from dataclasses import dataclass

from label_scan.config import Settings
from label_scan.core.confidence import ConfidenceEvaluator, create_evaluator
from label_scan.core.extraction_rules import default_rules
from label_scan.core.extractor import FieldExtractor
from label_scan.core.normalizer import normalize_record
from label_scan.core.recommendation import generate_recommendation
from label_scan.core.types import ManualEntry, ProcessingOutcome, ProductRecord, RawRecognition, Recommendation
from label_scan.utils.timings import measure_ms

logger = logging.getLogger('label_scan.pipeline')


@dataclass
class PipelineResult:
    outcome: ProcessingOutcome
    recommendation: Recommendation | None
    latency_ms: int


def _recommend(record: ProductRecord | None) -> Recommendation | None:
    # An empty record would only ever score the neutral defaults.
    if record is None or not (record.ingredients or record.nutrition_facts):
        return None
    return generate_recommendation(record)


class ScanPipeline:
    def __init__(self, extractor: FieldExtractor | None = None, evaluator: ConfidenceEvaluator | None = None):
        self._extractor = extractor or FieldExtractor()
        self._evaluator = evaluator or ConfidenceEvaluator()

    @property
    def evaluator(self) -> ConfidenceEvaluator:
        return self._evaluator

    def process(self, recognition: RawRecognition, retry_count: int = 0) -> PipelineResult:
        with measure_ms() as elapsed:
            record = normalize_record(self._extractor.extract(recognition))
            outcome = self._evaluator.evaluate(record, recognition.confidence, retry_count)
            recommendation = _recommend(outcome.data)
        logger.debug(
            'Processed recognition success=%s confidence=%s raw=%s fields=%s',
            outcome.success,
            outcome.confidence,
            recognition.confidence,
            record.present_fields(),
        )
        return PipelineResult(outcome=outcome, recommendation=recommendation, latency_ms=elapsed())

    def process_missing(self, retry_count: int = 0) -> PipelineResult:
        with measure_ms() as elapsed:
            outcome = self._evaluator.evaluate(None, 0.0, retry_count)
        return PipelineResult(outcome=outcome, recommendation=None, latency_ms=elapsed())

    def process_manual_entry(self, entry: ManualEntry) -> PipelineResult:
        with measure_ms() as elapsed:
            outcome = self._evaluator.evaluate_manual_entry(entry)
            recommendation = _recommend(outcome.data)
        return PipelineResult(outcome=outcome, recommendation=recommendation, latency_ms=elapsed())


def create_pipeline(settings: Settings) -> ScanPipeline:
    extractor = FieldExtractor(default_rules(max_ingredients=settings.max_ingredients))
    return ScanPipeline(extractor=extractor, evaluator=create_evaluator(settings))
