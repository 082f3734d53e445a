import logging
import math
import re
from dataclasses import dataclass, field, replace

from label_scan.config import Settings
from label_scan.core.errors import LOW_CONFIDENCE, NO_DATA_EXTRACTED
from label_scan.core.normalizer import normalize_record, validate_manual_entry, validate_record
from label_scan.core.quantities import round_half_up
from label_scan.core.types import ManualEntry, ProcessingOutcome, ProductRecord

logger = logging.getLogger('label_scan.confidence')

IMAGE_IMPROVEMENT_SUGGESTIONS = (
    'Ensure good lighting when taking the photo',
    'Hold the camera steady and focus clearly',
    'Capture the entire label in the frame',
    'Avoid shadows and reflections on the packaging',
    'Take the photo straight-on (not at an angle)',
    'Make sure text is clearly visible and readable',
    'Clean the packaging surface before scanning',
    'Use the back of the package for ingredient information',
)

TIER_INSUFFICIENT = 'insufficient'
TIER_LOW = 'low'
TIER_ACCEPTABLE = 'acceptable'
TIER_GOOD = 'good'
TIER_EXCELLENT = 'excellent'

_PLAIN_TEXT = re.compile(r"^[A-Za-z\s\-'&.]+$")
_UPPERCASE = re.compile(r'[A-Z]')
_DIGIT_RUN = re.compile(r'\d{3,}')


@dataclass(frozen=True)
class ConfidenceThresholds:
    minimum: float = 30
    acceptable: float = 60
    good: float = 80
    excellent: float = 95

    def __post_init__(self) -> None:
        values = (self.minimum, self.acceptable, self.good, self.excellent)
        if any(value < 0 or value > 100 for value in values):
            raise ValueError(f'Confidence thresholds must lie within [0, 100], got {values}')
        if list(values) != sorted(values):
            raise ValueError(f'Confidence thresholds must be ascending, got {values}')


@dataclass(frozen=True)
class FallbackPolicy:
    allow_manual_entry: bool = True
    allow_retry: bool = True
    max_retries: int = 2
    suggest_image_improvement: bool = True
    provide_partial_results: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f'max_retries must not be negative, got {self.max_retries}')


@dataclass(frozen=True)
class EvaluatorConfig:
    thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    fallback: FallbackPolicy = field(default_factory=FallbackPolicy)

    def with_thresholds(self, **changes) -> 'EvaluatorConfig':
        return replace(self, thresholds=replace(self.thresholds, **changes))

    def with_fallback(self, **changes) -> 'EvaluatorConfig':
        return replace(self, fallback=replace(self.fallback, **changes))


def assess_text_quality(text: str | None) -> float:
    """Score how much a field looks like clean label text, from 0 (absent) to 1."""
    if not text:
        return 0.0
    quality = 0.5
    if 3 <= len(text) <= 50:
        quality += 0.2
    if _PLAIN_TEXT.match(text):
        quality += 0.3
    if _UPPERCASE.search(text):
        quality += 0.1
    if not _DIGIT_RUN.search(text):
        quality += 0.1
    return max(0.0, min(1.0, quality))


def adjusted_confidence(record: ProductRecord, raw_confidence: float) -> int:
    adjusted = 0.0 if raw_confidence is None or math.isnan(raw_confidence) else float(raw_confidence)

    if record.product_name:
        adjusted += 5
    if record.brand:
        adjusted += 3
    if record.ingredients:
        adjusted += min(len(record.ingredients) * 2, 15)
    if record.nutrition_facts:
        adjusted += min(len(record.nutrition_facts) * 3, 20)
    if record.allergens:
        adjusted += 2
    if record.weight:
        adjusted += 3
    if record.expiry_date:
        adjusted += 3

    name_quality = assess_text_quality(record.product_name)
    brand_quality = assess_text_quality(record.brand)
    ingredient_quality = (
        sum(assess_text_quality(item) for item in record.ingredients) / len(record.ingredients)
        if record.ingredients
        else 0.0
    )
    adjusted += (name_quality + brand_quality + ingredient_quality) / 3 * 10

    return max(0, min(100, round_half_up(adjusted)))


def data_completion_suggestions(record: ProductRecord) -> list[str]:
    suggestions: list[str] = []
    if not record.product_name:
        suggestions.append('Product name not detected - check the front of the package')
    if not record.brand:
        suggestions.append('Brand name not found - look for manufacturer information')
    if not record.ingredients:
        suggestions.append('Ingredients list not found - check the back or side of the package')
    if not record.nutrition_facts:
        suggestions.append('Nutrition facts not detected - look for nutrition label')
    if not record.weight:
        suggestions.append('Product weight/size not found - check package for net weight')
    if 0 < len(record.ingredients) < 3:
        suggestions.append('Incomplete ingredients list - ensure full ingredients panel is visible')
    return suggestions


class ConfidenceEvaluator:
    """Turns a normalized record and its OCR confidence into a ProcessingOutcome.

    The evaluator holds nothing but its immutable config, so one instance can
    serve concurrent requests. Retry and manual entry are reported as flags on
    the outcome; the evaluator never loops or re-runs anything itself.
    """

    def __init__(self, config: EvaluatorConfig | None = None):
        self._config = config or EvaluatorConfig()

    @property
    def config(self) -> EvaluatorConfig:
        return self._config

    @property
    def thresholds(self) -> ConfidenceThresholds:
        return self._config.thresholds

    @property
    def fallback(self) -> FallbackPolicy:
        return self._config.fallback

    def confidence_tier(self, confidence: float) -> str:
        thresholds = self.thresholds
        if confidence >= thresholds.excellent:
            return TIER_EXCELLENT
        if confidence >= thresholds.good:
            return TIER_GOOD
        if confidence >= thresholds.acceptable:
            return TIER_ACCEPTABLE
        if confidence >= thresholds.minimum:
            return TIER_LOW
        return TIER_INSUFFICIENT

    def should_retry(self, retry_count: int) -> bool:
        return self.fallback.allow_retry and retry_count < self.fallback.max_retries

    def evaluate(self, record: ProductRecord | None, raw_confidence: float, retry_count: int = 0) -> ProcessingOutcome:
        if record is None:
            retryable = self.should_retry(retry_count)
            logger.debug('No record to evaluate retry_count=%s retryable=%s', retry_count, retryable)
            return ProcessingOutcome(
                success=False,
                confidence=0,
                requires_manual_entry=self.fallback.allow_manual_entry,
                retryable=retryable,
                tier=self.confidence_tier(0),
                suggestions=list(IMAGE_IMPROVEMENT_SUGGESTIONS) if retryable else [],
                errors=['No data extracted from image'],
                error_codes=[NO_DATA_EXTRACTED],
            )

        validation = validate_record(record)
        errors = list(validation.errors)
        warnings = list(validation.warnings)
        error_codes = list(validation.error_codes)
        requires_manual_entry = False
        retryable = False

        confidence = adjusted_confidence(record, raw_confidence)
        thresholds = self.thresholds
        if confidence < thresholds.minimum:
            errors.append('Confidence too low for reliable results')
            error_codes.append(LOW_CONFIDENCE)
            requires_manual_entry = self.fallback.allow_manual_entry
            retryable = self.should_retry(retry_count)
        elif confidence < thresholds.acceptable:
            warnings.append('Low confidence results - manual verification recommended')
            requires_manual_entry = self.fallback.allow_manual_entry
            retryable = self.should_retry(retry_count)
        elif confidence < thresholds.good:
            warnings.append('Moderate confidence - some details may be inaccurate')

        if not validation.is_valid:
            requires_manual_entry = self.fallback.allow_manual_entry
            retryable = self.should_retry(retry_count)

        suggestions: list[str] = []
        if self.fallback.suggest_image_improvement and confidence < thresholds.good:
            suggestions.extend(IMAGE_IMPROVEMENT_SUGGESTIONS)
        suggestions.extend(data_completion_suggestions(record))

        success = validation.is_valid and confidence >= thresholds.minimum
        outcome = ProcessingOutcome(
            success=success,
            confidence=confidence,
            requires_manual_entry=requires_manual_entry,
            retryable=retryable,
            data=record if success or self.fallback.provide_partial_results else None,
            tier=self.confidence_tier(confidence),
            suggestions=suggestions,
            errors=errors,
            warnings=warnings,
            error_codes=error_codes,
        )
        logger.debug(
            'Evaluated outcome success=%s confidence=%s tier=%s raw=%s retry_count=%s',
            outcome.success,
            outcome.confidence,
            outcome.tier,
            raw_confidence,
            retry_count,
        )
        return outcome

    def evaluate_manual_entry(self, entry: ManualEntry) -> ProcessingOutcome:
        validation = validate_manual_entry(entry)
        if not validation.is_valid:
            return ProcessingOutcome(
                success=False,
                confidence=0,
                requires_manual_entry=False,
                retryable=False,
                tier=self.confidence_tier(0),
                errors=list(validation.errors),
                warnings=list(validation.warnings),
                error_codes=list(validation.error_codes),
            )

        record = normalize_record(entry.to_record(confidence=100.0))
        return ProcessingOutcome(
            success=True,
            confidence=100,
            requires_manual_entry=False,
            retryable=False,
            data=record,
            tier=self.confidence_tier(100),
            warnings=list(validation.warnings),
        )


def create_evaluator(settings: Settings) -> ConfidenceEvaluator:
    config = EvaluatorConfig(
        thresholds=ConfidenceThresholds(
            minimum=settings.confidence_minimum,
            acceptable=settings.confidence_acceptable,
            good=settings.confidence_good,
            excellent=settings.confidence_excellent,
        ),
        fallback=FallbackPolicy(
            allow_manual_entry=settings.allow_manual_entry,
            allow_retry=settings.allow_retry,
            max_retries=settings.max_retries,
            suggest_image_improvement=settings.suggest_image_improvement,
            provide_partial_results=settings.provide_partial_results,
        ),
    )
    return ConfidenceEvaluator(config)
