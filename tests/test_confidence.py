import math

import pytest

from label_scan.config import Settings
from label_scan.core.confidence import (
    IMAGE_IMPROVEMENT_SUGGESTIONS,
    TIER_ACCEPTABLE,
    TIER_EXCELLENT,
    TIER_GOOD,
    TIER_INSUFFICIENT,
    TIER_LOW,
    ConfidenceEvaluator,
    ConfidenceThresholds,
    EvaluatorConfig,
    FallbackPolicy,
    adjusted_confidence,
    assess_text_quality,
    create_evaluator,
    data_completion_suggestions,
)
from label_scan.core.errors import LOW_CONFIDENCE, MISSING_DATA, NO_DATA_EXTRACTED
from label_scan.core.types import ManualEntry, ProductRecord


def _named(raw: float) -> ProductRecord:
    return ProductRecord(product_name='Granola', confidence=raw)


def test_text_quality():
    assert assess_text_quality('') == 0.0
    assert assess_text_quality(None) == 0.0
    assert assess_text_quality('Honey') == 1.0
    assert assess_text_quality('abc 12345') == pytest.approx(0.7)


def test_adjusted_confidence_rewards_fields():
    # 40 raw + 5 for the name + one third of the name quality
    assert adjusted_confidence(_named(40), 40) == 48


def test_adjusted_confidence_is_clamped():
    full = ProductRecord(
        product_name='Granola',
        brand='Acme',
        ingredients=['Oats', 'Honey'],
        nutrition_facts={'sugar': '8 g'},
        allergens=['Milk'],
        weight='12 oz',
        expiry_date='January 5, 2026',
    )

    assert adjusted_confidence(full, 100) == 100
    assert adjusted_confidence(full, 500) == 100
    assert adjusted_confidence(ProductRecord(), -50) == 0
    assert adjusted_confidence(ProductRecord(), math.nan) == 0


def test_adjusted_confidence_never_drops_when_fields_are_added():
    steps = [
        ProductRecord(),
        ProductRecord(product_name='Granola'),
        ProductRecord(product_name='Granola', brand='Acme'),
        ProductRecord(product_name='Granola', brand='Acme', ingredients=['Oats']),
        ProductRecord(product_name='Granola', brand='Acme', ingredients=['Oats'], nutrition_facts={'sugar': '8 g'}),
        ProductRecord(
            product_name='Granola',
            brand='Acme',
            ingredients=['Oats'],
            nutrition_facts={'sugar': '8 g'},
            weight='12 oz',
        ),
    ]

    scores = [adjusted_confidence(record, 20) for record in steps]

    assert scores == sorted(scores)
    assert scores[0] == 20


def test_tiers():
    evaluator = ConfidenceEvaluator()

    assert evaluator.confidence_tier(10) == TIER_INSUFFICIENT
    assert evaluator.confidence_tier(30) == TIER_LOW
    assert evaluator.confidence_tier(60) == TIER_ACCEPTABLE
    assert evaluator.confidence_tier(80) == TIER_GOOD
    assert evaluator.confidence_tier(95) == TIER_EXCELLENT


def test_missing_record_outcome():
    outcome = ConfidenceEvaluator().evaluate(None, 0.0)

    assert not outcome.success
    assert outcome.confidence == 0
    assert outcome.data is None
    assert outcome.errors == ['No data extracted from image']
    assert outcome.error_codes == [NO_DATA_EXTRACTED]
    assert outcome.requires_manual_entry
    assert outcome.retryable
    assert outcome.suggestions == list(IMAGE_IMPROVEMENT_SUGGESTIONS)


def test_missing_record_after_retry_budget():
    outcome = ConfidenceEvaluator().evaluate(None, 0.0, retry_count=2)

    assert not outcome.retryable
    assert outcome.suggestions == []
    assert outcome.requires_manual_entry


def test_insufficient_confidence():
    outcome = ConfidenceEvaluator().evaluate(_named(10), 10)

    assert outcome.confidence == 18
    assert not outcome.success
    assert outcome.tier == TIER_INSUFFICIENT
    assert 'Confidence too low for reliable results' in outcome.errors
    assert outcome.error_codes == [LOW_CONFIDENCE]
    assert outcome.requires_manual_entry
    assert outcome.retryable
    assert outcome.data is not None


def test_low_tier_succeeds_but_offers_recourse():
    outcome = ConfidenceEvaluator().evaluate(_named(40), 40)

    assert outcome.confidence == 48
    assert outcome.success
    assert outcome.tier == TIER_LOW
    assert 'Low confidence results - manual verification recommended' in outcome.warnings
    assert outcome.requires_manual_entry
    assert outcome.retryable


def test_acceptable_tier():
    outcome = ConfidenceEvaluator().evaluate(_named(60), 60)

    assert outcome.confidence == 68
    assert outcome.success
    assert 'Moderate confidence - some details may be inaccurate' in outcome.warnings
    assert not outcome.requires_manual_entry
    assert not outcome.retryable
    assert IMAGE_IMPROVEMENT_SUGGESTIONS[0] in outcome.suggestions


def test_good_tier_skips_image_tips():
    outcome = ConfidenceEvaluator().evaluate(_named(80), 80)

    assert outcome.confidence == 88
    assert outcome.tier == TIER_GOOD
    assert not set(IMAGE_IMPROVEMENT_SUGGESTIONS) & set(outcome.suggestions)
    assert 'Ingredients list not found - check the back or side of the package' in outcome.suggestions


@pytest.mark.parametrize('raw', range(0, 101, 5))
def test_success_tracks_minimum_threshold(raw):
    evaluator = ConfidenceEvaluator()

    outcome = evaluator.evaluate(_named(raw), raw)

    assert 0 <= outcome.confidence <= 100
    assert outcome.success == (outcome.confidence >= evaluator.thresholds.minimum)


def test_invalid_record_offers_recourse_even_when_confident():
    record = ProductRecord(nutrition_facts={'sugar': '8 g'}, confidence=90)

    outcome = ConfidenceEvaluator().evaluate(record, 90)

    assert outcome.confidence >= 80
    assert not outcome.success
    assert outcome.error_codes == [MISSING_DATA]
    assert outcome.requires_manual_entry
    assert outcome.retryable


def test_partial_results_can_be_withheld():
    config = EvaluatorConfig().with_fallback(provide_partial_results=False)

    outcome = ConfidenceEvaluator(config).evaluate(_named(0), 0)

    assert not outcome.success
    assert outcome.data is None


def test_policy_switches_disable_recourse():
    config = EvaluatorConfig().with_fallback(allow_manual_entry=False, allow_retry=False)

    outcome = ConfidenceEvaluator(config).evaluate(_named(0), 0)

    assert not outcome.requires_manual_entry
    assert not outcome.retryable


def test_thresholds_must_be_ascending_and_bounded():
    with pytest.raises(ValueError):
        ConfidenceThresholds(minimum=70, acceptable=60)
    with pytest.raises(ValueError):
        ConfidenceThresholds(excellent=120)
    with pytest.raises(ValueError):
        FallbackPolicy(max_retries=-1)


def test_with_thresholds_returns_new_config():
    base = EvaluatorConfig()

    changed = base.with_thresholds(minimum=50)

    assert changed.thresholds.minimum == 50
    assert base.thresholds.minimum == 30
    assert changed.fallback == base.fallback


def test_create_evaluator_from_settings():
    evaluator = create_evaluator(Settings(confidence_minimum=10, max_retries=0))

    assert evaluator.thresholds.minimum == 10
    assert not evaluator.should_retry(0)


def test_create_evaluator_rejects_unordered_settings():
    with pytest.raises(ValueError):
        create_evaluator(Settings(confidence_minimum=90))


def test_completion_suggestions_flag_short_ingredient_lists():
    suggestions = data_completion_suggestions(ProductRecord(product_name='Bar', ingredients=['Oats', 'Honey']))

    assert 'Incomplete ingredients list - ensure full ingredients panel is visible' in suggestions
    assert 'Product name not detected - check the front of the package' not in suggestions


def test_manual_entry_needs_content():
    outcome = ConfidenceEvaluator().evaluate_manual_entry(ManualEntry(product_name='Granola'))

    assert not outcome.success
    assert 'Either nutrition facts or ingredients list is required' in outcome.errors
    assert not outcome.retryable
    assert not outcome.requires_manual_entry
    assert outcome.data is None


def test_valid_manual_entry_is_normalized():
    entry = ManualEntry(product_name='crunchy granola', ingredients=['OATS'], nutrition_facts={'sodium': '0.2g'})

    outcome = ConfidenceEvaluator().evaluate_manual_entry(entry)

    assert outcome.success
    assert outcome.confidence == 100
    assert outcome.tier == TIER_EXCELLENT
    assert outcome.data.product_name == 'Crunchy Granola'
    assert outcome.data.ingredients == ['Oats']
    assert outcome.data.nutrition_facts == {'sodium': '200 mg'}
