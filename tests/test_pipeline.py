from label_scan.config import Settings
from label_scan.core.confidence import TIER_EXCELLENT
from label_scan.core.errors import LOW_CONFIDENCE, MISSING_DATA, NO_DATA_EXTRACTED
from label_scan.core.pipeline import ScanPipeline, create_pipeline
from label_scan.core.recommendation import VERDICT_RECOMMENDED
from label_scan.core.types import ManualEntry, RawRecognition
from label_scan.providers.text_provider import SAMPLE_LABEL_TEXT


def test_granola_label(granola_recognition):
    result = ScanPipeline().process(granola_recognition)
    outcome = result.outcome

    assert outcome.success
    assert outcome.confidence == 95
    assert outcome.tier == TIER_EXCELLENT
    assert outcome.data.product_name == 'Organic Granola Cereal'
    assert outcome.data.brand == "Nature's Best"
    assert len(outcome.data.ingredients) == 3
    assert outcome.data.nutrition_facts == {'protein': '4 g', 'sugar': '8 g'}
    assert outcome.data.weight is None
    assert result.recommendation.verdict == VERDICT_RECOMMENDED
    assert result.recommendation.score == 73
    assert result.latency_ms >= 0


def test_empty_text():
    result = ScanPipeline().process(RawRecognition(text='', confidence=0))
    outcome = result.outcome

    assert not outcome.success
    assert outcome.confidence == 0
    assert MISSING_DATA in outcome.error_codes
    assert LOW_CONFIDENCE in outcome.error_codes
    assert outcome.requires_manual_entry
    assert outcome.retryable
    assert result.recommendation is None


def test_retry_budget_is_respected():
    outcome = ScanPipeline().process(RawRecognition(text='', confidence=0), retry_count=2).outcome

    assert not outcome.retryable
    assert outcome.requires_manual_entry


def test_missing_recognition():
    result = ScanPipeline().process_missing()

    assert result.outcome.error_codes == [NO_DATA_EXTRACTED]
    assert result.outcome.retryable
    assert result.recommendation is None


def test_full_sample_label():
    result = ScanPipeline().process(RawRecognition(text=SAMPLE_LABEL_TEXT, confidence=82))
    data = result.outcome.data

    assert result.outcome.success
    assert result.outcome.confidence == 100
    assert result.outcome.suggestions == []
    assert data.ingredients == ['Organic oats', 'Honey', 'Almonds', 'Dried cranberries', 'Sea salt']
    assert data.nutrition_facts == {
        'calories': '150 kcal',
        'protein': '4 g',
        'fat': '5 g',
        'carbohydrates': '22 g',
        'sugar': '8 g',
        'fiber': '3 g',
        'sodium': '95 mg',
    }
    assert data.allergens == ['Tree nuts']
    assert data.weight == '12 oz'
    assert data.expiry_date == 'December 31, 2025'
    assert result.recommendation.score == 82


def test_manual_entry_without_content():
    result = ScanPipeline().process_manual_entry(ManualEntry(product_name='Granola'))

    assert not result.outcome.success
    assert 'Either nutrition facts or ingredients list is required' in result.outcome.errors
    assert not result.outcome.retryable
    assert result.recommendation is None


def test_manual_entry_gets_recommendation():
    entry = ManualEntry(product_name='Granola', ingredients=['Organic oats', 'Honey'])

    result = ScanPipeline().process_manual_entry(entry)

    assert result.outcome.success
    assert result.recommendation is not None
    assert result.recommendation.score == 70


def test_create_pipeline_uses_settings(granola_recognition):
    pipeline = create_pipeline(Settings(max_ingredients=2, confidence_minimum=0))

    outcome = pipeline.process(granola_recognition).outcome

    assert outcome.data.ingredients == ['Organic oats', 'Honey']
    assert pipeline.evaluator.thresholds.minimum == 0


def test_manual_entry_with_capitalized_nutrient_names():
    entry = ManualEntry(product_name='Granola', nutrition_facts={'Protein': '12 g', 'Sugar': '3 g'})

    result = ScanPipeline().process_manual_entry(entry)

    assert result.outcome.success
    assert result.outcome.data.nutrition_facts == {'protein': '12 g', 'sugar': '3 g'}
    assert result.recommendation is not None
    assert result.recommendation.nutrition_score.breakdown['protein'] == 75
