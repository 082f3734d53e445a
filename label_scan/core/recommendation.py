import logging
from dataclasses import dataclass, field

from label_scan.core.quantities import parse_quantity, round_half_up, to_grams, to_milligrams
from label_scan.core.types import SCORED_NUTRIENTS, NutritionScore, ProductRecord, Recommendation

logger = logging.getLogger('label_scan.recommendation')

VERDICT_RECOMMENDED = 'recommended'
VERDICT_WARNING = 'warning'
VERDICT_NOT_RECOMMENDED = 'not-recommended'

# low / medium / high per serving; sodium in mg, calories in kcal, the rest in g
NUTRITION_TARGETS = {
    'calories': (100, 200, 300),
    'protein': (5, 10, 20),
    'fat': (3, 10, 20),
    'sugar': (5, 15, 25),
    'sodium': (140, 400, 600),
    'fiber': (3, 6, 10),
}

HEALTHY_INGREDIENTS = (
    'organic',
    'whole grain',
    'quinoa',
    'oats',
    'brown rice',
    'almonds',
    'walnuts',
    'chia seeds',
    'flax seeds',
    'hemp seeds',
    'olive oil',
    'coconut oil',
    'avocado oil',
    'greek yogurt',
    'probiotics',
    'prebiotics',
    'natural flavors',
    'sea salt',
    'stevia',
    'monk fruit',
    'dates',
    'honey',
)

UNHEALTHY_INGREDIENTS = (
    'high fructose corn syrup',
    'trans fat',
    'hydrogenated oil',
    'partially hydrogenated',
    'artificial colors',
    'artificial flavors',
    'monosodium glutamate',
    'msg',
    'sodium nitrate',
    'sodium nitrite',
    'bha',
    'bht',
    'propyl gallate',
    'potassium bromate',
    'artificial sweeteners',
    'aspartame',
    'sucralose',
    'acesulfame potassium',
)

SCORE_WEIGHTS = {'nutrition': 0.4, 'ingredients': 0.4, 'allergens': 0.1, 'confidence': 0.1}
DEFAULT_NUTRITION_SCORE = 50
MAX_REASONS = 4
HIGH_SUGAR_GRAMS = 15
HIGH_SODIUM_MG = 400


@dataclass
class IngredientAnalysis:
    score: int
    healthy: list[str] = field(default_factory=list)
    unhealthy: list[str] = field(default_factory=list)


def nutrient_amount(nutrient: str, value: str | None) -> float | None:
    quantity = parse_quantity(value)
    if quantity is None:
        return None
    amount, unit = quantity
    if nutrient == 'sodium':
        return to_milligrams(amount, unit)
    if nutrient == 'calories':
        return amount
    return to_grams(amount, unit)


def score_nutrient(nutrient: str, value: float) -> int:
    low, medium, high = NUTRITION_TARGETS[nutrient]
    if nutrient in ('protein', 'fiber'):
        if value >= high:
            return 90
        if value >= medium:
            return 75
        if value >= low:
            return 60
        return 40
    if nutrient in ('sugar', 'sodium'):
        if value <= low:
            return 90
        if value <= medium:
            return 70
        if value <= high:
            return 50
        return 20
    if nutrient == 'calories':
        if value <= medium:
            return 80
        if value <= high:
            return 60
        return 40
    if nutrient == 'fat':
        if value <= low:
            return 85
        if value <= medium:
            return 70
        if value <= high:
            return 50
        return 30
    return 50


def score_nutrition(facts: dict[str, str]) -> NutritionScore:
    breakdown: dict[str, int | None] = {}
    for nutrient in SCORED_NUTRIENTS:
        amount = nutrient_amount(nutrient, facts.get(nutrient))
        breakdown[nutrient] = score_nutrient(nutrient, amount) if amount is not None else None

    scored = [value for value in breakdown.values() if value is not None]
    overall = round_half_up(sum(scored) / len(scored)) if scored else DEFAULT_NUTRITION_SCORE
    return NutritionScore(overall=overall, breakdown=breakdown)


def analyze_ingredients(ingredients: list[str]) -> IngredientAnalysis:
    text = ' '.join(ingredients).lower()
    healthy = [term for term in HEALTHY_INGREDIENTS if term in text]
    unhealthy = [term for term in UNHEALTHY_INGREDIENTS if term in text]
    score = 50 + 10 * len(healthy) - 15 * len(unhealthy)
    return IngredientAnalysis(score=max(0, min(100, score)), healthy=healthy, unhealthy=unhealthy)


def score_allergens(allergens: list[str]) -> int:
    if not allergens:
        return 80
    return max(30, 80 - 10 * len(allergens))


def overall_score(nutrition: int, ingredients: int, allergens: int, confidence: float) -> int:
    confidence = max(0.0, min(100.0, float(confidence or 0.0)))
    weighted = (
        nutrition * SCORE_WEIGHTS['nutrition']
        + ingredients * SCORE_WEIGHTS['ingredients']
        + allergens * SCORE_WEIGHTS['allergens']
        + confidence * SCORE_WEIGHTS['confidence']
    )
    return max(0, min(100, round_half_up(weighted)))


def verdict_for(score: int) -> str:
    if score >= 70:
        return VERDICT_RECOMMENDED
    if score >= 40:
        return VERDICT_WARNING
    return VERDICT_NOT_RECOMMENDED


def _at_least(breakdown: dict[str, int | None], nutrient: str, floor: int) -> bool:
    value = breakdown.get(nutrient)
    return value is not None and value >= floor


def _reasons(nutrition: NutritionScore, analysis: IngredientAnalysis, allergens: list[str]) -> list[str]:
    reasons: list[str] = []
    if _at_least(nutrition.breakdown, 'protein', 70):
        reasons.append('High protein content')
    if _at_least(nutrition.breakdown, 'fiber', 70):
        reasons.append('Good source of fiber')
    if _at_least(nutrition.breakdown, 'sugar', 70):
        reasons.append('Low sugar content')
    if _at_least(nutrition.breakdown, 'sodium', 70):
        reasons.append('Low sodium content')
    if analysis.healthy:
        reasons.append('Contains beneficial ingredients')
    if analysis.unhealthy:
        reasons.append('Contains artificial additives')
    if allergens:
        reasons.append(f"Contains allergens: {', '.join(allergens)}")
    return reasons[:MAX_REASONS]


def _warnings(record: ProductRecord, analysis: IngredientAnalysis) -> list[str]:
    warnings: list[str] = []
    if record.allergens:
        warnings.append(f"Contains allergens: {', '.join(record.allergens)}")
    sugar = nutrient_amount('sugar', record.nutrition_facts.get('sugar'))
    if sugar is not None and sugar > HIGH_SUGAR_GRAMS:
        warnings.append('High sugar content')
    sodium = nutrient_amount('sodium', record.nutrition_facts.get('sodium'))
    if sodium is not None and sodium > HIGH_SODIUM_MG:
        warnings.append('High sodium content')
    if analysis.unhealthy:
        warnings.append('Contains artificial ingredients')
    return warnings


def _health_benefits(nutrition: NutritionScore, analysis: IngredientAnalysis) -> list[str]:
    benefits: list[str] = []
    if 'organic' in analysis.healthy:
        benefits.append('Organic ingredients')
    if 'whole grain' in analysis.healthy:
        benefits.append('Whole grain benefits')
    if 'probiotics' in analysis.healthy:
        benefits.append('Supports digestive health')
    if _at_least(nutrition.breakdown, 'protein', 70):
        benefits.append('Supports muscle health')
    if _at_least(nutrition.breakdown, 'fiber', 70):
        benefits.append('Supports digestive health')
    return list(dict.fromkeys(benefits))


def generate_recommendation(record: ProductRecord) -> Recommendation:
    nutrition = score_nutrition(record.nutrition_facts)
    analysis = analyze_ingredients(record.ingredients)
    allergen_score = score_allergens(record.allergens)
    score = overall_score(nutrition.overall, analysis.score, allergen_score, record.confidence)

    recommendation = Recommendation(
        verdict=verdict_for(score),
        score=score,
        nutrition_score=nutrition,
        reasons=_reasons(nutrition, analysis, record.allergens),
        warnings=_warnings(record, analysis),
        health_benefits=_health_benefits(nutrition, analysis),
    )
    logger.debug(
        'Recommendation verdict=%s score=%s nutrition=%s ingredients=%s allergens=%s',
        recommendation.verdict,
        score,
        nutrition.overall,
        analysis.score,
        allergen_score,
    )
    return recommendation
