import re
from dataclasses import replace
from datetime import datetime

from label_scan.core.errors import MANUAL_ENTRY_INVALID, MISSING_DATA
from label_scan.core.quantities import format_amount, parse_quantity, round_half_up, to_grams, to_milligrams
from label_scan.core.types import ALLERGEN_VOCABULARY, NUTRIENT_KEYS, ManualEntry, ProductRecord, ValidationResult

LOW_CONFIDENCE_WARNING_BELOW = 50

_INGREDIENT_PUNCTUATION = re.compile(r'[,.;:()\[\]{}]')
_ABBREVIATION_DOT = re.compile(r'(?<=[A-Za-z])\.')
_DATE_FORMATS = (
    '%B %d, %Y',
    '%b %d, %Y',
    '%m/%d/%Y',
    '%m/%d/%y',
    '%m-%d-%Y',
    '%m-%d-%y',
    '%d/%m/%Y',
    '%d/%m/%y',
    '%d-%m-%Y',
    '%d-%m-%y',
    '%d %b %Y',
    '%d %B %Y',
    '%d %b %y',
    '%d %B %y',
    '%Y-%m-%d',
)


def _collapse(value: str) -> str:
    return ' '.join(value.split())


def title_case(value: str | None) -> str | None:
    if not value:
        return None
    words = [word[:1].upper() + word[1:].lower() for word in value.split()]
    return ' '.join(words) or None


def format_ingredient(value: str) -> str:
    cleaned = _collapse(_INGREDIENT_PUNCTUATION.sub('', value.lower()))
    return cleaned[:1].upper() + cleaned[1:]


def format_nutrient(key: str, value: str) -> str:
    clean = str(value).strip()
    quantity = parse_quantity(clean)
    if quantity is None:
        return clean

    amount, unit = quantity
    if key == 'calories':
        return f'{round_half_up(amount)} kcal'
    if key == 'sodium':
        milligrams = round_half_up(to_milligrams(amount, unit))
        if milligrams < 1000:
            return f'{milligrams} mg'
        return f'{milligrams / 1000:.1f} g'
    return f'{format_amount(to_grams(amount, unit))} g'


def format_nutrition_facts(facts: dict[str, str]) -> dict[str, str]:
    formatted: dict[str, str] = {}
    for key, value in facts.items():
        nutrient = str(key).strip().lower()
        if nutrient not in NUTRIENT_KEYS or value is None or not str(value).strip():
            continue
        formatted[nutrient] = format_nutrient(nutrient, value)
    return formatted


def format_allergens(allergens: list[str]) -> list[str]:
    seen: list[str] = []
    for allergen in allergens:
        lowered = allergen.strip().lower()
        if lowered in ALLERGEN_VOCABULARY and lowered not in seen:
            seen.append(lowered)
    return [allergen[:1].upper() + allergen[1:] for allergen in seen]


def format_date(value: str | None) -> str | None:
    """Render a recognizable date as e.g. ``January 5, 2025``; anything else is returned as given."""
    if not value:
        return None
    candidate = _collapse(_ABBREVIATION_DOT.sub('', value))
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        return f'{parsed:%B} {parsed.day}, {parsed.year}'
    return value


def format_weight(value: str | None) -> str | None:
    if not value:
        return None
    return _collapse(value) or None


def normalize_record(record: ProductRecord) -> ProductRecord:
    ingredients = [format_ingredient(item) for item in record.ingredients if item]
    return replace(
        record,
        product_name=title_case(record.product_name),
        brand=title_case(record.brand),
        ingredients=[item for item in ingredients if len(item) > 1],
        nutrition_facts=format_nutrition_facts(record.nutrition_facts),
        allergens=format_allergens(record.allergens),
        expiry_date=format_date(record.expiry_date),
        weight=format_weight(record.weight),
    )


def validate_record(record: ProductRecord) -> ValidationResult:
    result = ValidationResult()
    if not record.product_name and not record.ingredients:
        result.errors.append('No product information extracted')
        result.error_codes.append(MISSING_DATA)
    if record.confidence < LOW_CONFIDENCE_WARNING_BELOW:
        result.warnings.append('Low confidence in extracted data')
    if not record.ingredients:
        result.warnings.append('No ingredients found')
    if not record.nutrition_facts:
        result.warnings.append('No nutrition facts found')
    return result


def validate_manual_entry(entry: ManualEntry) -> ValidationResult:
    result = ValidationResult()
    ingredients = entry.ingredients or []
    has_ingredients = any(item and item.strip() for item in ingredients)
    has_nutrition = any(
        str(key).strip().lower() in NUTRIENT_KEYS and value is not None and str(value).strip()
        for key, value in (entry.nutrition_facts or {}).items()
    )

    if not (entry.product_name or '').strip():
        result.errors.append('Product name is required')
        result.error_codes.append(MANUAL_ENTRY_INVALID)
    if not (entry.brand or '').strip():
        result.warnings.append('Brand name is recommended for better analysis')
    if not has_ingredients:
        result.warnings.append('Ingredients list is recommended for health analysis')
    if not has_nutrition:
        result.warnings.append('Nutrition facts are recommended for complete analysis')
    if not has_nutrition and not has_ingredients:
        result.errors.append('Either nutrition facts or ingredients list is required')
        result.error_codes.append(MISSING_DATA)
    if any(not (item or '').strip() for item in ingredients):
        result.warnings.append('Some ingredient entries are empty')
    return result


def manual_entry_template(partial: ProductRecord | None = None) -> ManualEntry:
    facts = partial.nutrition_facts if partial else {}
    return ManualEntry(
        product_name=(partial.product_name if partial else None) or '',
        brand=(partial.brand if partial else None) or '',
        ingredients=list(partial.ingredients) if partial else [],
        nutrition_facts={key: facts.get(key, '') for key in NUTRIENT_KEYS},
        allergens=list(partial.allergens) if partial else [],
        expiry_date=(partial.expiry_date if partial else None) or '',
        weight=(partial.weight if partial else None) or '',
    )
