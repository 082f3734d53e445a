import logging
from typing import Any

from label_scan.core.extraction_rules import FieldRule, default_rules
from label_scan.core.types import ProductRecord, RawRecognition

logger = logging.getLogger('label_scan.extractor')


class FieldExtractor:
    """Runs the ordered rule list over OCR text and assembles a ProductRecord.

    Scalar and list fields keep the value of the first rule that produced one.
    Nutrient rules all contribute to ``nutrition_facts``; the first value found
    for a nutrient wins. A failing rule is logged and skipped so one bad
    pattern never costs the other fields.
    """

    def __init__(self, rules: list[FieldRule] | None = None):
        self._rules = list(rules) if rules is not None else default_rules()

    @property
    def rules(self) -> list[FieldRule]:
        return list(self._rules)

    def extract(self, recognition: RawRecognition) -> ProductRecord:
        text = recognition.text or ''
        values: dict[str, Any] = {}
        nutrition: dict[str, str] = {}

        for rule in self._rules:
            if rule.field != 'nutrition_facts' and rule.field in values:
                continue
            try:
                value = rule.attempt(text)
            except Exception:
                logger.warning('Extraction rule failed rule=%s field=%s', rule.name, rule.field, exc_info=True)
                continue
            if value is None:
                continue
            if rule.field == 'nutrition_facts':
                for key, amount in value.items():
                    if amount:
                        nutrition.setdefault(key, amount)
            else:
                values[rule.field] = value

        record = ProductRecord(
            product_name=values.get('product_name'),
            brand=values.get('brand'),
            ingredients=list(values.get('ingredients') or []),
            nutrition_facts=nutrition,
            allergens=list(values.get('allergens') or []),
            expiry_date=values.get('expiry_date'),
            weight=values.get('weight'),
            confidence=recognition.confidence,
        )
        logger.debug('Extracted fields=%s chars=%s', record.present_fields(), len(text))
        return record
