"""Pattern rules used by the field extractor.

Each rule owns one ``ProductRecord`` field and knows how to pull a value for
it out of raw OCR text. Rules never raise on unmatched input; they return
``None`` so the extractor can move on to the next candidate.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Callable

from label_scan.core.quantities import format_amount, to_milligrams
from label_scan.core.types import ALLERGEN_VOCABULARY

RECORD_FIELDS = (
    'product_name',
    'brand',
    'ingredients',
    'nutrition_facts',
    'allergens',
    'expiry_date',
    'weight',
)

_CATEGORY_SUFFIX = r'(?:CEREAL|GRANOLA|YOGURT|MILK|BREAD|PASTA|SAUCE|JUICE|WATER|CHIPS|COOKIES|CRACKERS)'
ALL_CAPS_CATEGORY = re.compile(rf"^(?=[A-Z0-9\s'’&.\-]+$)(?:.*\s)?{_CATEGORY_SUFFIX}\b")
TITLE_CASE_MULTIWORD = re.compile(r"^[A-Z][a-z'’]+(?:\s+[A-Z][a-z'’]+)+$")
ALL_CAPS_POSSESSIVE = re.compile(r"^[A-Z]+(?:['’]S)?(?:\s+[A-Z]+(?:['’]S)?)*$")
TITLE_CASE = re.compile(r'^[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*$')

_SEP = r'(?:\s*:)?\s*'
_NUMBER = r'(?P<amount>\d+(?:\.\d+)?)'
_GRAMS = r'\s*g(?:rams?)?\b'
_EXPIRY_LABEL = r'(?:best\s+before|use\s+by|expires?|expiry|exp\.?)'
_WEIGHT_UNIT = r'(?:kg|g|oz|lbs?|ml|l)'


def non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or '').splitlines() if line.strip()]


def _collapse(value: str) -> str:
    return ' '.join(value.split())


class FieldRule(ABC):
    def __init__(self, name: str, field: str):
        if field not in RECORD_FIELDS:
            raise ValueError(f'Unknown record field {field!r} for rule {name!r}')
        self.name = name
        self.field = field

    @abstractmethod
    def attempt(self, text: str) -> Any | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f'{type(self).__name__}(name={self.name!r}, field={self.field!r})'


class LinePatternRule(FieldRule):
    """Accept the first of the leading lines that fits the length bounds and any pattern."""

    def __init__(
        self,
        name: str,
        field: str,
        patterns: list[re.Pattern],
        max_lines: int,
        min_length: int,
        max_length: int,
    ):
        super().__init__(name, field)
        self._patterns = list(patterns)
        self._max_lines = max_lines
        self._min_length = min_length
        self._max_length = max_length

    def attempt(self, text: str) -> str | None:
        for line in non_empty_lines(text)[: self._max_lines]:
            if not self._min_length <= len(line) <= self._max_length:
                continue
            if any(pattern.search(line) for pattern in self._patterns):
                return line
        return None


class FirstLineRule(FieldRule):
    def __init__(self, name: str, field: str, min_length: int, max_length: int):
        super().__init__(name, field)
        self._min_length = min_length
        self._max_length = max_length

    def attempt(self, text: str) -> str | None:
        lines = non_empty_lines(text)
        if lines and self._min_length <= len(lines[0]) <= self._max_length:
            return lines[0]
        return None


class IngredientsRule(FieldRule):
    LABEL = re.compile(r'ingredients\s*:', re.IGNORECASE)
    BOUNDARY = re.compile(r'nutrition|allergen|net\s+weight|best\s+before', re.IGNORECASE)
    PARENTHESIZED = re.compile(r'\([^)]*\)')
    SEPARATOR = re.compile(r'[,;]')

    def __init__(
        self,
        name: str = 'ingredients_label',
        window: int = 300,
        max_items: int = 20,
        min_length: int = 3,
        max_length: int = 49,
    ):
        super().__init__(name, 'ingredients')
        self._window = window
        self._max_items = max_items
        self._min_length = min_length
        self._max_length = max_length

    def attempt(self, text: str) -> list[str] | None:
        text = text or ''
        label = self.LABEL.search(text)
        if not label:
            return None
        boundary = self.BOUNDARY.search(text, label.end())
        end = boundary.start() if boundary else min(len(text), label.start() + self._window)
        body = self.PARENTHESIZED.sub('', text[label.end():end])

        items: list[str] = []
        for chunk in self.SEPARATOR.split(body):
            item = _collapse(chunk)
            if not self._min_length <= len(item) <= self._max_length:
                continue
            items.append(item)
            if len(items) >= self._max_items:
                break
        return items or None


def grams(match: re.Match) -> str:
    return f"{match.group('amount')} g"


def kilocalories(match: re.Match) -> str:
    return f"{match.group('amount')} kcal"


def milligrams(match: re.Match) -> str:
    amount = float(match.group('amount'))
    unit = (match.group('unit') or 'mg').lower()
    return f'{format_amount(to_milligrams(amount, unit))} mg'


class NutrientRule(FieldRule):
    def __init__(self, nutrient: str, pattern: str, render: Callable[[re.Match], str]):
        super().__init__(f'nutrient_{nutrient}', 'nutrition_facts')
        self.nutrient = nutrient
        self._pattern = re.compile(pattern, re.IGNORECASE)
        self._render = render

    def attempt(self, text: str) -> dict[str, str] | None:
        match = self._pattern.search(text or '')
        if not match:
            return None
        return {self.nutrient: self._render(match)}


class AllergenRule(FieldRule):
    CLAUSE = re.compile(r'\b(?:contains|allergens?)\s*:\s*([^.]+)', re.IGNORECASE)

    def __init__(self, name: str = 'allergen_clause', vocabulary: tuple[str, ...] = ALLERGEN_VOCABULARY):
        super().__init__(name, 'allergens')
        self._vocabulary = vocabulary

    def attempt(self, text: str) -> list[str] | None:
        clauses = [match.group(1).lower() for match in self.CLAUSE.finditer(text or '')]
        if not clauses:
            return None
        found = [term for term in self._vocabulary if any(term in clause for clause in clauses)]
        return found or None


class PatternRule(FieldRule):
    """First case-insensitive match anywhere in the text; group 1 is the value."""

    def __init__(self, name: str, field: str, pattern: str):
        super().__init__(name, field)
        self._pattern = re.compile(pattern, re.IGNORECASE)

    def attempt(self, text: str) -> str | None:
        match = self._pattern.search(text or '')
        if not match:
            return None
        return _collapse(match.group(1)) or None


class BareWeightRule(FieldRule):
    """First unlabelled amount with a weight unit that does not belong to a nutrient."""

    NUTRIENT_LABEL = re.compile(
        r'\b(?:calories|energy|protein|fat|carb(?:ohydrate)?s?|sugars?|fib(?:er|re)|sodium|salt)\s*:?\s*$',
        re.IGNORECASE,
    )

    def __init__(self, name: str = 'weight_bare', lookback: int = 30):
        super().__init__(name, 'weight')
        self._pattern = re.compile(rf'\b(\d+(?:\.\d+)?\s*{_WEIGHT_UNIT})\b', re.IGNORECASE)
        self._lookback = lookback

    def attempt(self, text: str) -> str | None:
        text = text or ''
        for match in self._pattern.finditer(text):
            preceding = text[max(0, match.start() - self._lookback):match.start()]
            if self.NUTRIENT_LABEL.search(preceding):
                continue
            return _collapse(match.group(1))
        return None


def default_rules(max_ingredients: int = 20) -> list[FieldRule]:
    return [
        LinePatternRule(
            'product_name_heading',
            'product_name',
            [ALL_CAPS_CATEGORY, TITLE_CASE_MULTIWORD],
            max_lines=5,
            min_length=3,
            max_length=50,
        ),
        FirstLineRule('product_name_first_line', 'product_name', min_length=3, max_length=50),
        LinePatternRule(
            'brand_heading',
            'brand',
            [ALL_CAPS_POSSESSIVE, TITLE_CASE],
            max_lines=3,
            min_length=2,
            max_length=30,
        ),
        IngredientsRule(max_items=max_ingredients),
        NutrientRule('calories', rf'\b(?:calories|energy){_SEP}{_NUMBER}\s*(?:kcal|cal)?', kilocalories),
        NutrientRule('protein', rf'\bprotein{_SEP}{_NUMBER}{_GRAMS}', grams),
        NutrientRule('fat', rf'\b(?:total\s+)?fat{_SEP}{_NUMBER}{_GRAMS}', grams),
        NutrientRule('carbohydrates', rf'\b(?:total\s+)?carb(?:ohydrate)?s?{_SEP}{_NUMBER}{_GRAMS}', grams),
        NutrientRule('sugar', rf'\b(?:total\s+)?sugars?{_SEP}{_NUMBER}{_GRAMS}', grams),
        NutrientRule('fiber', rf'\b(?:dietary\s+)?fib(?:er|re){_SEP}{_NUMBER}{_GRAMS}', grams),
        NutrientRule('sodium', rf'\bsodium{_SEP}{_NUMBER}\s*(?P<unit>mg|g)\b', milligrams),
        AllergenRule(),
        PatternRule(
            'expiry_numeric',
            'expiry_date',
            rf'\b{_EXPIRY_LABEL}{_SEP}(\d{{1,2}}[/\-]\d{{1,2}}[/\-]\d{{2,4}})',
        ),
        PatternRule(
            'expiry_month_name',
            'expiry_date',
            rf'\b{_EXPIRY_LABEL}{_SEP}(\d{{1,2}}\s+[A-Za-z]{{3,9}}\.?\s+\d{{2,4}})\b',
        ),
        PatternRule(
            'weight_labelled',
            'weight',
            rf'\b(?:net\s+weight|net\s+wt\.?|weight){_SEP}(\d+(?:\.\d+)?\s*{_WEIGHT_UNIT})\b',
        ),
        BareWeightRule(),
    ]
