from dataclasses import dataclass, field

NUTRIENT_KEYS = ('calories', 'protein', 'fat', 'carbohydrates', 'sugar', 'fiber', 'sodium')
SCORED_NUTRIENTS = ('calories', 'protein', 'fat', 'sugar', 'sodium', 'fiber')
ALLERGEN_VOCABULARY = (
    'milk',
    'eggs',
    'fish',
    'shellfish',
    'tree nuts',
    'peanuts',
    'wheat',
    'soybeans',
    'sesame',
    'gluten',
    'soy',
)


@dataclass(frozen=True)
class WordBox:
    text: str
    quad: tuple[tuple[float, float], ...] = ()


@dataclass(frozen=True)
class RawRecognition:
    text: str
    confidence: float
    word_boxes: tuple[WordBox, ...] = ()


@dataclass
class ProductRecord:
    product_name: str | None = None
    brand: str | None = None
    ingredients: list[str] = field(default_factory=list)
    nutrition_facts: dict[str, str] = field(default_factory=dict)
    allergens: list[str] = field(default_factory=list)
    expiry_date: str | None = None
    weight: str | None = None
    confidence: float = 0.0

    def present_fields(self) -> list[str]:
        names = []
        if self.product_name:
            names.append('product_name')
        if self.brand:
            names.append('brand')
        if self.ingredients:
            names.append('ingredients')
        if self.nutrition_facts:
            names.append('nutrition_facts')
        if self.allergens:
            names.append('allergens')
        if self.expiry_date:
            names.append('expiry_date')
        if self.weight:
            names.append('weight')
        return names


@dataclass
class ManualEntry:
    """User-typed product data. Every field is optional and may hold blanks."""

    product_name: str | None = None
    brand: str | None = None
    ingredients: list[str] | None = None
    nutrition_facts: dict[str, str] | None = None
    allergens: list[str] | None = None
    expiry_date: str | None = None
    weight: str | None = None

    def to_record(self, confidence: float = 100.0) -> ProductRecord:
        nutrition: dict[str, str] = {}
        for key, value in (self.nutrition_facts or {}).items():
            nutrient = str(key).strip().lower()
            if nutrient in NUTRIENT_KEYS and value is not None and str(value).strip():
                nutrition[nutrient] = str(value).strip()
        return ProductRecord(
            product_name=(self.product_name or '').strip() or None,
            brand=(self.brand or '').strip() or None,
            ingredients=[item.strip() for item in (self.ingredients or []) if item and item.strip()],
            nutrition_facts=nutrition,
            allergens=[item.strip() for item in (self.allergens or []) if item and item.strip()],
            expiry_date=(self.expiry_date or '').strip() or None,
            weight=(self.weight or '').strip() or None,
            confidence=confidence,
        )


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_codes: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class ProcessingOutcome:
    success: bool
    confidence: int
    requires_manual_entry: bool
    retryable: bool
    data: ProductRecord | None = None
    tier: str | None = None
    suggestions: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error_codes: list[str] = field(default_factory=list)


@dataclass
class NutritionScore:
    overall: int
    breakdown: dict[str, int | None]


@dataclass
class Recommendation:
    verdict: str
    score: int
    nutrition_score: NutritionScore
    reasons: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    health_benefits: list[str] = field(default_factory=list)
