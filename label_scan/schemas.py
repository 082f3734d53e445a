from pydantic import BaseModel, Field


class WordBoxIn(BaseModel):
    text: str
    quad: list[list[float]] = []


class RecognitionIn(BaseModel):
    text: str = ''
    confidence: float = Field(ge=0.0, le=100.0)
    word_boxes: list[WordBoxIn] = []
    retry_count: int = Field(default=0, ge=0)


class ManualEntryIn(BaseModel):
    product_name: str | None = None
    brand: str | None = None
    ingredients: list[str] | None = None
    nutrition_facts: dict[str, str | float] | None = None
    allergens: list[str] | None = None
    expiry_date: str | None = None
    weight: str | None = None


class ManualEntryTemplateOut(BaseModel):
    product_name: str = ''
    brand: str = ''
    ingredients: list[str] = []
    nutrition_facts: dict[str, str] = {}
    allergens: list[str] = []
    expiry_date: str = ''
    weight: str = ''
    confidence: float = 100.0


class ProductOut(BaseModel):
    product_name: str | None = None
    brand: str | None = None
    ingredients: list[str] = []
    nutrition_facts: dict[str, str] = {}
    allergens: list[str] = []
    expiry_date: str | None = None
    weight: str | None = None
    confidence: float


class OutcomeOut(BaseModel):
    success: bool
    data: ProductOut | None = None
    confidence: int = Field(ge=0, le=100)
    tier: str | None = None
    requires_manual_entry: bool
    retryable: bool
    suggestions: list[str] = []
    errors: list[str] = []
    warnings: list[str] = []
    error_codes: list[str] = []


class NutritionScoreOut(BaseModel):
    overall: int = Field(ge=0, le=100)
    breakdown: dict[str, int | None]


class RecommendationOut(BaseModel):
    verdict: str
    score: int = Field(ge=0, le=100)
    reasons: list[str] = []
    warnings: list[str] = []
    health_benefits: list[str] = []
    nutrition_score: NutritionScoreOut


class ProcessResponse(BaseModel):
    ok: bool = True
    outcome: OutcomeOut
    recommendation: RecommendationOut | None = None
    latency_ms: int


class RecommendResponse(BaseModel):
    ok: bool = True
    recommendation: RecommendationOut


class ThresholdsOut(BaseModel):
    minimum: float
    acceptable: float
    good: float
    excellent: float


class FallbackPolicyOut(BaseModel):
    allow_manual_entry: bool
    allow_retry: bool
    max_retries: int
    suggest_image_improvement: bool
    provide_partial_results: bool


class ConfigResponse(BaseModel):
    ok: bool = True
    thresholds: ThresholdsOut
    fallback: FallbackPolicyOut


class HealthResponse(BaseModel):
    ok: bool
    version: str
    text_provider: str
    text_provider_available: bool
    text_provider_message: str | None = None
    uptime_s: float


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    message: str
    request_id: str | None = None
