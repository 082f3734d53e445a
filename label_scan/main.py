import logging
import time
import uuid
from dataclasses import asdict

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from label_scan.config import get_settings
from label_scan.core.errors import ScanError
from label_scan.core.normalizer import manual_entry_template, normalize_record
from label_scan.core.pipeline import PipelineResult, ScanPipeline, create_pipeline
from label_scan.core.quantities import format_amount
from label_scan.core.recommendation import generate_recommendation
from label_scan.core.types import ManualEntry, RawRecognition, WordBox
from label_scan.logging_setup import setup_logging
from label_scan.providers.text_provider import create_text_recognizer
from label_scan.schemas import (
    ConfigResponse,
    ErrorResponse,
    HealthResponse,
    ManualEntryIn,
    ManualEntryTemplateOut,
    ProcessResponse,
    RecognitionIn,
    RecommendResponse,
)
from label_scan.utils.image_io import decode_label_image

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger('label_scan')

app = FastAPI(title='Label Scan', version=settings.version)
started_at = time.time()


def _request_id(request: Request) -> str:
    return request.headers.get('x-scan-request-id') or str(uuid.uuid4())


def _manual_entry(payload: ManualEntryIn) -> ManualEntry:
    values = payload.model_dump()
    if values['nutrition_facts'] is not None:
        # bare JSON numbers carry no unit; the normalizer supplies the default one
        values['nutrition_facts'] = {
            key: value if isinstance(value, str) else format_amount(value)
            for key, value in values['nutrition_facts'].items()
        }
    return ManualEntry(**values)


def _to_response(result: PipelineResult) -> ProcessResponse:
    return ProcessResponse(
        ok=True,
        outcome=asdict(result.outcome),
        recommendation=asdict(result.recommendation) if result.recommendation else None,
        latency_ms=result.latency_ms,
    )


@app.on_event('startup')
def startup_event() -> None:
    pipeline = create_pipeline(settings)
    recognizer = create_text_recognizer(settings.text_provider)
    app.state.pipeline = pipeline
    app.state.recognizer = recognizer
    app.state.recognizer_status = recognizer.status()
    thresholds = pipeline.evaluator.thresholds
    logger.info(
        'Pipeline initialized thresholds=%s/%s/%s/%s max_retries=%s text_provider=%s text_available=%s text_message=%s',
        thresholds.minimum,
        thresholds.acceptable,
        thresholds.good,
        thresholds.excellent,
        pipeline.evaluator.fallback.max_retries,
        recognizer.model_id,
        app.state.recognizer_status.get('available'),
        app.state.recognizer_status.get('message'),
    )


@app.exception_handler(ScanError)
async def scan_error_handler(request: Request, exc: ScanError):
    payload = ErrorResponse(error=exc.code, message=exc.message, request_id=_request_id(request))
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump())


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    logger.exception('Unhandled exception request_id=%s', request_id)
    payload = ErrorResponse(
        error='UNEXPECTED_SERVER_ERROR',
        message='Unexpected server error.',
        request_id=request_id,
    )
    return JSONResponse(status_code=500, content=payload.model_dump())


@app.get('/health', response_model=HealthResponse)
def health():
    recognizer = app.state.recognizer
    status = getattr(app.state, 'recognizer_status', {})
    return HealthResponse(
        ok=True,
        version=settings.version,
        text_provider=recognizer.model_id,
        text_provider_available=bool(status.get('available')),
        text_provider_message=status.get('message'),
        uptime_s=round(time.time() - started_at, 3),
    )


@app.get('/config', response_model=ConfigResponse)
def config():
    evaluator = app.state.pipeline.evaluator
    return ConfigResponse(ok=True, thresholds=asdict(evaluator.thresholds), fallback=asdict(evaluator.fallback))


@app.post('/process-text', response_model=ProcessResponse)
def process_text(request: Request, payload: RecognitionIn):
    pipeline: ScanPipeline = app.state.pipeline
    recognition = RawRecognition(
        text=payload.text,
        confidence=payload.confidence,
        word_boxes=tuple(WordBox(text=box.text, quad=tuple(tuple(point) for point in box.quad)) for box in payload.word_boxes),
    )
    result = pipeline.process(recognition, retry_count=payload.retry_count)
    logger.info(
        'process-text request_id=%s chars=%s raw_confidence=%s success=%s confidence=%s retry_count=%s',
        _request_id(request),
        len(payload.text),
        payload.confidence,
        result.outcome.success,
        result.outcome.confidence,
        payload.retry_count,
    )
    return _to_response(result)


@app.post('/scan', response_model=ProcessResponse)
async def scan(
    request: Request,
    image: UploadFile = File(...),
    retry_count: int = Form(default=0),
):
    request_id = _request_id(request)
    image_bytes = await image.read()
    img = decode_label_image(image_bytes, settings.max_image_bytes)

    pipeline: ScanPipeline = app.state.pipeline
    recognition = app.state.recognizer.recognize(img)
    retry_count = max(0, int(retry_count))
    if recognition is None or not recognition.text.strip():
        result = pipeline.process_missing(retry_count=retry_count)
    else:
        result = pipeline.process(recognition, retry_count=retry_count)

    logger.info(
        'scan request_id=%s bytes=%s recognized=%s success=%s confidence=%s retry_count=%s',
        request_id,
        len(image_bytes),
        recognition is not None,
        result.outcome.success,
        result.outcome.confidence,
        retry_count,
    )
    return _to_response(result)


@app.post('/manual-entry', response_model=ProcessResponse)
def manual_entry(request: Request, payload: ManualEntryIn):
    pipeline: ScanPipeline = app.state.pipeline
    result = pipeline.process_manual_entry(_manual_entry(payload))
    logger.info(
        'manual-entry request_id=%s success=%s errors=%s',
        _request_id(request),
        result.outcome.success,
        result.outcome.error_codes,
    )
    return _to_response(result)


@app.get('/manual-entry/template', response_model=ManualEntryTemplateOut)
def manual_entry_template_route():
    return ManualEntryTemplateOut(**asdict(manual_entry_template()))


@app.post('/recommend', response_model=RecommendResponse)
def recommend(payload: ManualEntryIn):
    record = _manual_entry(payload).to_record()
    recommendation = generate_recommendation(normalize_record(record))
    return RecommendResponse(ok=True, recommendation=asdict(recommendation))
