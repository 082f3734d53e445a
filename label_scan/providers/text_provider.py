import logging
import shutil

from label_scan.core.types import RawRecognition, WordBox

logger = logging.getLogger('label_scan.providers')

SAMPLE_LABEL_TEXT = (
    "NATURE'S BEST\n"
    'ORGANIC GRANOLA CEREAL\n'
    'Ingredients: Organic oats, Honey, Almonds, Dried cranberries (cranberries, sugar), Sea salt.\n'
    'Nutrition Facts\n'
    'Calories 150 Total Fat 5g Sodium 95mg Total Carbohydrate 22g Dietary Fiber 3g Sugars 8g Protein 4g\n'
    'Contains: Tree Nuts. May contain wheat.\n'
    'Net Wt 12 oz\n'
    'Best Before 12/31/2025\n'
)


class TextRecognizer:
    def recognize(self, image) -> RawRecognition | None:
        raise NotImplementedError

    @property
    def model_id(self) -> str:
        return 'text-recognizer'

    def status(self) -> dict:
        return {'available': True, 'message': None}


class DummyRecognizer(TextRecognizer):
    def __init__(self, text: str = SAMPLE_LABEL_TEXT, confidence: float = 82.0) -> None:
        self._text = text
        self._confidence = confidence

    @property
    def model_id(self) -> str:
        return 'dummy-ocr'

    def recognize(self, image) -> RawRecognition | None:
        _ = image
        return RawRecognition(text=self._text, confidence=self._confidence)


def _quad(left: float, top: float, width: float, height: float) -> tuple[tuple[float, float], ...]:
    right = left + width
    bottom = top + height
    return ((left, top), (right, top), (right, bottom), (left, bottom))


class TesseractRecognizer(TextRecognizer):
    def __init__(self, config: str = '--oem 3 --psm 6') -> None:
        self._config = config
        self._message = None
        self._available = shutil.which('tesseract') is not None
        if not self._available:
            self._message = 'tesseract binary not found in PATH'
            return
        try:
            import pytesseract  # noqa: F401
        except ImportError as exc:
            self._available = False
            self._message = f'pytesseract unavailable: {exc}'

    @property
    def model_id(self) -> str:
        return 'tesseract-ocr'

    def status(self) -> dict:
        return {'available': self._available, 'message': self._message}

    def recognize(self, image) -> RawRecognition | None:
        if not self._available:
            return None
        import pytesseract

        try:
            data = pytesseract.image_to_data(image, config=self._config, output_type=pytesseract.Output.DICT)
        except Exception:
            logger.warning('Tesseract recognition failed config=%s', self._config, exc_info=True)
            return None

        lines: dict[tuple[int, int, int], list[str]] = {}
        boxes: list[WordBox] = []
        confidences: list[float] = []
        for i, raw_text in enumerate(data.get('text', [])):
            text = (raw_text or '').strip()
            if not text:
                continue
            try:
                conf = float(data['conf'][i])
            except (KeyError, TypeError, ValueError):
                conf = -1.0
            if conf < 0:
                continue
            key = (int(data['block_num'][i]), int(data['par_num'][i]), int(data['line_num'][i]))
            lines.setdefault(key, []).append(text)
            confidences.append(conf)
            boxes.append(
                WordBox(
                    text=text,
                    quad=_quad(
                        float(data['left'][i]),
                        float(data['top'][i]),
                        float(data['width'][i]),
                        float(data['height'][i]),
                    ),
                )
            )

        if not boxes:
            return None
        full_text = '\n'.join(' '.join(words) for _, words in sorted(lines.items()))
        confidence = max(0.0, min(100.0, sum(confidences) / len(confidences)))
        logger.debug('Tesseract recognized words=%s lines=%s confidence=%.1f', len(boxes), len(lines), confidence)
        return RawRecognition(text=full_text, confidence=round(confidence, 1), word_boxes=tuple(boxes))


def create_text_recognizer(name: str) -> TextRecognizer:
    provider = name.strip().lower()
    if provider == 'dummy':
        return DummyRecognizer()
    if provider == 'tesseract':
        return TesseractRecognizer()
    raise ValueError(f'Unsupported TEXT_PROVIDER={name!r}')
