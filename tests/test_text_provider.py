import sys
from types import SimpleNamespace

import pytest
from PIL import Image

from label_scan.providers import text_provider
from label_scan.providers.text_provider import (
    SAMPLE_LABEL_TEXT,
    DummyRecognizer,
    TesseractRecognizer,
    create_text_recognizer,
)


def _fake_pytesseract(data: dict):
    return SimpleNamespace(
        Output=SimpleNamespace(DICT='dict'),
        image_to_data=lambda image, config, output_type: data,
    )


def test_dummy_recognizer_returns_sample_label():
    recognition = DummyRecognizer().recognize(Image.new('RGB', (4, 4)))

    assert recognition.text == SAMPLE_LABEL_TEXT
    assert recognition.confidence == 82.0


def test_factory():
    assert isinstance(create_text_recognizer(' Dummy '), DummyRecognizer)
    with pytest.raises(ValueError):
        create_text_recognizer('paddle')


def test_tesseract_without_binary(monkeypatch):
    monkeypatch.setattr(text_provider.shutil, 'which', lambda name: None)

    recognizer = TesseractRecognizer()

    assert recognizer.status() == {'available': False, 'message': 'tesseract binary not found in PATH'}
    assert recognizer.recognize(Image.new('RGB', (4, 4))) is None


def test_tesseract_groups_words_into_lines(monkeypatch):
    data = {
        'text': ['ORGANIC', 'GRANOLA', '', 'Protein', '4g'],
        'conf': ['90', '80', '-1', '70', '60'],
        'block_num': [1, 1, 1, 1, 1],
        'par_num': [1, 1, 1, 1, 1],
        'line_num': [1, 1, 1, 2, 2],
        'left': [10, 80, 0, 10, 70],
        'top': [5, 5, 0, 30, 30],
        'width': [60, 60, 0, 50, 20],
        'height': [12, 12, 0, 12, 12],
    }
    monkeypatch.setattr(text_provider.shutil, 'which', lambda name: '/usr/bin/tesseract')
    monkeypatch.setitem(sys.modules, 'pytesseract', _fake_pytesseract(data))

    recognition = TesseractRecognizer().recognize(Image.new('RGB', (4, 4)))

    assert recognition.text == 'ORGANIC GRANOLA\nProtein 4g'
    assert recognition.confidence == 75.0
    assert len(recognition.word_boxes) == 4
    assert recognition.word_boxes[0].quad == ((10.0, 5.0), (70.0, 5.0), (70.0, 17.0), (10.0, 17.0))


def test_tesseract_with_no_words(monkeypatch):
    data = {'text': ['', ' '], 'conf': ['-1', '-1']}
    monkeypatch.setattr(text_provider.shutil, 'which', lambda name: '/usr/bin/tesseract')
    monkeypatch.setitem(sys.modules, 'pytesseract', _fake_pytesseract(data))

    assert TesseractRecognizer().recognize(Image.new('RGB', (4, 4))) is None


def _failing_pytesseract():
    def image_to_data(image, config, output_type):
        raise RuntimeError('tesseract timed out')

    return SimpleNamespace(Output=SimpleNamespace(DICT='dict'), image_to_data=image_to_data)


def test_tesseract_engine_failure_yields_nothing(monkeypatch, caplog):
    monkeypatch.setattr(text_provider.shutil, 'which', lambda name: '/usr/bin/tesseract')
    monkeypatch.setitem(sys.modules, 'pytesseract', _failing_pytesseract())

    with caplog.at_level('WARNING', logger='label_scan.providers'):
        recognition = TesseractRecognizer().recognize(Image.new('RGB', (4, 4)))

    assert recognition is None
    assert 'Tesseract recognition failed' in caplog.text
