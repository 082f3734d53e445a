import os

import pytest

from label_scan.core.types import RawRecognition

os.environ.setdefault('TEXT_PROVIDER', 'dummy')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

GRANOLA_TEXT = "NATURE'S BEST\nORGANIC GRANOLA CEREAL\nIngredients: Organic oats, Honey, Almonds\nProtein 4g Sugar 8g"


@pytest.fixture
def granola_recognition() -> RawRecognition:
    return RawRecognition(text=GRANOLA_TEXT, confidence=65)
