import math
import re

_QUANTITY = re.compile(r'^\s*(\d+(?:\.\d+)?|\.\d+)\s*([a-zA-Z]*)')
_MILLIGRAM_UNITS = {'mg', 'milligram', 'milligrams'}
_GRAM_UNITS = {'g', 'gr', 'gram', 'grams'}


def parse_quantity(value: str | None) -> tuple[float, str] | None:
    match = _QUANTITY.match(str(value or ''))
    if not match:
        return None
    return float(match.group(1)), match.group(2).lower()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_amount(value: float) -> str:
    rounded = round(float(value), 3)
    if rounded == int(rounded):
        return str(int(rounded))
    return f'{rounded:.3f}'.rstrip('0').rstrip('.')


def to_grams(amount: float, unit: str) -> float:
    if unit in _MILLIGRAM_UNITS:
        return amount / 1000.0
    return amount


def to_milligrams(amount: float, unit: str) -> float:
    if unit in _GRAM_UNITS:
        return amount * 1000.0
    return amount
