import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

def normalize_address(addr: str) -> str:
    """
    Minimal normalization so cache keys are stable:
    - trim whitespace
    - lowercase
    - collapse multiple spaces
    """
    return " ".join(addr.strip().lower().split())

def format_provider_address(addr: str) -> str:
    """
    The provider resolves "street, city" far more reliably than a bare
    string, so a comma-less address gets one before its last word:
    "123 Main St Austin" -> "123 Main St, Austin".
    """
    if "," in addr:
        return addr
    words = addr.split()
    if len(words) < 2:
        return addr
    return f"{' '.join(words[:-1])}, {words[-1]}"

def dig(obj: Any, *keys: str) -> Any:
    """Nested dict lookup that returns None as soon as a level is missing."""
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj

def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce a provider field to a finite float, else ``default``."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default

def parse_int(value: Any) -> int:
    """Lenient integer parse for form input ("3", 3.0, "3 beds" -> 3). Junk -> 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else 0

def parse_float(value: Any) -> float:
    """Lenient float parse for form input. Junk -> 0.0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    m = _LEADING_FLOAT.match(str(value))
    return float(m.group(1)) if m else 0.0

def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."

def round_half_up(value: float) -> int:
    """Whole-number rounding with halves away from zero (180.5 -> 181, not 180)."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))

