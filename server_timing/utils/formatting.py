"""Numeric formatting for ``dur`` values.

Header values are plain decimals: no exponent notation and no trailing
``.0`` on integral values, so ``53.0`` renders as ``53`` and ``1e-07`` as
``0.0000001``.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

NS_PER_MS = 1_000_000


def elapsed_ms(started_ns: int, ended_ns: int) -> float:
    return (ended_ns - started_ns) / NS_PER_MS


def format_number(value: Union[int, float, str]) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    text = repr(float(value))
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_duration(
    started_ns: int, ended_ns: int, precision: Union[int, float] = math.inf
) -> Union[float, str]:
    """Elapsed milliseconds, fixed to ``precision`` decimals when it is finite.

    Exact ties round away from zero (``2.5`` -> ``3``), not half-to-even.
    """
    dur = elapsed_ms(started_ns, ended_ns)
    if math.isfinite(precision):
        step = Decimal(1).scaleb(-int(precision))
        return format(Decimal(dur).quantize(step, rounding=ROUND_HALF_UP), "f")
    return dur
