"""
Decimal rounding helpers.

All displayed quantities round half away from zero at a fixed precision.
"""

from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Union

Number = Union[int, float, Decimal]

DEFAULT_PRECISION = 28


def quantize(value: Number, places: int) -> Decimal:
    """Round value to the given decimal places, half away from zero."""
    if not isinstance(value, Decimal):
        # str() keeps the shortest float repr, so 2.675 stays 2.675
        value = Decimal(str(value))
    if not value.is_finite():
        return value
    with localcontext() as ctx:
        # Room for every integer digit plus the requested decimals
        ctx.prec = max(DEFAULT_PRECISION, value.adjusted() + places + 2)
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_half_up(value: Number, places: int = 2) -> float:
    """Round value to places decimals and return a float."""
    return float(quantize(value, places))


def round_to_int(value: Number) -> int:
    return int(quantize(value, 0))
