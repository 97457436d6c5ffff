"""
Fold routines over measure sets.

These are the building blocks used by ``Cube.sum`` and ``Cube.avg``:
a numeric validity check, significant-figure rounding, the summing fold
handed to ``cell.aggregate`` and the averaging step.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from numbers import Real
from typing import Any, Callable, Dict, Iterable, Optional


def is_number(value: Any) -> bool:
    """True for real numbers, excluding booleans and NaN."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return not math.isnan(value)


def to_precision(value: float, precision: int) -> float:
    """
    Round ``value`` to ``precision`` significant figures.

    ``to_precision(1234.5, 2) == 1200.0``; ``to_precision(0.012345, 3) == 0.0123``

    Ties round away from zero: ``to_precision(2.5, 1) == 3.0``.
    """
    if not isinstance(precision, int) or isinstance(precision, bool) or precision < 1:
        raise ValueError(f"precision must be a positive integer, got {precision!r}")
    if value == 0 or not math.isfinite(value):
        return float(value)
    exact = Decimal(float(value))
    with localcontext() as ctx:
        # room for a carry, e.g. 9.96 -> 10.0
        ctx.prec = precision + 2
        step = Decimal(1).scaleb(exact.adjusted() - precision + 1)
        return float(exact.quantize(step, rounding=ROUND_HALF_UP))


def summing(precision: Optional[int] = None) -> Callable[[Optional[float], Any], float]:
    """
    Build the fold function for summation.

    The returned function takes ``(aggregate, incoming)``. ``aggregate`` is
    None on the first occurrence of a measure, in which case the incoming
    value seeds the result. Non-numeric incoming values count as 0.
    """
    if precision is not None:
        # validate once, not per cell
        to_precision(1.0, precision)

    def fold(agg: Optional[float], inc: Any) -> float:
        inc = inc if is_number(inc) else 0
        if precision is not None:
            inc = to_precision(inc, precision)
        if agg is None:
            return inc
        return agg + inc

    return fold


def average(sums: Dict[str, float], count: Optional[float],
            precision: Optional[int] = None) -> Dict[str, float]:
    """
    Divide every summed measure by ``count``.

    ``count`` is the number of observation slots for the grain, which may
    exceed the number of cells when some buckets have no data. A falsy
    ``count`` leaves values undivided.
    """
    avgs = {}
    for name, value in sums.items():
        if value and count:
            value = value / count
        if precision is not None:
            value = to_precision(value, precision)
        avgs[name] = value
    return avgs


def zero_fill(names: Iterable[str]) -> Dict[str, int]:
    """Measure set with every name mapped to 0."""
    return {name: 0 for name in names}
