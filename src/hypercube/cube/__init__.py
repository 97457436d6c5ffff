"""
Cube module: cells, fact indices, aggregation and the cube engine.
"""

from hypercube.cube.cell import Cell, aggregate, get_comparison_fn
from hypercube.cube.index import FactIndex
from hypercube.cube.aggregate import (
    is_number, to_precision, summing, average, zero_fill
)
from hypercube.cube.engine import Cube, SECONDS_TO_MILLIS

__all__ = [
    "Cell", "aggregate", "get_comparison_fn",
    "FactIndex",
    "is_number", "to_precision", "summing", "average", "zero_fill",
    "Cube", "SECONDS_TO_MILLIS",
]
