"""
hypercube: an in-memory multidimensional analytical engine

Stores fact-tagged numeric measurements in cells and answers ad-hoc
analytical queries over them: slice/dice, grouping, ranking and
sum/average aggregation, backed by per-dimension inverted indices.
"""

__version__ = "0.1.0"

from hypercube.cube.cell import Cell
from hypercube.cube.index import FactIndex
from hypercube.cube.engine import Cube
from hypercube.ingest.stream import CubeStream, StreamConfig
from hypercube.ingest.transforms import add_date_facts

__all__ = [
    "Cell",
    "FactIndex",
    "Cube",
    "CubeStream",
    "StreamConfig",
    "add_date_facts",
]
