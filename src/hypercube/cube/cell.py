"""
Cell: one fact-tagged measurement in a cube.

A cell is addressed by its facts (dimension name -> dimension value) and
carries a measure set (measure name -> number) plus an optional timestamp
in milliseconds. Engine operations never mutate a cell; derived cubes hold
references to the same cell objects as their source.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional

from hypercube.cube.aggregate import is_number


@dataclass
class Cell:
    """
    A single cell of the hypercube.

    Attributes:
        facts: Coordinates of the cell, e.g. {"genre": "drama"}
        measures: Values the facts converge to, e.g. {"views": 10}
        time: Unix time in milliseconds, or None for time-less cells
    """
    facts: Dict[str, Any] = field(default_factory=dict)
    measures: Dict[str, Any] = field(default_factory=dict)
    time: Optional[int] = None

    def value(self, name: str) -> float:
        """Get a measure value; absent or non-numeric measures read as 0."""
        value = self.measures.get(name)
        return value if is_number(value) else 0

    def clone(self) -> "Cell":
        """Create an independent copy with the same field values."""
        return Cell(facts=dict(self.facts), measures=dict(self.measures), time=self.time)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain record; ``time`` only when numeric."""
        record = {}
        if is_number(self.time):
            record["time"] = self.time
        record["facts"] = dict(self.facts)
        record["measures"] = dict(self.measures)
        return record

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cell":
        """Build a cell from a plain record, carrying ``time`` unchanged."""
        time = data.get("time")
        return cls(
            facts=dict(data.get("facts") or {}),
            measures=dict(data.get("measures") or {}),
            time=time if is_number(time) else None
        )


def aggregate(cells: Optional[Iterable[Cell]],
              fn: Callable[[Optional[Any], Any], Any]) -> Dict[str, Any]:
    """
    Fold every measure of every cell into a single measure set.

    Args:
        cells: Cells to aggregate (None or empty gives an empty result)
        fn: Aggregation function ``fn(aggregate_value, incoming_value)``;
            ``aggregate_value`` is None the first time a measure is seen

    Returns:
        Measure set keyed by every measure name seen, in first-seen order
    """
    measures: Dict[str, Any] = {}
    if not cells:
        return measures

    for cell in cells:
        for name, value in cell.measures.items():
            measures[name] = fn(measures.get(name), value)

    return measures


def get_comparison_fn(measure_name: str,
                      descending: bool = False) -> Callable[[Cell, Cell], float]:
    """
    Create a comparator ordering cells by one measure.

    Use with ``functools.cmp_to_key``; the built-in sort is stable so
    equal values keep their input order.
    """
    def compare(a: Cell, b: Cell) -> float:
        diff = a.value(measure_name) - b.value(measure_name)
        return -diff if descending else diff

    return compare
