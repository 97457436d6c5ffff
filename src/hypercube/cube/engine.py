"""
Cube: an in-memory OLAP hypercube.

The cube owns an append-only sequence of cells and one FactIndex per
dimension name. Selection (slice, dice) resolves dimension constraints
against the indices and intersects their posting lists, so queries touch
only the positions that can match. Every query returns a new Cube that
references a subset of this cube's cells:

- slice / dice: cells matching / not matching a fact set
- slice_time / slice_by: half-open time range / arbitrary predicate
- group_by / sort_by: one sub-cube per dimension value, optionally ranked
- slice_top: the first cells under a scoring function
- sum / avg: measure aggregation
"""

import logging
from collections.abc import Mapping
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterator, List, Optional

import pandas as pd

from hypercube.cube import positions as pos
from hypercube.cube.aggregate import average, summing, zero_fill
from hypercube.cube.cell import Cell, aggregate, get_comparison_fn
from hypercube.cube.index import FactIndex

logger = logging.getLogger(__name__)

# Records handed to deserialize carry their time in seconds
SECONDS_TO_MILLIS = 1000


class Cube:
    """
    A simple implementation of an OLAP hypercube.

    Attributes:
        cells: All cells, in insertion order
        measure_names: Measure names to expect; used to zero-fill the
            aggregates of an empty cube
    """

    def __init__(self, measure_names: Optional[List[str]] = None):
        self.cells: List[Cell] = []
        self.measure_names = list(measure_names) if measure_names is not None else None
        self._indices: Dict[str, FactIndex] = {}
        self._fact_names: List[str] = []
        self._fact_names_dirty = True

    def _derive(self) -> "Cube":
        """Empty cube with the same expected measure names."""
        return Cube(self.measure_names)

    def count(self) -> int:
        """Number of cells in the cube."""
        return len(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.cells)

    def __repr__(self) -> str:
        return f"Cube(cells={len(self.cells)}, facts={self.get_fact_names()})"

    def insert(self, cell: Cell):
        """Insert a cell, indexing every one of its facts."""
        self._fact_names_dirty = True

        position = len(self.cells)
        for fact_name, fact_value in cell.facts.items():
            index = self._indices.get(fact_name)
            if index is None:
                index = FactIndex()
                self._indices[fact_name] = index
            index.insert(fact_value, position)

        self.cells.append(cell)

    def get_fact_names(self) -> List[str]:
        """Sorted names of the facts (dimensions) that make up this cube."""
        if self._fact_names_dirty:
            self._fact_names = sorted(self._indices)
            self._fact_names_dirty = False
        return list(self._fact_names)

    def get_fact_values(self, fact_name: str) -> List[Any]:
        """
        Unique non-empty values of one fact, in first-seen order.

        e.g. ``get_fact_values("title")`` -> ["Terminator 2", "Alien"]
        """
        values = []
        seen = set()
        for cell in self.cells:
            value = cell.facts.get(fact_name)
            if value is None or value == "" or value in seen:
                continue
            seen.add(value)
            values.append(value)
        return values

    def _get_pos(self, facts: Mapping) -> List[int]:
        """
        Positions of every cell matching all of ``facts``.

        Constraints are resolved in mapping order; a dimension or value the
        cube has never seen means nothing can match. The posting lists are
        then intersected shortest first, stopping as soon as the hit set
        is empty. The result is sorted and does not depend on the order of
        ``facts``.
        """
        if not isinstance(facts, Mapping):
            raise TypeError(f"facts must be a mapping, got {type(facts).__name__}")

        postings = []
        for fact_name, fact_value in facts.items():
            index = self._indices.get(fact_name)
            if index is None:
                return []
            try:
                fact_positions = index.get(fact_value)
            except TypeError:
                raise TypeError(
                    f"value for fact {fact_name!r} must be hashable, "
                    f"got {type(fact_value).__name__}"
                ) from None
            if fact_positions is None:
                return []
            postings.append(fact_positions)

        if not postings:
            # no constraints
            return list(range(len(self.cells)))

        postings.sort(key=len)
        hits = postings[0]
        for fact_positions in postings[1:]:
            hits = pos.intersect(hits, fact_positions)
            if not hits:
                return []

        return sorted(hits)

    def _insert_positions(self, cube: "Cube", hits: List[int]) -> "Cube":
        for position in hits:
            cube.insert(self.cells[position])
        return cube

    def slice(self, facts: Mapping) -> "Cube":
        """Cube of the cells that align with every given fact value."""
        hits = self._get_pos(facts)
        logger.debug(f"slice {dict(facts)}: {len(hits)} of {len(self.cells)} cells")
        return self._insert_positions(self._derive(), hits)

    def dice(self, facts: Mapping) -> "Cube":
        """Cube of the cells that do not match the fact set (complement of slice)."""
        hits = self._get_pos(facts)
        misses = pos.difference(range(len(self.cells)), hits)
        logger.debug(f"dice {dict(facts)}: {len(misses)} of {len(self.cells)} cells")
        return self._insert_positions(self._derive(), misses)

    def slice_time(self, from_time: float, to_time: float) -> "Cube":
        """Cube of the cells with ``from_time <= time < to_time`` (milliseconds)."""
        return self.slice_by(
            lambda cell, i: cell.time is not None and from_time <= cell.time < to_time
        )

    def slice_by(self, predicate: Callable[[Cell, int], bool]) -> "Cube":
        """Cube of the cells for which ``predicate(cell, position)`` is truthy."""
        if not callable(predicate):
            raise TypeError("predicate must be callable")
        cube = self._derive()
        for i, cell in enumerate(self.cells):
            if predicate(cell, i):
                cube.insert(cell)
        return cube

    def for_each(self, visitor: Callable[[Cell, int], Any]) -> "Cube":
        """Call ``visitor(cell, position)`` for each cell; returns self."""
        if not callable(visitor):
            raise TypeError("visitor must be callable")
        for i, cell in enumerate(self.cells):
            visitor(cell, i)
        return self

    def group_by(self, fact_name: str) -> Dict[Any, "Cube"]:
        """
        One sub-cube per value of ``fact_name``.

        e.g. ``cube.group_by("aptitude")`` ->
        {"smart": Cube, "average": Cube, "clueless": Cube}

        Cells without the fact belong to no group.
        """
        return {
            value: self.slice({fact_name: value})
            for value in self.get_fact_values(fact_name)
        }

    def sort_by(self, fact_name: str, measure_name: str,
                limit: Optional[int] = None) -> Dict[Any, "Cube"]:
        """
        Group by a fact and rank the groups by descending sum of a measure.

        Args:
            fact_name: Group by this fact
            measure_name: Rank by the sum of this measure
            limit: Keep at most this many groups (None or 0 keeps all)

        Returns:
            Dict of fact value -> sub-cube, in rank order
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        groups = list(self.group_by(fact_name).values())
        groups.sort(key=lambda cube: -cube.sum().get(measure_name, 0))
        if limit:
            groups = groups[:limit]

        return {cube.cells[0].facts[fact_name]: cube for cube in groups}

    def merge(self, cube: "Cube"):
        """Insert every cell of ``cube`` into this cube, in order."""
        if not isinstance(cube, Cube):
            raise TypeError(f"can only merge a Cube, got {type(cube).__name__}")
        # snapshot so merging a cube into itself terminates
        for cell in list(cube.cells):
            self.insert(cell)

    def sum(self, precision: Optional[int] = None) -> Dict[str, float]:
        """
        Sum the measures in the cube.

        Args:
            precision: Significant figures each value is rounded to before
                it is added

        Returns:
            The summed measure set; an empty cube gives 0 for every
            expected measure name
        """
        if not self.cells:
            if self.measure_names is not None:
                return zero_fill(self.measure_names)
            return {}
        return aggregate(self.cells, summing(precision))

    def avg(self, count: Optional[float], precision: Optional[int] = None) -> Dict[str, float]:
        """
        Average the measures in the cube.

        Args:
            count: Number of observation slots for the grain; this is the
                maximum number of cells in the set, not the actual count
            precision: Significant figures to round to

        Returns:
            The averaged measure set
        """
        avgs = average(self.sum(precision), count, precision)
        if not avgs and self.measure_names is not None:
            return zero_fill(self.measure_names)
        return avgs

    def slice_top(self, limit: Optional[int], score_fn: Callable[[Dict[str, Any]], float]) -> "Cube":
        """
        Cube of the first ``limit`` cells ordered by ascending score.

        ``score_fn`` receives a cell's measures and returns its sort key;
        equal scores keep their insertion order. A ``limit`` of None keeps
        every cell.
        """
        if not callable(score_fn):
            raise TypeError("score_fn must be callable")
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        top_cells = sorted(self.cells, key=lambda cell: score_fn(cell.measures))
        if limit is not None:
            top_cells = top_cells[:limit]

        cube = self._derive()
        for cell in top_cells:
            cube.insert(cell)
        return cube

    def sort_cells(self, measure_name: str, descending: bool = False) -> List[Cell]:
        """Cells ordered by one measure, stable on ties."""
        return sorted(self.cells, key=cmp_to_key(get_comparison_fn(measure_name, descending)))

    def serialize(self) -> List[Dict[str, Any]]:
        """Turn the cube into a list of plain records (time in milliseconds)."""
        return [cell.to_dict() for cell in self.cells]

    @classmethod
    def deserialize(cls, data: List[Dict[str, Any]],
                    measure_names: Optional[List[str]] = None,
                    time_scale: float = SECONDS_TO_MILLIS) -> "Cube":
        """
        Create a cube from a list of plain records.

        A numeric ``time`` is read as seconds and multiplied by
        ``time_scale`` to give the cell's millisecond timestamp. ``serialize``
        emits milliseconds, so pass ``time_scale=1`` to load its output
        with timestamps intact.
        """
        cube = cls(measure_names)
        for record in data:
            cell = Cell.from_dict(record)
            if cell.time is not None:
                cell.time = round(cell.time * time_scale)
            cube.insert(cell)
        return cube

    def to_frame(self) -> pd.DataFrame:
        """
        One row per cell: a ``time`` column, then fact columns (sorted),
        then measure columns in first-seen order.
        """
        measure_columns = list(dict.fromkeys(
            name for cell in self.cells for name in cell.measures
        ))
        fact_columns = self.get_fact_names()
        rows = []
        for cell in self.cells:
            row = {"time": cell.time}
            for name in fact_columns:
                row[name] = cell.facts.get(name)
            for name in measure_columns:
                row[name] = cell.measures.get(name)
            rows.append(row)
        return pd.DataFrame(rows, columns=["time"] + fact_columns + measure_columns)

    @classmethod
    def from_frame(cls, df: pd.DataFrame,
                   fact_columns: List[str],
                   measure_columns: List[str],
                   time_column: Optional[str] = None,
                   measure_names: Optional[List[str]] = None) -> "Cube":
        """
        Build a cube from a DataFrame.

        Missing fact values are left off the cell; missing measure values
        are left off the measure set. ``time_column`` holds milliseconds.
        """
        cube = cls(measure_names)
        for row in df.to_dict(orient="records"):
            facts = {
                name: row[name] for name in fact_columns
                if not pd.isna(row[name])
            }
            measures = {
                name: row[name] for name in measure_columns
                if not pd.isna(row[name])
            }
            time = None
            if time_column is not None and not pd.isna(row[time_column]):
                time = int(row[time_column])
            cube.insert(Cell(facts=facts, measures=measures, time=time))
        return cube
