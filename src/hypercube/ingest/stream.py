"""
Streaming ingestion: feed externally sourced records into a cube.

Records arrive one at a time in delivery order, are checked for the plain
record shape, optionally enriched with date facts, and inserted as cells.
Timestamps are carried through unchanged (milliseconds).
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

from hypercube.cube.aggregate import is_number
from hypercube.cube.cell import Cell
from hypercube.cube.engine import Cube
from hypercube.ingest.transforms import date_facts

logger = logging.getLogger(__name__)


@dataclass
class StreamConfig:
    """Configuration for a CubeStream."""
    measure_names: Optional[List[str]] = None
    add_date_facts: bool = False
    skip_invalid: bool = True
    time_field: str = "time"


class CubeStream:
    """
    Sink that inserts plain records into a cube.

    Usage:
        stream = CubeStream(config=StreamConfig(add_date_facts=True))
        stream.feed(read_jsonl("events.jsonl"))
        totals = stream.cube.group_by("day_of_week")
    """

    def __init__(self, cube: Optional[Cube] = None, config: StreamConfig = None):
        """
        Args:
            cube: Target cube; a new one is created when omitted
            config: Stream configuration
        """
        self.config = config or StreamConfig()
        self.cube = cube if cube is not None else Cube(self.config.measure_names)
        self.written = 0
        self.skipped = 0

    def _validate(self, record: Any) -> Optional[str]:
        """Return a description of what is wrong with the record, if anything."""
        if not isinstance(record, Mapping):
            return f"expected a mapping, got {type(record).__name__}"
        if not isinstance(record.get("facts"), Mapping):
            return "facts must be a mapping"
        if not isinstance(record.get("measures", {}), Mapping):
            return "measures must be a mapping"
        time = record.get(self.config.time_field)
        if time is not None and not is_number(time):
            return f"{self.config.time_field} must be numeric, got {time!r}"
        if self.config.add_date_facts and not time:
            return f"{self.config.time_field} is required to add date facts"
        return None

    def _reject(self, problem: str) -> bool:
        if not self.config.skip_invalid:
            raise ValueError(f"Invalid record: {problem}")
        logger.warning(f"Skipping record: {problem}")
        self.skipped += 1
        return False

    def write(self, record: Dict[str, Any]) -> bool:
        """
        Insert one record into the cube.

        Returns:
            True if the record was inserted, False if it was skipped

        Raises:
            ValueError: for a malformed record when skip_invalid is False
        """
        problem = self._validate(record)
        if problem is not None:
            return self._reject(problem)

        time = record.get(self.config.time_field)
        facts = dict(record["facts"])
        if self.config.add_date_facts:
            try:
                facts.update(date_facts(time))
            except (OverflowError, OSError, ValueError) as e:
                return self._reject(f"{self.config.time_field} {time!r} is out of range: {e}")

        self.cube.insert(Cell(
            facts=facts,
            measures=dict(record.get("measures") or {}),
            time=time
        ))
        self.written += 1
        return True

    def feed(self, records: Iterable[Dict[str, Any]]) -> int:
        """Write every record in delivery order; returns how many were inserted."""
        accepted = 0
        for record in records:
            if self.write(record):
                accepted += 1
        logger.info(f"Inserted {accepted} records into cube ({self.skipped} skipped so far)")
        return accepted


def read_jsonl(filepath: str) -> Iterator[Dict[str, Any]]:
    """Yield records from a JSON-lines file, ignoring blank lines."""
    with open(filepath, 'r') as f:
        for line in f:
            line = line.strip()
            if line:
                yield json.loads(line)
