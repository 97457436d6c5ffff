"""
FactIndex: inverted index for a single dimension.

Maps each dimension value to the ordered list of cell positions that carry
it. A cube keeps one FactIndex per dimension name it has seen. The index is
append-only, like the cube's cell sequence.
"""

from typing import Any, Dict, Iterator, List, Optional


class FactIndex:
    """Dimension value -> positions of the cells holding that value."""

    def __init__(self):
        self._positions: Dict[Any, List[int]] = {}

    def insert(self, value: Any, position: int):
        """Record that the cell at ``position`` has ``value``."""
        positions = self._positions.get(value)
        if positions is None:
            positions = []
            self._positions[value] = positions
        positions.append(position)

    def get(self, value: Any) -> Optional[List[int]]:
        """Positions for ``value``, or None if it was never inserted."""
        return self._positions.get(value)

    def values(self) -> List[Any]:
        """Indexed values in first-insertion order."""
        return list(self._positions)

    def __contains__(self, value: Any) -> bool:
        return value in self._positions

    def __iter__(self) -> Iterator[Any]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    def __repr__(self) -> str:
        return f"FactIndex(values={len(self._positions)})"
