"""
Set algebra over cell positions.

Positions are 0-based indices into a cube's cell sequence. Every helper
returns a sorted list of plain ints so results can be used directly to
index ``Cube.cells``.
"""

from typing import Iterable, List

import numpy as np


def _as_array(positions: Iterable[int]) -> np.ndarray:
    return np.fromiter(positions, dtype=np.int64)


def intersect(a: Iterable[int], b: Iterable[int]) -> List[int]:
    """Positions present in both collections."""
    return np.intersect1d(_as_array(a), _as_array(b)).tolist()


def difference(a: Iterable[int], b: Iterable[int]) -> List[int]:
    """Positions in ``a`` that are not in ``b``."""
    return np.setdiff1d(_as_array(a), _as_array(b)).tolist()

