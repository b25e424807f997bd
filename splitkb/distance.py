#!/usr/bin/env python3
"""
Physical key distances for split keyboard geometries.

Distances are measured in key units (1U = one key width) and are defined
only between two keys on the same hand that are either both thumb keys or
both finger keys. Three geometries are supported:

  - ortho:   keys on a plain grid
  - rowstag: each row is shifted right (row 1 by 0.25U, row 2 by 0.75U)
  - colstag: each column is shifted down by a per-column offset (Corne-style)
"""

from math import sqrt
from typing import Dict, Tuple

from splitkb.errors import ConfigurationError

THUMB_ROW = 3

GEOMETRIES = ('ortho', 'rowstag', 'colstag')

# Column offset per row for row-staggered boards
ROW_STAG_OFFSETS = (0.0, 0.25, 0.75, 0.0)

# Row offset per column for column-staggered boards
COL_STAG_OFFSETS = (0.35, 0.35, 0.1, 0.0, 0.1, 0.2, 0.2, 0.1, 0.0, 0.1, 0.35, 0.35)

SQRT2 = sqrt(2)

KeyPair = Tuple[int, int, int, int]


def _hypot(dx: float, dy: float) -> float:
    squared = dx * dx + dy * dy
    if squared == 1:
        return 1.0
    if squared == 2:
        return SQRT2
    return sqrt(squared)


def make_key_pair(key_a, key_b) -> KeyPair:
    """Build an order-independent cache key (lower row/column first)."""
    pos_a = (key_a.row, key_a.column)
    pos_b = (key_b.row, key_b.column)
    if pos_b < pos_a:
        pos_a, pos_b = pos_b, pos_a
    return pos_a + pos_b


class KeyDistance:
    """
    Memoized key-to-key distances for one keyboard geometry.

    The cache is keyed by the unordered pair of (row, column) positions, so
    distance(a, b) == distance(b, a) always holds.
    """

    def __init__(self, geometry: str = 'ortho'):
        if geometry not in GEOMETRIES:
            raise ConfigurationError(
                f"Unknown layout geometry '{geometry}'. Available: {list(GEOMETRIES)}"
            )
        self.geometry = geometry
        self._distances: Dict[KeyPair, float] = {}

    def __len__(self) -> int:
        return len(self._distances)

    def distance(self, key_a, key_b) -> float:
        """
        Distance between two keys (objects with hand, row and column).

        Returns 0.0 for keys on different hands, or when only one of the two
        keys is on the thumb row.
        """
        if key_a.hand != key_b.hand:
            return 0.0
        if (key_a.row == THUMB_ROW) != (key_b.row == THUMB_ROW):
            return 0.0

        pair = make_key_pair(key_a, key_b)
        cached = self._distances.get(pair)
        if cached is None:
            cached = self._calculate(pair)
            self._distances[pair] = cached
        return cached

    def _calculate(self, pair: KeyPair) -> float:
        row1, col1, row2, col2 = pair

        # thumbs row uses columns
        if row1 == THUMB_ROW:
            return float(abs(col2 - col1))

        if self.geometry == 'ortho':
            if col1 == col2:
                return float(row2 - row1)
            return _hypot(col2 - col1, row2 - row1)

        if self.geometry == 'rowstag':
            dx = (col2 + ROW_STAG_OFFSETS[row2]) - (col1 + ROW_STAG_OFFSETS[row1])
            return _hypot(dx, row2 - row1)

        dy = (row2 + COL_STAG_OFFSETS[col2]) - (row1 + COL_STAG_OFFSETS[col1])
        return _hypot(col2 - col1, dy)
