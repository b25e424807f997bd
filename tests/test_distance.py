from itertools import combinations
from math import sqrt

import pytest

from splitkb.distance import GEOMETRIES, KeyDistance
from splitkb.errors import ConfigurationError
from splitkb.layout import KEY_COUNT, derive_key_info, index_to_position

ALL_KEYS = [derive_key_info(*index_to_position(index)) for index in range(KEY_COUNT)]


def key(row, column):
    return derive_key_info(row, column)


def test_ortho_distances():
    distance = KeyDistance('ortho').distance

    assert distance(key(0, 1), key(2, 1)) == 2.0
    assert distance(key(0, 0), key(0, 1)) == 1.0
    assert distance(key(0, 0), key(1, 1)) == sqrt(2)
    assert distance(key(0, 0), key(2, 1)) == pytest.approx(sqrt(5))


def test_rowstag_offsets():
    distance = KeyDistance('rowstag').distance

    assert distance(key(0, 0), key(1, 0)) == pytest.approx(sqrt(0.25 ** 2 + 1))
    assert distance(key(1, 2), key(2, 2)) == pytest.approx(sqrt(0.5 ** 2 + 1))
    assert distance(key(0, 0), key(0, 1)) == 1.0


def test_colstag_offsets():
    distance = KeyDistance('colstag').distance

    assert distance(key(0, 2), key(0, 3)) == pytest.approx(sqrt(1 + 0.1 ** 2))
    assert distance(key(0, 3), key(1, 3)) == 1.0
    assert distance(key(0, 0), key(0, 1)) == 1.0


@pytest.mark.parametrize("geometry", GEOMETRIES)
def test_thumb_distances_use_columns(geometry):
    distance = KeyDistance(geometry).distance

    assert distance(key(3, 0), key(3, 2)) == 2.0
    assert distance(key(3, 4), key(3, 5)) == 1.0


@pytest.mark.parametrize("geometry", GEOMETRIES)
def test_undefined_pairs_are_zero(geometry):
    distance = KeyDistance(geometry).distance

    # different hands
    assert distance(key(0, 5), key(0, 6)) == 0.0
    assert distance(key(3, 2), key(3, 3)) == 0.0
    # thumb with finger key
    assert distance(key(3, 0), key(1, 1)) == 0.0


@pytest.mark.parametrize("geometry", GEOMETRIES)
def test_distance_is_symmetric(geometry):
    distance = KeyDistance(geometry).distance
    for key_a, key_b in combinations(ALL_KEYS, 2):
        assert distance(key_a, key_b) == distance(key_b, key_a)
        assert distance(key_a, key_b) >= 0.0


def test_distances_are_memoized():
    key_distance = KeyDistance('ortho')
    key_distance.distance(key(0, 0), key(1, 1))
    key_distance.distance(key(1, 1), key(0, 0))

    assert len(key_distance) == 1


def test_unknown_geometry():
    with pytest.raises(ConfigurationError):
        KeyDistance('hexagonal')
