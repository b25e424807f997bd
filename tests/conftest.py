from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest

from splitkb.corpus import Corpus
from splitkb.layout import COLUMNS, KEY_COUNT, SplitLayout

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

QWERTY_TEXT = """
ortho
~ q w e r t   y u i o p ~
~ a s d f g   h j k l ; '
~ z x c v b   n m , . / ~
      ~ ~ _   ~ ~ ~
"""


def make_layout(positions: Dict[str, Tuple[int, int]], name: str = "test",
                geometry: str = 'ortho') -> SplitLayout:
    """Build a layout from a char -> (row, column) mapping; other slots are empty."""
    slots: list = [None] * KEY_COUNT
    for char, (row, column) in positions.items():
        slots[COLUMNS * row + column] = char
    return SplitLayout(name, slots, geometry)


@pytest.fixture
def qwerty() -> SplitLayout:
    return SplitLayout.from_string(QWERTY_TEXT, name="qwerty")


@pytest.fixture
def sample_corpus() -> Corpus:
    return Corpus.from_file(str(DATA_DIR / "corpus" / "sample.txt"))


@pytest.fixture
def layouts_dir() -> Path:
    return DATA_DIR / "layouts"


@pytest.fixture
def sfb_layout() -> SplitLayout:
    """a above s on the left pinky, d and f on the ring and middle home keys."""
    return make_layout({'a': (0, 0), 's': (1, 0), 'd': (1, 2), 'f': (1, 3)})


@pytest.fixture
def sfb_corpus() -> Corpus:
    return Corpus.from_counts("sfb", bigrams={'as': 100, 'df': 50, 'sa': 30})
