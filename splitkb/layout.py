#!/usr/bin/env python3
"""
Split keyboard layout model.

A layout has 42 key slots: three finger rows of 12 keys (6 per hand) and one
thumb row of 6 keys (3 per hand). Slot indices run row by row, so the key in
row r and column c sits at index 12*r + c and the thumb keys occupy 36-41.
Hand and finger are a pure function of the slot position.

Layout file format (.klf):

    # comment lines and blank lines are ignored
    rowstag                          <- optional geometry: ortho, rowstag, colstag
    ~ q w e r t   y u i o p ~        <- 3 rows of 12 keys (6 left, 6 right)
    ~ a s d f g   h j k l ; '
    ~ z x c v b   n m , . / ~
          ~ ~ _   ~ ~ ~              <- 6 thumb keys (3 left, 3 right)

Special tokens: '~' = no key, '_' = space, '~~' = literal '~',
'__' = literal '_', '##' = literal '#'.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from splitkb.distance import GEOMETRIES, THUMB_ROW, KeyDistance
from splitkb.errors import ConfigurationError, FormatError

logger = logging.getLogger(__name__)

FINGER_ROWS = 3
COLUMNS = 12
THUMB_KEYS = 6
KEY_COUNT = FINGER_ROWS * COLUMNS + THUMB_KEYS
ROW_KEY_COUNTS = (COLUMNS, COLUMNS, COLUMNS, THUMB_KEYS)

# Finger index per column on the finger rows:
# 0-3 left pinky..index, 4/5 left/right thumb, 6-9 right index..pinky
FINGER_TABLE = (0, 0, 1, 2, 3, 3, 6, 6, 7, 8, 9, 9)
LEFT_THUMB_FINGER = 4
RIGHT_THUMB_FINGER = 5

LEFT = 'left'
RIGHT = 'right'

TOKEN_TO_CHAR = {'~': None, '_': ' ', '~~': '~', '__': '_', '##': '#'}
CHAR_TO_TOKEN = {None: '~', ' ': '_', '~': '~~', '_': '__', '#': '##'}

PIN_FREE_TOKENS = {'.', '_', '-'}
PIN_PINNED_TOKENS = {'*', 'x', 'X'}


@dataclass(frozen=True)
class KeyInfo:
    """Position and derived hand/finger of one key."""
    index: int
    hand: str
    row: int
    column: int
    finger: int

    @property
    def is_thumb(self) -> bool:
        return self.row == THUMB_ROW

    @property
    def is_home_row(self) -> bool:
        return self.row == 1

    @property
    def is_bottom_row(self) -> bool:
        return self.row == 2


def derive_key_info(row: int, column: int) -> KeyInfo:
    """
    Derive hand and finger for a key position.

    Args:
        row: 0-2 for finger rows, 3 for the thumb row
        column: 0-11 on finger rows, 0-5 on the thumb row

    Returns:
        KeyInfo for the position

    Raises:
        ValueError: If the position is outside the 42-key grid
    """
    if row < 0 or row > THUMB_ROW:
        raise ValueError(f"Row must be 0-{THUMB_ROW}, got {row}")
    if column < 0 or column >= ROW_KEY_COUNTS[row]:
        raise ValueError(f"Column must be 0-{ROW_KEY_COUNTS[row] - 1} in row {row}, got {column}")

    if row == THUMB_ROW:
        hand = LEFT if column < THUMB_KEYS // 2 else RIGHT
        finger = LEFT_THUMB_FINGER if hand == LEFT else RIGHT_THUMB_FINGER
    else:
        hand = LEFT if column < COLUMNS // 2 else RIGHT
        finger = FINGER_TABLE[column]

    return KeyInfo(index=COLUMNS * row + column, hand=hand, row=row, column=column, finger=finger)


def index_to_position(index: int) -> Tuple[int, int]:
    return divmod(index, COLUMNS)


def _is_comment(line: str) -> bool:
    return line.startswith('#') and line.split()[0] != '##'


def _parse_token(token: str, row: int, source: str) -> Optional[str]:
    if token in TOKEN_TO_CHAR:
        return TOKEN_TO_CHAR[token]
    if len(token) != 1:
        raise FormatError(
            f"Invalid file format in {source}: key '{token}' in row {row + 1} must have "
            f"1 character or be '__' (for _), '~~' (for ~) or '##' (for #)"
        )
    return token


def _format_token(char: Optional[str]) -> str:
    return CHAR_TO_TOKEN.get(char, char)


def parse_layout_lines(lines: Iterable[str], source: str = "<string>") -> Tuple[Optional[str], List[Optional[str]]]:
    """
    Parse the lines of a layout description.

    Args:
        lines: Raw text lines
        source: Name used in error messages

    Returns:
        Tuple of (geometry or None if no header, list of 42 slot characters)

    Raises:
        FormatError: On wrong row or key counts, bad tokens or unknown geometry
    """
    content = [line.strip() for line in lines]
    content = [line for line in content if line and not _is_comment(line)]

    geometry = None
    if content and len(content[0].split()) == 1 and len(content[0]) > 2:
        header = content.pop(0).lower()
        for name in GEOMETRIES:
            if header.startswith(name):
                geometry = name
                break
        else:
            raise FormatError(
                f"Invalid layout type in {source}: {header}. Must start with one of: {list(GEOMETRIES)}"
            )

    if len(content) != len(ROW_KEY_COUNTS):
        raise FormatError(
            f"Invalid file format in {source}: found {len(content)} rows, expected {len(ROW_KEY_COUNTS)}"
        )

    slots: List[Optional[str]] = []
    for row, (line, expected) in enumerate(zip(content, ROW_KEY_COUNTS)):
        tokens = line.split()
        if len(tokens) != expected:
            raise FormatError(
                f"Invalid file format in {source}: row {row + 1} has {len(tokens)} keys, expected {expected}"
            )
        slots.extend(_parse_token(token, row, source) for token in tokens)

    return geometry, slots


class SplitLayout:
    """
    A 42-key split layout: the genome of the optimizer.

    Attributes:
        name: Layout identifier (usually the file name)
        geometry: 'ortho', 'rowstag' or 'colstag'
        slots: 42 entries, each a character or None (no key)
        rune_info: Character to KeyInfo mapping for every assigned slot
        pinned: 42 flags; pinned slots are never moved by the optimizer
        key_distance: Distance cache for this geometry
    """

    def __init__(self, name: str, slots: Sequence[Optional[str]], geometry: str = 'ortho',
                 pinned: Optional[Sequence[bool]] = None,
                 key_distance: Optional[KeyDistance] = None):
        if len(slots) != KEY_COUNT:
            raise FormatError(f"Layout {name} has {len(slots)} keys, expected {KEY_COUNT}")
        if pinned is not None and len(pinned) != KEY_COUNT:
            raise ValueError(f"Pin flags must have {KEY_COUNT} entries, got {len(pinned)}")

        self.name = name
        self.slots: List[Optional[str]] = list(slots)
        self.pinned: List[bool] = list(pinned) if pinned is not None else [False] * KEY_COUNT
        self.key_distance = key_distance or KeyDistance(geometry)
        if self.key_distance.geometry != geometry:
            raise ConfigurationError(
                f"Distance cache geometry '{self.key_distance.geometry}' does not match '{geometry}'"
            )
        self.geometry = geometry

        self.rune_info: Dict[str, KeyInfo] = {}
        for index, char in enumerate(self.slots):
            if char is None:
                continue
            if char in self.rune_info:
                row, column = index_to_position(index)
                raise FormatError(
                    f"Duplicate character '{char}' in layout {name} at row {row + 1}, col {column + 1}"
                )
            self.rune_info[char] = derive_key_info(*index_to_position(index))

    @classmethod
    def from_string(cls, text: str, name: str = "layout", geometry: Optional[str] = None) -> "SplitLayout":
        """
        Create a layout from text in the layout file format.

        An explicit geometry overrides any geometry header in the text.
        """
        header, slots = parse_layout_lines(text.splitlines(), source=name)
        return cls(name, slots, geometry or header or 'ortho')

    @classmethod
    def from_rows(cls, name: str, rows: Sequence[Sequence[Optional[str]]],
                  geometry: str = 'ortho') -> "SplitLayout":
        """Create a layout from 4 rows of characters (None = no key)."""
        if len(rows) != len(ROW_KEY_COUNTS):
            raise FormatError(f"Layout {name} has {len(rows)} rows, expected {len(ROW_KEY_COUNTS)}")
        slots: List[Optional[str]] = []
        for row, (keys, expected) in enumerate(zip(rows, ROW_KEY_COUNTS)):
            if len(keys) != expected:
                raise FormatError(
                    f"Layout {name}: row {row + 1} has {len(keys)} keys, expected {expected}"
                )
            slots.extend(keys)
        return cls(name, slots, geometry)

    @classmethod
    def load_from_file(cls, filepath: str, name: Optional[str] = None,
                       geometry: Optional[str] = None) -> "SplitLayout":
        """
        Load a layout from a .klf file.

        Args:
            filepath: Path to the layout file
            name: Layout name (defaults to the file name)
            geometry: Geometry override (defaults to the file header, then 'ortho')

        Raises:
            FileNotFoundError: If the file doesn't exist
            FormatError: If the file is malformed
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Layout file not found: {filepath}")

        with open(path, 'r', encoding='utf-8') as f:
            header, slots = parse_layout_lines(f.readlines(), source=str(path))

        return cls(name or path.name, slots, geometry or header or 'ortho')

    def to_layout_string(self) -> str:
        """Serialize to the layout file format (including the geometry header)."""
        lines = [self.geometry]
        for row in range(FINGER_ROWS):
            tokens = [_format_token(char) for char in self.slots[row * COLUMNS:(row + 1) * COLUMNS]]
            lines.append(' '.join(tokens[:6]) + '   ' + ' '.join(tokens[6:]))
        thumbs = [_format_token(char) for char in self.slots[FINGER_ROWS * COLUMNS:]]
        lines.append('      ' + ' '.join(thumbs[:3]) + '   ' + ' '.join(thumbs[3:]))
        return '\n'.join(lines) + '\n'

    def save_to_file(self, filepath: str) -> None:
        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(self.to_layout_string())

    def __str__(self) -> str:
        def show(char: Optional[str]) -> str:
            if char is None:
                return ' '
            return '_' if char == ' ' else char

        lines = []
        for row in range(FINGER_ROWS):
            keys = [show(char) for char in self.slots[row * COLUMNS:(row + 1) * COLUMNS]]
            lines.append(' '.join(keys[:6]) + '   ' + ' '.join(keys[6:]))
        thumbs = [show(char) for char in self.slots[FINGER_ROWS * COLUMNS:]]
        lines.append('      ' + ' '.join(thumbs[:3]) + '   ' + ' '.join(thumbs[3:]))
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return f"SplitLayout(name={self.name!r}, geometry={self.geometry!r}, keys={len(self.rune_info)})"

    @property
    def chars(self) -> List[str]:
        """Assigned characters in slot order."""
        return [char for char in self.slots if char is not None]

    def to_mapping(self) -> Dict[str, Tuple[int, int]]:
        """Character to (row, column) mapping."""
        return {char: (info.row, info.column) for char, info in self.rune_info.items()}

    def key_info(self, char: str) -> Optional[KeyInfo]:
        return self.rune_info.get(char)

    def distance(self, char1: str, char2: str) -> float:
        """Physical distance between the keys of two characters on this layout."""
        return self.key_distance.distance(self.rune_info[char1], self.rune_info[char2])

    def clone(self) -> "SplitLayout":
        """
        Copy the layout. Slots, pins and the character mapping are copied;
        the geometry-only distance cache is shared.
        """
        copy = self.__class__.__new__(self.__class__)
        copy.name = self.name
        copy.geometry = self.geometry
        copy.slots = list(self.slots)
        copy.pinned = list(self.pinned)
        copy.rune_info = dict(self.rune_info)
        copy.key_distance = self.key_distance
        return copy

    def swap(self, char1: str, char2: str) -> None:
        """Swap the key positions of two assigned characters."""
        info1 = self.rune_info[char1]
        info2 = self.rune_info[char2]
        self.slots[info1.index], self.slots[info2.index] = char2, char1
        self.rune_info[char1], self.rune_info[char2] = info2, info1

    # Pinning

    def is_pinned(self, char: str) -> bool:
        return self.pinned[self.rune_info[char].index]

    def pin_row(self, row: int) -> None:
        """Pin every slot of a row (0-2 finger rows, 3 thumb row)."""
        if row < 0 or row > THUMB_ROW:
            raise ConfigurationError(f"Cannot pin row {row}: rows are 0-{THUMB_ROW}")
        start = row * COLUMNS
        for index in range(start, start + ROW_KEY_COUNTS[row]):
            self.pinned[index] = True

    def pin_chars(self, chars: Iterable[str]) -> None:
        for char in chars:
            if char not in self.rune_info:
                raise ConfigurationError(f"Cannot pin unavailable character: {char!r}")
            self.pinned[self.rune_info[char].index] = True

    def free_only(self, chars: Iterable[str]) -> None:
        """Pin every slot except those holding the given characters."""
        self.pinned = [True] * KEY_COUNT
        for char in chars:
            if char not in self.rune_info:
                raise ConfigurationError(f"Cannot free unavailable character: {char!r}")
            self.pinned[self.rune_info[char].index] = False

    def pin_unassigned(self) -> None:
        """Pin empty slots and whitespace keys."""
        for index, char in enumerate(self.slots):
            if char is None or char.isspace():
                self.pinned[index] = True

    def load_pins(self, filepath: str) -> None:
        """
        Load pin flags from a pins file shaped like a layout (12/12/12/6 tokens).

        '.', '_' and '-' mark free keys; '*', 'x' and 'X' mark pinned keys.

        Raises:
            FileNotFoundError: If the pins file doesn't exist
            FormatError: If the file is malformed
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Pins file not found: {filepath}")

        with open(path, 'r', encoding='utf-8') as f:
            rows = [line.split() for line in f if line.strip() and not line.lstrip().startswith('#')]

        if len(rows) != len(ROW_KEY_COUNTS):
            raise FormatError(f"Invalid file format in {path}: found {len(rows)} rows, expected {len(ROW_KEY_COUNTS)}")

        pinned = []
        for row, (tokens, expected) in enumerate(zip(rows, ROW_KEY_COUNTS)):
            if len(tokens) != expected:
                raise FormatError(
                    f"Invalid file format in {path}: row {row + 1} has {len(tokens)} keys, expected {expected}"
                )
            for col, token in enumerate(tokens):
                if token in PIN_FREE_TOKENS:
                    pinned.append(False)
                elif token in PIN_PINNED_TOKENS:
                    pinned.append(True)
                else:
                    raise FormatError(
                        f"Invalid character in {path} '{token}' at position {col + 1} in row {row + 1}"
                    )
        self.pinned = pinned
        logger.debug("Loaded %d pinned keys from %s", sum(pinned), path)
