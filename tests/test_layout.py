import pytest

from conftest import QWERTY_TEXT, make_layout
from splitkb.errors import ConfigurationError, FormatError
from splitkb.layout import KEY_COUNT, LEFT, RIGHT, SplitLayout, derive_key_info


@pytest.mark.parametrize("row, column, hand, finger", [
    (0, 0, LEFT, 0),
    (1, 3, LEFT, 2),
    (2, 5, LEFT, 3),
    (0, 6, RIGHT, 6),
    (1, 8, RIGHT, 7),
    (2, 11, RIGHT, 9),
    (3, 2, LEFT, 4),
    (3, 3, RIGHT, 5),
])
def test_derive_key_info(row, column, hand, finger):
    info = derive_key_info(row, column)

    assert info.hand == hand
    assert info.finger == finger
    assert info.index == 12 * row + column


def test_row_classification():
    assert derive_key_info(1, 4).is_home_row
    assert derive_key_info(2, 7).is_bottom_row
    assert derive_key_info(3, 0).is_thumb
    assert not derive_key_info(0, 0).is_bottom_row


@pytest.mark.parametrize("row, column", [(-1, 0), (4, 0), (0, 12), (3, 6)])
def test_derive_key_info_out_of_range(row, column):
    with pytest.raises(ValueError):
        derive_key_info(row, column)


def test_parse_layout(qwerty):
    assert qwerty.geometry == 'ortho'
    assert qwerty.key_info('q').index == 1
    assert qwerty.key_info('a').row == 1
    assert qwerty.key_info(' ').finger == 4
    assert qwerty.slots[0] is None
    assert len(qwerty.rune_info) == 32


def test_geometry_header_prefix_and_override():
    text = QWERTY_TEXT.replace("ortho", "rowstagger")

    assert SplitLayout.from_string(text).geometry == 'rowstag'
    assert SplitLayout.from_string(text, geometry='colstag').geometry == 'colstag'


def test_special_tokens():
    text = """
~~ __ ## a b c   d e f g h i
~ ~ ~ ~ ~ ~   ~ ~ ~ ~ ~ ~
~ ~ ~ ~ ~ ~   ~ ~ ~ ~ ~ ~
~ ~ _   ~ ~ ~
"""
    layout = SplitLayout.from_string(text)

    assert layout.slots[:3] == ['~', '_', '#']
    assert layout.key_info(' ').index == 38
    assert layout.geometry == 'ortho'


@pytest.mark.parametrize("text", [
    "q w e r t y u i o p a s\nd f g h j k l z x c v b\nn m ~ ~ ~ ~ ~ ~ ~ ~ ~ ~",
    "q w e r t y u i o p a\nd f g h j k l z x c v b\nn m ~ ~ ~ ~ ~ ~ ~ ~ ~ ~\n~ ~ ~ ~ ~ ~",
    "q w e r t y u i o p a s\nd f g h j k l z x c v b\nn m ~ ~ ~ ~ ~ ~ ~ ~ ~ ~\n~ ~ ~ ~ ~",
    "qq w e r t y u i o p a s\nd f g h j k l z x c v b\nn m ~ ~ ~ ~ ~ ~ ~ ~ ~ ~\n~ ~ ~ ~ ~ ~",
    "q w e r t y u i o p a s\nd f g h j k l z x c v b\nn m q ~ ~ ~ ~ ~ ~ ~ ~ ~\n~ ~ ~ ~ ~ ~",
    "hexagonal\nq w e r t y u i o p a s\nd f g h j k l z x c v b\nn m ~ ~ ~ ~ ~ ~ ~ ~ ~ ~\n~ ~ ~ ~ ~ ~",
])
def test_malformed_layouts(text):
    with pytest.raises(FormatError):
        SplitLayout.from_string(text)


def test_from_rows():
    rows = [['q'] + [None] * 11, [None] * 12, [None] * 12, [' '] + [None] * 5]
    layout = SplitLayout.from_rows("rows", rows, geometry='colstag')

    assert layout.key_info('q').index == 0
    assert layout.key_info(' ').index == 36
    with pytest.raises(FormatError):
        SplitLayout.from_rows("rows", rows[:3])


def test_save_load_round_trip(tmp_path, qwerty):
    path = tmp_path / "qwerty.klf"
    qwerty.save_to_file(str(path))

    loaded = SplitLayout.load_from_file(str(path))

    assert loaded.to_mapping() == qwerty.to_mapping()
    assert loaded.geometry == qwerty.geometry
    assert loaded.name == "qwerty.klf"


def test_round_trip_preserves_special_characters(tmp_path):
    layout = make_layout({'~': (0, 0), '_': (0, 1), '#': (0, 2), ' ': (3, 4)}, geometry='rowstag')
    path = tmp_path / "special.klf"
    layout.save_to_file(str(path))

    loaded = SplitLayout.load_from_file(str(path))

    assert loaded.to_mapping() == layout.to_mapping()
    assert loaded.geometry == 'rowstag'


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        SplitLayout.load_from_file(str(tmp_path / "missing.klf"))


def test_bundled_layouts_load(layouts_dir):
    for path in layouts_dir.glob("*.klf"):
        layout = SplitLayout.load_from_file(str(path))
        assert len(layout.slots) == KEY_COUNT
        assert ' ' in layout.rune_info


def test_clone_is_independent(qwerty):
    copy = qwerty.clone()
    copy.swap('a', 'e')
    copy.pin_row(0)

    assert qwerty.key_info('a').row == 1
    assert copy.key_info('a').row == 0
    assert not any(qwerty.pinned)
    assert copy.key_distance is qwerty.key_distance


def test_swap_updates_slots_and_key_info(qwerty):
    a_index = qwerty.key_info('a').index
    e_index = qwerty.key_info('e').index

    qwerty.swap('a', 'e')

    assert qwerty.slots[a_index] == 'e'
    assert qwerty.slots[e_index] == 'a'
    assert qwerty.key_info('a').index == e_index
    assert qwerty.key_info('e').finger == 0


def test_distance_between_chars(qwerty):
    assert qwerty.distance('q', 'a') == 1.0
    assert qwerty.distance('q', 'p') == 0.0


def test_duplicate_character_rejected():
    slots = ['a', 'a'] + [None] * (KEY_COUNT - 2)
    with pytest.raises(FormatError):
        SplitLayout("dup", slots)


def test_unknown_geometry_rejected():
    with pytest.raises(ConfigurationError):
        SplitLayout("bad", [None] * KEY_COUNT, geometry='hexagonal')


class TestPins:

    def test_pin_row(self, qwerty):
        qwerty.pin_row(0)

        assert qwerty.is_pinned('q')
        assert not qwerty.is_pinned('a')
        with pytest.raises(ConfigurationError):
            qwerty.pin_row(4)

    def test_pin_chars_and_free_only(self, qwerty):
        qwerty.pin_chars("qa")
        assert qwerty.is_pinned('q') and qwerty.is_pinned('a')

        qwerty.free_only("et")
        assert not qwerty.is_pinned('e')
        assert qwerty.is_pinned('q') and qwerty.is_pinned('z')

        with pytest.raises(ConfigurationError):
            qwerty.pin_chars("@")

    def test_pin_unassigned(self, qwerty):
        qwerty.pin_unassigned()

        assert qwerty.is_pinned(' ')
        assert qwerty.pinned[0]
        assert not qwerty.is_pinned('q')

    def test_load_pins(self, qwerty, layouts_dir):
        qwerty.load_pins(str(layouts_dir / "pins-top-row.txt"))

        assert qwerty.is_pinned('t')
        assert qwerty.is_pinned(' ')
        assert not qwerty.is_pinned('g')

    def test_load_pins_rejects_bad_tokens(self, qwerty, tmp_path):
        path = tmp_path / "pins.txt"
        path.write_text("* * * * * *   * * * * * *\n"
                        ". . . . . .   . . . . . .\n"
                        ". . . . . .   . . . . . ?\n"
                        "* * *   * * *\n", encoding='utf-8')

        with pytest.raises(FormatError):
            qwerty.load_pins(str(path))
