import pytest

from distshrink.errors import ParseError
from distshrink.utils.naming import (
    ALPHABET_LOWER_DIGITS,
    apply_if_smaller,
    byte_length,
    gated,
    short_name,
    sort_by_usage,
)


def test_short_name_sequence():
    assert short_name(0) == "a"
    assert short_name(25) == "z"
    assert short_name(26) == "A"
    assert short_name(51) == "Z"
    assert short_name(52) == "aa"
    assert short_name(53) == "ab"
    assert short_name(104) == "ba"


def test_short_name_lower_digits():
    assert short_name(35, ALPHABET_LOWER_DIGITS) == "9"
    assert short_name(36, ALPHABET_LOWER_DIGITS) == "aa"


def test_short_name_is_bijective():
    names = [short_name(i) for i in range(3000)]
    assert len(set(names)) == len(names)
    # shortest names come first
    assert [len(n) for n in names] == sorted(len(n) for n in names)


def test_short_name_rejects_negative_index():
    with pytest.raises(ValueError):
        short_name(-1)


def test_sort_by_usage_order():
    counts = {"a": 3, "bb": 1, "ccc": 1, "dd": 1}
    assert sort_by_usage(["bb", "a", "ccc", "dd"], counts) == ["a", "ccc", "bb", "dd"]


def test_byte_length_counts_utf8():
    assert byte_length("é") == 2


def test_apply_if_smaller():
    assert apply_if_smaller("abc", "ab") == "ab"
    assert apply_if_smaller("ab", "cd") == "ab"
    assert apply_if_smaller("ab", "é") == "ab"


def test_gated_keeps_original_on_parse_error():
    def broken(text):
        raise ParseError("test", "nope")

    assert gated("abc", broken) == "abc"
    assert gated("abc", lambda text: text[:1]) == "a"
    assert gated("abc", lambda text: text + "d") == "abc"
