from distshrink.mangle.lists import (
    collect_class_tokens,
    is_class_list,
    iter_dotted_names,
    iter_literal_tokens,
    iter_selector_ids,
    replace_class_literal,
    replace_selector_ids,
    replace_token_list,
)


def test_is_class_list():
    assert is_class_list("btn active", {"btn"})
    assert not is_class_list("hello world", {"btn"})
    assert not is_class_list("btn {", {"btn"})
    assert not is_class_list("", {"btn"})


def test_collect_class_tokens_splits_on_escapes():
    assert collect_class_tokens(r"btn\nactive", {"btn", "active"}) == ["btn", "active"]


def test_replace_class_literal_keeps_separators():
    assert replace_class_literal("btn  active", {"btn": "a"}) == "a  active"


def test_replace_class_literal_rejects_prose():
    assert replace_class_literal("see {btn}", {"btn": "a"}) == "see {btn}"


def test_replace_token_list():
    assert replace_token_list(" btn\tactive ", {"btn": "a", "active": "b"}) == " a\tb "


def test_literal_tokens():
    assert list(iter_literal_tokens("card is-open {")) == ["card", "is-open"]


def test_dotted_names():
    assert list(iter_dotted_names(".card > .title, 0.5")) == ["card", "title"]


def test_selector_ids():
    known = {"main", "fff"}
    assert list(iter_selector_ids("main", known)) == ["main"]
    assert list(iter_selector_ids("#main > .x", known)) == ["main"]
    assert list(iter_selector_ids('[id="main"]', known)) == ["main"]
    assert list(iter_selector_ids("#fff", known)) == []


def test_replace_selector_ids():
    ids = {"main": "a", "fff": "b"}
    assert replace_selector_ids("main", ids) == "a"
    assert replace_selector_ids("#main .x", ids) == "#a .x"
    assert replace_selector_ids('[id="main"]', ids) == '[id="a"]'
    assert replace_selector_ids("#fff", ids) == "#fff"


def test_replace_token_list_decodes_character_references():
    assert replace_token_list("card&#45;x wide", {"card-x": "a"}, unescape=True) == "a wide"
    assert replace_token_list("card&#45;x wide", {"card-x": "a"}) == "card&#45;x wide"
