import pytest

from distshrink.mangle.css import (
    escape_ident,
    iter_attribute_selectors,
    iter_custom_properties,
    iter_selector_names,
    rewrite_stylesheet,
    unescape_ident,
)


@pytest.mark.parametrize(
    "raw, canonical",
    [
        (r"a\:b", "a:b"),
        (r"\31 23", "123"),
        (r"sm\:p-4", "sm:p-4"),
        ("plain", "plain"),
    ],
)
def test_unescape_ident(raw, canonical):
    assert unescape_ident(raw) == canonical


@pytest.mark.parametrize(
    "value, escaped",
    [
        ("a:b", r"a\:b"),
        ("1a", "\\31 a"),
        ("-1", "-\\31 "),
        ("-", r"\-"),
        ("w-1/2", r"w-1\/2"),
        ("card", "card"),
    ],
)
def test_escape_ident(value, escaped):
    assert escape_ident(value) == escaped


def test_selector_names():
    css = r".btn:hover,.a\:b{width:0.5em}#main{color:#fff;background:url(img/x.png)}"
    assert list(iter_selector_names(css, ".")) == [("btn", "btn"), (r"a\:b", "a:b")]
    assert list(iter_selector_names(css, "#")) == [("main", "main")]


def test_selector_names_skip_comments_and_strings():
    css = '/* .old */.new:after{content:".quoted"}'
    assert list(iter_selector_names(css, ".")) == [("new", "new")]


def test_custom_properties_outside_strings():
    css = ':root{--brand-color:red}a{color:var(--brand-color);content:"--nope"}'
    assert list(iter_custom_properties(css)) == ["--brand-color", "--brand-color"]


def test_attribute_selectors():
    selectors = list(iter_attribute_selectors('[class~="btn"],[class^=btn],[id="x" i]'))
    assert [(s.attribute, s.value, s.is_exact) for s in selectors] == [
        ("class", "btn", True),
        ("class", "btn", False),
        ("id", "x", False),
    ]


def test_rewrite_classes_keeps_longer_names():
    css = ".btn{color:red}.btn-primary{color:blue}"
    assert rewrite_stylesheet(css, {"btn": "a"}, {}, {}) == ".a{color:red}.btn-primary{color:blue}"


def test_rewrite_escaped_class():
    assert rewrite_stylesheet(r".a\:b{color:red}", {"a:b": "c"}, {}, {}) == ".c{color:red}"


def test_rewrite_ids_and_fragments():
    css = "#main .x{fill:url(#grad)}#fff{}"
    renamed = rewrite_stylesheet(css, {}, {"main": "b", "grad": "c"}, {})
    assert renamed == "#b .x{fill:url(#c)}#fff{}"


def test_rewrite_custom_properties():
    css = ":root{--brand-color:red}a{color:var(--brand-color)}"
    renamed = rewrite_stylesheet(css, {}, {}, {"--brand-color": "--a"})
    assert renamed == ":root{--a:red}a{color:var(--a)}"


def test_rewrite_attribute_selectors_only_when_exact():
    css = '[class~="btn"]{color:red}[class^="btn"]{color:blue}'
    renamed = rewrite_stylesheet(css, {"btn": "a"}, {}, {})
    assert renamed == '[class~="a"]{color:red}[class^="btn"]{color:blue}'


def test_rewrite_leaves_comments_alone():
    assert rewrite_stylesheet("/* .btn */.btn{}", {"btn": "a"}, {}, {}) == "/* .btn */.a{}"
