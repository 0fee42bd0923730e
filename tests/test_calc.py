from fractions import Fraction

import pytest

from distshrink.fold.calc import evaluate, fold_calcs, fold_stylesheet, format_number


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("1px + 2px", "3px"),
        ("10px / 4", "2.5px"),
        ("0.1px + 0.2px", ".3px"),
        ("1px - 1px", "0"),
        ("-0.5em * 2", "-1em"),
        ("(1px + 2px) * 3", "9px"),
        ("2 * (3px - 1px)", "4px"),
        ("10% / 4", "2.5%"),
        ("1px + +2px", "3px"),
        ("3 / 4", ".75"),
    ],
)
def test_evaluate_folds(expr, expected):
    assert evaluate(expr) == expected


@pytest.mark.parametrize(
    "expr",
    [
        "1px / 3",
        "1px + 1em",
        "2px * 3px",
        "10px / 2px",
        "10px / 0",
        "var(--gap) + 1px",
        "100% - env(safe-area-inset-top)",
        "min(1px, 2px) + 1px",
        "1px +",
        "(1px + 2px",
        "1px foo",
    ],
)
def test_evaluate_abstains(expr):
    assert evaluate(expr) is None


def test_format_number():
    assert format_number(Fraction(1, 8)) == ".125"
    assert format_number(Fraction(-5, 2)) == "-2.5"
    assert format_number(Fraction(3)) == "3"
    assert format_number(Fraction(0)) == "0"
    assert format_number(Fraction(1, 3)) is None


def test_fold_calcs_replaces_in_place():
    assert fold_calcs("a{width:calc(1px + 2px)}") == "a{width:3px}"
    assert fold_calcs("a{width:calc(1px / 3)}") == "a{width:calc(1px / 3)}"


def test_fold_calcs_nested_inside_abstaining_calc():
    css = "a{width:calc(var(--a) + calc(1px + 2px))}"
    assert fold_calcs(css) == "a{width:calc(var(--a) + 3px)}"


def test_fold_calcs_unbalanced_is_left_alone():
    assert fold_calcs("a{width:calc(1px + 2px") == "a{width:calc(1px + 2px"


def test_fold_calcs_ignores_prefixed_functions():
    assert fold_calcs("a{width:-webkit-calc(1px + 2px)}") == "a{width:-webkit-calc(1px + 2px)}"


def test_fold_stylesheet_skips_strings():
    css = 'a:after{content:"calc(1px + 2px)";width:calc(1px + 2px)}'
    assert fold_stylesheet(css) == 'a:after{content:"calc(1px + 2px)";width:3px}'
