import pytest

from orsteps.epsilon import (EPSILON, ZERO, EpsilonValue, addE, compareEpsilonValues,
                             formatEpsilonValue, mulE, parseEpsilonValue, subE, toEpsilon)


@pytest.mark.parametrize("text, expected", [
    ("10 + ε", EpsilonValue(10, 1)),
    ("5 - 2ε", EpsilonValue(5, -2)),
    ("7", EpsilonValue(7, 0)),
    ("ε", EpsilonValue(0, 1)),
    ("-ε", EpsilonValue(0, -1)),
    ("+3ε", EpsilonValue(0, 3)),
    ("2,5 + 0,5ε", EpsilonValue(2.5, 0.5)),
    ("4 + 2*eps", EpsilonValue(4, 2)),
    ("  12  ", EpsilonValue(12, 0)),
])
def test_parse_epsilon_value(text, expected):
    assert parseEpsilonValue(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "5 +", "+-5", "1..2", "1e", "2e+", None])
def test_unparseable_text_is_zero(text):
    assert parseEpsilonValue(text) == ZERO


@pytest.mark.parametrize("value, expected", [
    (EpsilonValue(10, 1), "10 + ε"),
    (EpsilonValue(5, -2), "5 - 2ε"),
    (EpsilonValue(0, 1), "ε"),
    (EpsilonValue(0, -3), "-3ε"),
    (EpsilonValue(2.5, 0), "2.5"),
    (EpsilonValue(-4, 0), "-4"),
])
def test_format_epsilon_value(value, expected):
    assert formatEpsilonValue(value) == expected
    assert str(value) == expected


@pytest.mark.parametrize("text", [
    "10 + ε", "5-2ε", "-ε", "3", "1.5 + 0.25ε", "-7 - ε",
    "1e-05", "1234567.5", "3 + 1e-05ε", "2.5e-1 + ε", "0.1 - 1E+20ε",
])
def test_format_reads_back(text):
    value = parseEpsilonValue(text)
    assert value != ZERO
    assert parseEpsilonValue(formatEpsilonValue(value)) == value


@pytest.mark.parametrize("text, expected", [
    ("1e-05", EpsilonValue(1e-05, 0)),
    ("2.5e-1 + ε", EpsilonValue(0.25, 1)),
    ("3 + 1e-05ε", EpsilonValue(3, 1e-05)),
    ("1E+3 - 2e2ε", EpsilonValue(1000, -200)),
])
def test_parse_exponent_notation(text, expected):
    assert parseEpsilonValue(text) == expected


def test_format_keeps_full_precision():
    assert formatEpsilonValue(EpsilonValue(1234567.5, 0)) == "1234567.5"
    assert formatEpsilonValue(EpsilonValue(1 / 3, 0)) == repr(1 / 3)
    assert formatEpsilonValue(EpsilonValue(3, 1e-05)) == "3 + 1e-05ε"
    value = EpsilonValue(0.1 + 0.2, 0)
    assert parseEpsilonValue(formatEpsilonValue(value)) == value


def test_add_and_sub_are_inverse():
    pairs = [
        (EpsilonValue(3, 1), EpsilonValue(4, -2)),
        (EpsilonValue(0, 0), EpsilonValue(0, 5)),
        (EpsilonValue(-6, 2), EpsilonValue(10, 0)),
    ]
    for a, b in pairs:
        assert subE(addE(a, b), b) == a


def test_arithmetic_is_componentwise():
    assert addE("2 + ε", 3) == EpsilonValue(5, 1)
    assert subE(EPSILON, EPSILON) == ZERO
    assert mulE(EpsilonValue(1, 1), 4) == EpsilonValue(4, 4)
    assert 2 * EpsilonValue(3, -1) == EpsilonValue(6, -2)
    assert -EpsilonValue(3, -1) == EpsilonValue(-3, 1)
    # sum() starts from int 0
    assert sum([EPSILON, EpsilonValue(2, 0), EPSILON]) == EpsilonValue(2, 2)


def test_comparison_is_lexicographic():
    assert compareEpsilonValues(EpsilonValue(1, 100), EpsilonValue(2, -100)) == -1
    assert compareEpsilonValues(EpsilonValue(1, 1), EpsilonValue(1, 0)) == 1
    assert compareEpsilonValues(EpsilonValue(1, 0), 1) == 0
    # base dominates even for huge epsilon coefficients
    assert EpsilonValue(0, 1e12) < EpsilonValue(1e-6, 0)

    values = [EpsilonValue(5, 0), EPSILON, EpsilonValue(5, -1), ZERO, EpsilonValue(-1, 3)]
    assert sorted(values) == [EpsilonValue(-1, 3), ZERO, EPSILON, EpsilonValue(5, -1), EpsilonValue(5, 0)]


def test_clamp_and_coercion():
    assert EpsilonValue(1e-12, -1e-13).clamp() == ZERO
    assert EpsilonValue(3, 1e-12).clamp() == EpsilonValue(3, 0)
    assert toEpsilon(None) == ZERO
    assert toEpsilon(4) == EpsilonValue(4, 0)
    assert toEpsilon("ε") == EPSILON
    assert EPSILON.toFloat() == pytest.approx(1e-10)
    assert ZERO.isZero() and not EPSILON.isZero()
