"""
Perturbation arithmetic for degenerate transportation plans.

An EpsilonValue is ``base + epsilon * ε`` where ε is an infinitesimal symbol.
Values are ordered lexicographically: first by ``base``, then by ``epsilon``.
Arithmetic works componentwise, so a cell carrying ``0 + ε`` stays basic
without changing any real-valued cost.
"""
import re
from dataclasses import dataclass
from numbers import Number

# numeric stand-in for ε, used only when a plain float is required (display/export)
EPSILON_SURROGATE = 1e-10

EPSILON_SYMBOLS = ("ε", "eps")

# a sign right after e/E belongs to the exponent, not to a new term
_TERM = re.compile(r"[+-]?(?:[^+\-eE]|[eE][+-]?)+")


@dataclass(frozen=True, order=True)
class EpsilonValue:
    base: float = 0.0
    epsilon: float = 0.0

    def __add__(self, other):
        other = toEpsilon(other)
        return EpsilonValue(self.base + other.base, self.epsilon + other.epsilon)

    __radd__ = __add__

    def __sub__(self, other):
        other = toEpsilon(other)
        return EpsilonValue(self.base - other.base, self.epsilon - other.epsilon)

    def __rsub__(self, other):
        return toEpsilon(other) - self

    def __neg__(self):
        return EpsilonValue(-self.base, -self.epsilon)

    def __mul__(self, factor):
        if not isinstance(factor, Number):
            return NotImplemented
        return EpsilonValue(self.base * factor, self.epsilon * factor)

    __rmul__ = __mul__

    def isZero(self):
        return self.base == 0 and self.epsilon == 0

    def clamp(self, tol=1e-9):
        """Snap components closer than tol to zero onto exact zero."""
        base = 0.0 if abs(self.base) <= tol else self.base
        epsilon = 0.0 if abs(self.epsilon) <= tol else self.epsilon
        return EpsilonValue(base, epsilon)

    def toFloat(self):
        return self.base + self.epsilon * EPSILON_SURROGATE

    def __str__(self):
        return formatEpsilonValue(self)


ZERO = EpsilonValue()
EPSILON = EpsilonValue(0.0, 1.0)


def toEpsilon(value):
    """Coerce a number, a perturbation string or an EpsilonValue to EpsilonValue."""
    if isinstance(value, EpsilonValue):
        return value
    if isinstance(value, str):
        return parseEpsilonValue(value)
    if value is None:
        return ZERO
    return EpsilonValue(float(value), 0.0)


def addE(a, b):
    return toEpsilon(a) + toEpsilon(b)


def subE(a, b):
    return toEpsilon(a) - toEpsilon(b)


def mulE(a, factor):
    return toEpsilon(a) * factor


def compareEpsilonValues(a, b):
    """Three-way comparison: -1 if a < b, 0 if equal, 1 if a > b."""
    a, b = toEpsilon(a), toEpsilon(b)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def parseEpsilonValue(text):
    """
    Parse textual forms such as ``"10 + ε"``, ``"5 - 2ε"``, ``"7"``, ``"-ε"``.

    Whitespace is ignored and ``,`` is accepted as a decimal separator.
    Text that cannot be parsed yields zero instead of raising.
    """
    if text is None:
        return ZERO
    compact = "".join(str(text).split()).replace(",", ".")
    for symbol in EPSILON_SYMBOLS[1:]:
        compact = compact.replace(symbol, EPSILON_SYMBOLS[0])
    if not compact:
        return ZERO

    terms = _TERM.findall(compact)
    if "".join(terms) != compact:
        return ZERO

    base = 0.0
    epsilon = 0.0
    try:
        for term in terms:
            if term.endswith(EPSILON_SYMBOLS[0]):
                coeff = term[:-1].rstrip("*")
                if coeff in ("", "+"):
                    epsilon += 1.0
                elif coeff == "-":
                    epsilon -= 1.0
                else:
                    epsilon += float(coeff)
            else:
                base += float(term)
    except ValueError:
        return ZERO
    return EpsilonValue(base, epsilon)


def _formatNumber(x):
    """Shortest text that reads back to the same float."""
    x = float(x)
    if x.is_integer():
        return str(int(x))
    return repr(x)


def formatEpsilonValue(value):
    """Render an EpsilonValue the way parseEpsilonValue reads it back."""
    value = toEpsilon(value)
    base, epsilon = value.base, value.epsilon
    if epsilon == 0:
        return _formatNumber(base)

    magnitude = abs(epsilon)
    coeff = "" if magnitude == 1 else _formatNumber(magnitude)
    if base == 0:
        sign = "-" if epsilon < 0 else ""
        return f"{sign}{coeff}ε"
    sign = "-" if epsilon < 0 else "+"
    return f"{_formatNumber(base)} {sign} {coeff}ε"
