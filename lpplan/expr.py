"""
Linear expressions and relations over variable cells.

A variable cell is addressed by a key ``(variable name, index tuple)``. An
expression keeps a ``{key: coefficient}`` map plus a constant, and the
comparison operators turn two expressions into a Relation:

    m.W[f, t] - m.W[f, t - 1] + m.F[f, t] == 0
"""

import math
import numbers

SENSES = ("<=", ">=", "==")


def format_key(name, index):
    """Return the display label of a cell, e.g. ``W[Boston,3]``."""
    if not index:
        return name
    return f"{name}[{','.join(str(k) for k in index)}]"


def _number(value):
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError(f"Expected a number, got {type(value).__name__}: {value!r}")
    return float(value)


class LinearExpression:
    """Weighted sum of variable cells plus a constant."""

    __slots__ = ("terms", "constant")

    # == builds a Relation, so expressions cannot be hashed
    __hash__ = None

    def __init__(self, terms=None, constant=0.0):
        self.terms = dict(terms) if terms else {}
        self.constant = float(constant)

    @classmethod
    def coerce(cls, value):
        if isinstance(value, LinearExpression):
            return value
        return cls(constant=_number(value))

    def copy(self):
        return LinearExpression(self.terms, self.constant)

    def is_constant(self):
        return all(coef == 0 for coef in self.terms.values())

    def variables(self):
        """Keys of the cells with a non-zero coefficient, in insertion order."""
        return [key for key, coef in self.terms.items() if coef != 0]

    def evaluate(self, values):
        """Value of the expression for a ``{key: value}`` assignment."""
        total = self.constant
        for key, coef in self.terms.items():
            if coef != 0:
                total += coef * values[key]
        return total

    def _accumulate(self, other, scale=1.0):
        if isinstance(other, LinearExpression):
            for key, coef in other.terms.items():
                self.terms[key] = self.terms.get(key, 0.0) + scale * coef
            self.constant += scale * other.constant
        else:
            self.constant += scale * _number(other)
        return self

    def _scaled(self, factor):
        return LinearExpression(
            {key: factor * coef for key, coef in self.terms.items()},
            factor * self.constant,
        )

    def __add__(self, other):
        return self.copy()._accumulate(other)

    __radd__ = __add__

    def __sub__(self, other):
        return self.copy()._accumulate(other, -1.0)

    def __rsub__(self, other):
        return self._scaled(-1.0)._accumulate(other)

    def __neg__(self):
        return self._scaled(-1.0)

    def __mul__(self, other):
        if isinstance(other, LinearExpression):
            if other.is_constant():
                return self._scaled(other.constant)
            if self.is_constant():
                return other._scaled(self.constant)
            raise TypeError("Product of two variable expressions is not linear")
        return self._scaled(_number(other))

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, LinearExpression):
            if not other.is_constant():
                raise TypeError("Division by a variable expression is not linear")
            other = other.constant
        return self._scaled(1.0 / _number(other))

    def __le__(self, other):
        return Relation(self, "<=", other)

    def __ge__(self, other):
        return Relation(self, ">=", other)

    def __eq__(self, other):
        return Relation(self, "==", other)

    def __ne__(self, other):
        raise TypeError("'!=' does not define a linear relation")

    def __repr__(self):
        parts = [
            f"{coef:g}*{format_key(*key)}"
            for key, coef in self.terms.items() if coef != 0
        ]
        if self.constant or not parts:
            parts.append(f"{self.constant:g}")
        return " + ".join(parts)


class Relation:
    """``lhs <sense> rhs`` with both sides linear."""

    __slots__ = ("lhs", "sense", "rhs")

    def __init__(self, lhs, sense, rhs):
        if sense not in SENSES:
            raise ValueError(f"Unknown relation sense {sense!r}, expected one of {SENSES}")
        self.lhs = LinearExpression.coerce(lhs)
        self.sense = sense
        self.rhs = LinearExpression.coerce(rhs)

    def __bool__(self):
        # Catches chained comparisons such as ``0 <= x <= 5``
        raise TypeError("A relation has no truth value; build one relation per constraint")

    def normalized(self):
        """
        Move everything to the left-hand side.

        Returns
        -------
        tuple
            ``(terms, lower, upper)`` with ``lower <= sum(terms) <= upper``.
        """
        body = self.lhs - self.rhs
        terms = {key: coef for key, coef in body.terms.items() if coef != 0}
        bound = -body.constant
        if self.sense == "<=":
            return terms, -math.inf, bound
        if self.sense == ">=":
            return terms, bound, math.inf
        return terms, bound, bound

    def is_satisfied(self, values, tolerance=1e-6):
        gap = self.lhs.evaluate(values) - self.rhs.evaluate(values)
        if self.sense == "<=":
            return gap <= tolerance
        if self.sense == ">=":
            return gap >= -tolerance
        return abs(gap) <= tolerance

    def __repr__(self):
        return f"{self.lhs!r} {self.sense} {self.rhs!r}"


def quicksum(items):
    """Sum expressions without copying the running total at every step."""
    total = LinearExpression()
    for item in items:
        total._accumulate(item)
    return total
