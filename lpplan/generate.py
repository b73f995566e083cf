"""
Constraint generation: expand each constraint family into concrete rows.

Every row is identified by its family name and index tuple. Families are
expanded in declaration order and index tuples in the order of the cartesian
product of their sets, so two expansions of the same model are identical and
row labels such as ``workforce_flow[Boston,3]`` are stable across runs.
"""

import itertools
import logging
from dataclasses import dataclass

from lpplan.errors import (
    MalformedConstraintError, PartitionError, UnknownIndexError,
    UnknownVariableError,
)
from lpplan.expr import Relation, format_key

logger = logging.getLogger(__name__)


class Partition:
    """
    Split a family's domain into cases with different bodies.

    Each case is ``(predicate, rule)``; both are called as ``f(model, *index)``.
    Every index tuple must satisfy exactly one predicate, so a boundary case
    (e.g. the first week) replaces the general case instead of adding to it.
    """

    def __init__(self, *cases):
        if not cases:
            raise ValueError("A partition needs at least one case")
        for case in cases:
            predicate, rule = case
            if not (callable(predicate) and callable(rule)):
                raise ValueError("Partition cases are (predicate, rule) pairs of callables")
        self.cases = tuple(cases)

    def select(self, model, family, index):
        matches = [rule for predicate, rule in self.cases if predicate(model, *index)]
        if len(matches) != 1:
            raise PartitionError(family, index, len(matches))
        return matches[0]


@dataclass(frozen=True)
class ConstraintRow:
    """One concrete constraint: ``lower <= sum(coef * cell) <= upper``."""

    family: str
    index: tuple
    terms: tuple
    lower: float
    upper: float

    @property
    def name(self):
        return format_key(self.family, self.index)


def check_declared(model, expression, label):
    """Every cell of ``expression`` must belong to a declared variable."""
    for name, index in expression.variables():
        variable = model.variables.get(name)
        if variable is None:
            raise UnknownVariableError(f"'{label}' refers to undeclared variable '{name}'")
        if not variable.has(index):
            raise UnknownIndexError(f"'{label}' refers to {format_key(name, index)} outside its sets")


def _as_relation(value, label):
    if isinstance(value, Relation):
        return value
    if isinstance(value, tuple) and len(value) == 3:
        try:
            return Relation(*value)
        except (TypeError, ValueError) as exc:
            raise MalformedConstraintError(f"Rule for '{label}' returned a bad triple: {exc}") from exc
    raise MalformedConstraintError(
        f"Rule for '{label}' returned {type(value).__name__}, expected a relation"
    )


def family_domain(model, family):
    """Index tuples a family is instantiated for, in product order."""
    domain = itertools.product(*family.sets)
    if family.where is None:
        return list(domain)
    return [index for index in domain if family.where(model, *index)]


def expand_family(model, family):
    rows = []
    for index in family_domain(model, family):
        label = format_key(family.name, index)
        rule = family.rule
        if isinstance(rule, Partition):
            rule = rule.select(model, family.name, index)
        relation = _as_relation(rule(model, *index), label)
        check_declared(model, relation.lhs, label)
        check_declared(model, relation.rhs, label)
        terms, lower, upper = relation.normalized()
        rows.append(ConstraintRow(family.name, index, tuple(terms.items()), lower, upper))
    return rows


def generate(model):
    """All concrete rows of ``model``, family by family in declaration order."""
    rows = []
    for family in model.families.values():
        family_rows = expand_family(model, family)
        logger.debug("Expanded %s into %d constraints", family.name, len(family_rows))
        rows.extend(family_rows)
    return rows
