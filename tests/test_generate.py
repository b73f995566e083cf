import itertools
import math

import pytest

from lpplan.errors import (
    MalformedConstraintError, PartitionError, UnknownVariableError,
)
from lpplan.expr import LinearExpression
from lpplan.generate import Partition, expand_family, family_domain, generate
from lpplan.model import Model

STORES = ["a", "b", "c"]
PERIODS = [1, 2, 3]


@pytest.fixture
def model():
    m = Model("toy")
    m.declare_set("S", STORES)
    m.declare_set("T", PERIODS)
    m.declare_parameter("Limit", "S", {"a": 5, "b": 6, "c": 7})
    m.declare_variable("x", ("S", "T"))
    return m


def _first(m, s, t):
    return t == m.T.first()


def _later(m, s, t):
    return t != m.T.first()


def test_one_row_per_domain_tuple(model):
    family = model.add_constraint_family("cap", ("S", "T"), lambda m, s, t: m.x[s, t] <= m.Limit[s])
    rows = expand_family(model, family)

    assert len(rows) == len(STORES) * len(PERIODS)
    assert [row.index for row in rows] == list(itertools.product(STORES, PERIODS))
    assert len({row.name for row in rows}) == len(rows)
    assert rows[0].name == "cap[a,1]"
    assert rows[0].terms == ((("x", ("a", 1)), 1.0),)
    assert rows[0].lower == -math.inf and rows[0].upper == 5.0


def test_where_guard_filters_domain(model):
    family = model.add_constraint_family(
        "later", ("S", "T"), lambda m, s, t: m.x[s, t] >= 1, where=lambda m, s, t: t > 1,
    )
    rows = expand_family(model, family)

    assert len(rows) == len(family_domain(model, family)) == 6
    assert all(row.index[1] > 1 for row in rows)


def test_partition_replaces_general_case_at_boundary(model):
    model.add_constraint_family("flow", ("S", "T"), Partition(
        (_first, lambda m, s, t: m.x[s, t] == 1),
        (_later, lambda m, s, t: m.x[s, t] - m.x[s, m.T.prev(t)] == 0),
    ))
    rows = generate(model)

    assert len(rows) == 9
    for row in rows:
        if row.index[1] == 1:
            assert len(row.terms) == 1 and row.lower == row.upper == 1.0
        else:
            assert len(row.terms) == 2 and row.lower == row.upper == 0.0


def test_partition_gap_is_an_error(model):
    model.add_constraint_family("flow", ("S", "T"), Partition(
        (_first, lambda m, s, t: m.x[s, t] == 1),
    ))

    with pytest.raises(PartitionError) as excinfo:
        generate(model)
    assert excinfo.value.matches == 0
    assert excinfo.value.index == ("a", 2)


def test_partition_overlap_is_an_error(model):
    model.add_constraint_family("flow", ("S", "T"), Partition(
        (lambda m, s, t: True, lambda m, s, t: m.x[s, t] == 1),
        (lambda m, s, t: t > 0, lambda m, s, t: m.x[s, t] == 2),
    ))
    model.set_objective("minimize", 0)

    with pytest.raises(PartitionError) as excinfo:
        model.freeze()
    assert excinfo.value.matches == 2


def test_generation_is_idempotent(model):
    model.add_constraint_family("cap", ("S", "T"), lambda m, s, t: m.x[s, t] <= m.Limit[s])
    model.add_constraint_family("total", "T", lambda m, t: sum(m.x[s, t] for s in m.S) >= 2)

    assert generate(model) == generate(model)
    assert model.rows == model.rows


def test_families_expand_in_declaration_order(model):
    model.add_constraint_family("second", "T", lambda m, t: m.x["a", t] >= 0)
    model.add_constraint_family("first", "S", lambda m, s: m.x[s, 1] >= 0)

    families = [row.family for row in generate(model)]
    assert families == ["second"] * 3 + ["first"] * 3


def test_single_named_constraint(model):
    model.add_constraint("a_before_b", lambda m: m.x["a", 1] <= m.x["b", 1])
    rows = generate(model)

    assert len(rows) == 1
    assert rows[0].name == "a_before_b"
    assert rows[0].index == ()


def test_rule_may_return_a_triple(model):
    model.add_constraint_family("cap", "S", lambda m, s: (m.x[s, 1], "<=", 3))

    assert [row.upper for row in generate(model)] == [3.0, 3.0, 3.0]


@pytest.mark.parametrize("rule", [
    lambda m, s: 5 <= 6,
    lambda m, s: (1, "<>", 2),
    lambda m, s: None,
])
def test_malformed_rules(model, rule):
    model.add_constraint_family("bad", "S", rule)

    with pytest.raises(MalformedConstraintError):
        generate(model)


def test_rule_with_undeclared_variable(model):
    model.add_constraint_family("ghost", "S", lambda m, s: m.y[s] <= 1)
    model.set_objective("minimize", 0)

    with pytest.raises(UnknownVariableError):
        model.freeze()


def test_expression_with_foreign_cell(model):
    model.add_constraint_family("ghost", "S", lambda m, s: LinearExpression({("y", (s,)): 1.0}) <= 1)

    with pytest.raises(UnknownVariableError):
        generate(model)


def test_partition_needs_cases():
    with pytest.raises(ValueError):
        Partition()
