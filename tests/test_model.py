import pytest

from lpplan.errors import (
    DeclarationError, DuplicateNameError, DuplicateSetError, MissingDataError,
    ModelStateError, OutOfRangeError, UnknownIndexError, UnknownSetError,
    UnknownVariableError,
)
from lpplan.expr import LinearExpression
from lpplan.model import Domain, Model, ModelState, Sense


@pytest.fixture
def model():
    m = Model("test")
    m.declare_set("P", ["a", "b"])
    m.declare_set("T", [1, 2])
    return m


def test_duplicate_set_name(model):
    with pytest.raises(DuplicateSetError):
        model.declare_set("T", [3, 4])


def test_duplicate_set_member():
    with pytest.raises(DuplicateSetError):
        Model().declare_set("S", [1, 1])


def test_set_members_must_be_atomic():
    with pytest.raises(DeclarationError):
        Model().declare_set("S", [(1, 2)])


def test_ordered_set_helpers():
    weeks = Model().declare_set("Weeks", [1, 2, 3])

    assert weeks.first() == 1
    assert weeks.last() == 3
    assert weeks.prev(2) == 1
    assert weeks.next(2) == 3
    assert weeks.ord(3) == 3
    assert 2 in weeks and 7 not in weeks
    with pytest.raises(UnknownIndexError):
        weeks.prev(1)
    with pytest.raises(UnknownIndexError):
        weeks.next(3)


def test_parameter_from_nested_json_keys(model):
    demand = model.declare_parameter(
        "Demand", ("P", "T"), {"a": {"1": 1, "2": 2}, "b": {"1": 3, "2": 4}}
    )

    assert demand["b", 2] == 4.0
    assert len(demand) == 4


def test_parameter_from_tuple_keys_and_callable(model):
    cost = model.declare_parameter("Cost", ("P", "T"), {(p, t): t for p in "ab" for t in (1, 2)})
    hours = model.declare_parameter("Hours", "P", lambda p: {"a": 1.5, "b": 2.5}[p])

    assert cost["a", 2] == 2.0
    assert hours["b"] == 2.5


def test_scalar_parameter(model):
    assert model.declare_parameter("Rate", (), 2.5).value == 2.5


def test_missing_parameter_value(model):
    with pytest.raises(MissingDataError, match=r"Demand\[b,2\]"):
        model.declare_parameter("Demand", ("P", "T"), {"a": {"1": 1, "2": 2}, "b": {"1": 3}})


def test_out_of_range_parameter_value(model):
    with pytest.raises(OutOfRangeError):
        model.declare_parameter("Demand", "T", {1: 5, 2: -1}, lower=0)


def test_non_numeric_parameter_value(model):
    with pytest.raises(OutOfRangeError):
        model.declare_parameter("Demand", "T", {1: 5, 2: "many"})


def test_unknown_set(model):
    with pytest.raises(UnknownSetError):
        model.declare_variable("x", ("P", "Nope"))
    with pytest.raises(UnknownSetError):
        model.declare_parameter("D", "Nope", {})


def test_variable_cells_check_membership(model):
    model.declare_variable("x", ("P", "T"))

    assert model.x["a", 1].terms == {("x", ("a", 1)): 1.0}
    with pytest.raises(UnknownIndexError):
        model.x["z", 1]
    with pytest.raises(UnknownIndexError):
        model.x["a"]


def test_undeclared_component(model):
    with pytest.raises(UnknownVariableError):
        model.nothing


def test_name_collisions(model):
    with pytest.raises(DuplicateNameError):
        model.declare_variable("T", "P")
    with pytest.raises(DuplicateNameError):
        model.declare_set("rows", [1])


def test_variable_bounds(model):
    flag = model.declare_variable("y", "T", Domain.BINARY)
    x = model.declare_variable("x", "T", bounds=lambda m, t: (None, 10 * t))
    z = model.declare_variable("z", (), "NonNegativeInteger", bounds=(2, 5))

    assert flag.bounds_of(model, (1,)) == (0.0, 1.0)
    assert x.bounds_of(model, (2,)) == (0.0, 20.0)
    assert z.domain is Domain.NON_NEGATIVE_INTEGER
    assert z.bounds_of(model, ()) == (2.0, 5.0)


def test_empty_bounds_rejected(model):
    x = model.declare_variable("x", (), bounds=(5, 1))

    with pytest.raises(DeclarationError):
        x.bounds_of(model, ())


def test_unknown_domain(model):
    with pytest.raises(DeclarationError):
        model.declare_variable("x", "T", "Reals")


def test_objective_components(model):
    model.declare_variable("x", "T")
    objective = model.set_objective("minimize", {"a": 2 * model.x[1], "b": model.x[2] + 1})

    assert objective.sense is Sense.MINIMIZE
    assert objective.expression.terms == {("x", (1,)): 2.0, ("x", (2,)): 1.0}
    assert objective.expression.constant == 1.0


def test_objective_validation(model):
    with pytest.raises(DeclarationError):
        model.set_objective("sideways", 0)
    with pytest.raises(UnknownVariableError):
        model.set_objective("minimize", LinearExpression({("ghost", ()): 1.0}))


def test_named_expression(model):
    model.declare_variable("x", "T")
    total = model.declare_expression("total", lambda m: m.x[1] + m.x[2])

    assert model.total is total
    assert model.expressions["total"].terms == {("x", (1,)): 1.0, ("x", (2,)): 1.0}


def test_freeze_requires_objective(model):
    with pytest.raises(ModelStateError):
        model.freeze()


def test_lifecycle(model):
    model.declare_variable("x", "T")
    model.set_objective("minimize", model.x[1])
    model.freeze()

    assert model.state is ModelState.FROZEN
    with pytest.raises(ModelStateError):
        model.declare_set("S", [1])

    model.submit()
    assert model.state is ModelState.SUBMITTED
    with pytest.raises(ModelStateError):
        model.submit()

    model.finish(True)
    assert model.state is ModelState.SOLVED
    with pytest.raises(ModelStateError):
        model.finish(False)


def test_columns_follow_declaration_order(model):
    model.declare_variable("x", ("P", "T"))
    model.declare_variable("y", "P")

    assert model.columns() == [
        ("x", ("a", 1)), ("x", ("a", 2)), ("x", ("b", 1)), ("x", ("b", 2)),
        ("y", ("a",)), ("y", ("b",)),
    ]


@pytest.mark.parametrize("bounds", [(5, 1), (1, 2, 3), ("low", 2), 7])
def test_freeze_rejects_bad_bounds(model, bounds):
    model.declare_variable("x", "T", bounds=bounds)
    model.set_objective("minimize", model.x[1])

    with pytest.raises(DeclarationError):
        model.freeze()
    assert model.state is ModelState.DRAFT


def test_missing_component_is_an_attribute_error(model):
    assert not hasattr(model, "nothing")
    assert getattr(model, "nothing", None) is None
    assert hasattr(model, "T")
