"""
Model definition: registries for index sets, parameters, decision variables,
named expressions, constraint families and the objective.

A model moves through the states

    DRAFT -> FROZEN -> SUBMITTED -> SOLVED | FAILED

Declarations are only accepted while the model is a draft. Freezing expands
every constraint family once, so a broken rule fails at build time rather than
at the solver. Declared components are reachable as attributes, which keeps
constraint rules close to their algebraic form:

    m.add_constraint_family(
        "capacity", ("Facilities", "Weeks"),
        lambda m, f, t: m.W[f, t] <= m.Capacity[f] * m.Open[f],
    )
"""

import itertools
import logging
import math
import numbers
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from lpplan.errors import (
    DeclarationError, DuplicateNameError, DuplicateSetError, MissingDataError,
    ModelStateError, OutOfRangeError, UnknownIndexError, UnknownSetError,
    UnknownVariableError,
)
from lpplan.expr import LinearExpression, format_key, quicksum
from lpplan.generate import Partition, check_declared, generate

logger = logging.getLogger(__name__)


class Domain(Enum):
    BINARY = "Binary"
    NON_NEGATIVE_INTEGER = "NonNegativeInteger"
    NON_NEGATIVE_CONTINUOUS = "NonNegativeContinuous"

    @property
    def integral(self):
        return self is not Domain.NON_NEGATIVE_CONTINUOUS


class Sense(Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


class ModelState(Enum):
    DRAFT = "Draft"
    FROZEN = "Frozen"
    SUBMITTED = "Submitted"
    SOLVED = "Solved"
    FAILED = "Failed"


def _as_index(key):
    """Normalise ``m.X[a]`` / ``m.X[a, b]`` / ``m.X[()]`` keys to tuples."""
    return key if isinstance(key, tuple) else (key,)


class IndexSet:
    """Ordered, read-only collection of atomic keys."""

    def __init__(self, name, members):
        self.name = name
        self._members = tuple(members)
        self._position = {}
        for position, member in enumerate(self._members):
            if isinstance(member, bool) or not isinstance(member, (str, int)):
                raise DeclarationError(
                    f"Set '{name}' members must be str or int, got {member!r}"
                )
            if member in self._position:
                raise DuplicateSetError(f"Set '{name}' lists member {member!r} twice")
            self._position[member] = position

    @property
    def members(self):
        return self._members

    def __iter__(self):
        return iter(self._members)

    def __len__(self):
        return len(self._members)

    def __contains__(self, key):
        try:
            return key in self._position
        except TypeError:
            return False

    def _locate(self, key):
        if key not in self:
            raise UnknownIndexError(f"{key!r} is not a member of set '{self.name}'")
        return self._position[key]

    def first(self):
        if not self._members:
            raise UnknownIndexError(f"Set '{self.name}' is empty")
        return self._members[0]

    def last(self):
        if not self._members:
            raise UnknownIndexError(f"Set '{self.name}' is empty")
        return self._members[-1]

    def ord(self, key):
        """1-based position of ``key``."""
        return self._locate(key) + 1

    def prev(self, key):
        position = self._locate(key)
        if position == 0:
            raise UnknownIndexError(f"{key!r} is the first member of set '{self.name}'")
        return self._members[position - 1]

    def next(self, key):
        position = self._locate(key)
        if position == len(self._members) - 1:
            raise UnknownIndexError(f"{key!r} is the last member of set '{self.name}'")
        return self._members[position + 1]

    def __repr__(self):
        return f"IndexSet({self.name!r}, {list(self._members)!r})"


class _Indexed:
    """Shared index handling for parameters and variables."""

    def __init__(self, name, sets):
        self.name = name
        self.sets = tuple(sets)

    @property
    def arity(self):
        return len(self.sets)

    def keys(self):
        return list(itertools.product(*self.sets))

    def has(self, index):
        return len(index) == self.arity and all(
            key in index_set for key, index_set in zip(index, self.sets)
        )

    def _index(self, key):
        index = _as_index(key)
        if not self.has(index):
            sets = ", ".join(s.name for s in self.sets) or "no sets"
            raise UnknownIndexError(
                f"{format_key(self.name, index)} is outside the index sets of '{self.name}' ({sets})"
            )
        return index


class Parameter(_Indexed):
    """Immutable numeric table, complete over its index sets."""

    def __init__(self, name, sets, values):
        super().__init__(name, sets)
        self._values = MappingProxyType(dict(values))

    def __getitem__(self, key):
        return self._values[self._index(key)]

    @property
    def value(self):
        """Value of a scalar parameter."""
        return self[()]

    def items(self):
        return self._values.items()

    def __len__(self):
        return len(self._values)


class Variable(_Indexed):
    """Indexed decision variable; holds no value, only its domain and bounds."""

    def __init__(self, name, sets, domain, bounds=None):
        super().__init__(name, sets)
        self.domain = domain
        self._bounds = bounds

    def __getitem__(self, key):
        return LinearExpression({(self.name, self._index(key)): 1.0})

    def bounds_of(self, model, index):
        """``(lower, upper)`` for one cell, with the domain applied."""
        lower, upper = 0.0, math.inf
        if self.domain is Domain.BINARY:
            upper = 1.0
        declared = self._bounds(model, *index) if callable(self._bounds) else self._bounds
        if declared is not None:
            try:
                low, high = declared
                low = None if low is None else float(low)
                high = None if high is None else float(high)
            except (TypeError, ValueError) as exc:
                raise DeclarationError(
                    f"Bounds of {format_key(self.name, index)} must be a (lower, upper) pair, got {declared!r}"
                ) from exc
            if low is not None:
                lower = max(lower, low)
            if high is not None:
                upper = min(upper, high)
        if lower > upper:
            raise DeclarationError(
                f"Bounds of {format_key(self.name, index)} are empty: [{lower}, {upper}]"
            )
        return lower, upper


class ConstraintFamily:

    def __init__(self, name, sets, rule, where=None):
        self.name = name
        self.sets = tuple(sets)
        self.rule = rule
        self.where = where


class Objective:
    """Sense plus named additive components."""

    def __init__(self, sense, components):
        self.sense = sense
        self.components = MappingProxyType(dict(components))

    @property
    def expression(self):
        return quicksum(self.components.values())


def _lookup(values, index):
    if callable(values):
        return values(*index)
    if isinstance(values, Mapping):
        if index in values:
            return values[index]
        if len(index) == 1 and index[0] in values:
            return values[index[0]]
        node = values
        for part in index:
            if not isinstance(node, Mapping):
                raise KeyError(index)
            if part in node:
                node = node[part]
            elif str(part) in node:
                node = node[str(part)]
            else:
                raise KeyError(index)
        if isinstance(node, Mapping):
            raise KeyError(index)
        return node
    if not index:
        return values
    raise KeyError(index)


class Model:
    """Container and state machine for one planning model."""

    def __init__(self, name="model"):
        self.name = name
        self.state = ModelState.DRAFT
        self.objective = None
        self._sets = {}
        self._parameters = {}
        self._variables = {}
        self._expressions = {}
        self._families = {}
        self._rows = None

    # -------- Registries --------

    @property
    def sets(self):
        return MappingProxyType(self._sets)

    @property
    def parameters(self):
        return MappingProxyType(self._parameters)

    @property
    def variables(self):
        return MappingProxyType(self._variables)

    @property
    def expressions(self):
        return MappingProxyType(self._expressions)

    @property
    def families(self):
        return MappingProxyType(self._families)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        for registry in (self._sets, self._parameters, self._variables, self._expressions):
            if name in registry:
                return registry[name]
        raise UnknownVariableError(f"Model '{self.name}' declares nothing named '{name}'")

    def _check_draft(self, action):
        if self.state is not ModelState.DRAFT:
            raise ModelStateError(
                f"Cannot {action}: model '{self.name}' is {self.state.value}"
            )

    def _check_name(self, name):
        if not isinstance(name, str) or not name.isidentifier():
            raise DeclarationError(f"Component names must be identifiers, got {name!r}")
        if hasattr(type(self), name) or name in vars(self):
            raise DuplicateNameError(f"'{name}' is reserved by Model")
        for registry in (self._sets, self._parameters, self._variables,
                         self._expressions, self._families):
            if name in registry:
                raise DuplicateNameError(f"'{name}' is already declared in model '{self.name}'")

    def _resolve_sets(self, owner, indices):
        if isinstance(indices, str):
            indices = (indices,)
        resolved = []
        for set_name in indices:
            if set_name not in self._sets:
                raise UnknownSetError(f"'{owner}' is indexed by undeclared set '{set_name}'")
            resolved.append(self._sets[set_name])
        return resolved

    # -------- Declarations --------

    def declare_set(self, name, members):
        self._check_draft("declare a set")
        if name in self._sets:
            raise DuplicateSetError(f"Set '{name}' is already declared")
        self._check_name(name)
        index_set = IndexSet(name, members)
        self._sets[name] = index_set
        logger.debug("Declared set %s with %d members", name, len(index_set))
        return index_set

    def declare_parameter(self, name, indices, values, lower=None, upper=None):
        """
        Register a parameter and validate it against its index sets.

        Parameters
        ----------
        name : str
        indices : str or sequence of str
            Names of declared index sets; empty for a scalar.
        values : number, mapping or callable
            A mapping may be keyed by index tuples, by single keys or nested
            per index position (JSON style, string keys match int members).
            A callable is called as ``values(*index)``.
        lower, upper : float, optional
            Inclusive limits every value must respect.
        """
        self._check_draft("declare a parameter")
        self._check_name(name)
        sets = self._resolve_sets(name, indices)
        table, missing = {}, []
        for index in itertools.product(*sets):
            try:
                raw = _lookup(values, index)
            except (KeyError, IndexError):
                missing.append(format_key(name, index))
                continue
            if isinstance(raw, bool) or not isinstance(raw, numbers.Real) or math.isnan(raw):
                raise OutOfRangeError(f"{format_key(name, index)} = {raw!r} is not a number")
            if (lower is not None and raw < lower) or (upper is not None and raw > upper):
                raise OutOfRangeError(
                    f"{format_key(name, index)} = {raw} is outside [{lower}, {upper}]"
                )
            table[index] = float(raw)
        if missing:
            shown = ", ".join(missing[:5])
            more = f" and {len(missing) - 5} more" if len(missing) > 5 else ""
            raise MissingDataError(f"Parameter '{name}' has no value for {shown}{more}")
        parameter = Parameter(name, sets, table)
        self._parameters[name] = parameter
        return parameter

    def declare_variable(self, name, indices=(), domain=Domain.NON_NEGATIVE_CONTINUOUS, bounds=None):
        """``bounds`` is ``(lower, upper)`` or a callable ``bounds(model, *index)``."""
        self._check_draft("declare a variable")
        self._check_name(name)
        if not isinstance(domain, Domain):
            try:
                domain = Domain(domain)
            except ValueError:
                raise DeclarationError(f"Variable '{name}' has unknown domain {domain!r}") from None
        variable = Variable(name, self._resolve_sets(name, indices), domain, bounds)
        self._variables[name] = variable
        logger.debug("Declared variable %s (%s) with %d cells", name, domain.value, len(variable.keys()))
        return variable

    def declare_expression(self, name, expression):
        """Register a named expression; ``expression`` may be ``callable(model)``."""
        self._check_draft("declare an expression")
        self._check_name(name)
        if callable(expression):
            expression = expression(self)
        try:
            expression = LinearExpression.coerce(expression)
        except TypeError as exc:
            raise DeclarationError(f"Expression '{name}' is not linear: {exc}") from exc
        check_declared(self, expression, name)
        self._expressions[name] = expression
        return expression

    def add_constraint_family(self, name, index_sets, rule, where=None):
        """
        Declare a constraint family.

        ``rule(model, *index)`` returns a relation for one index tuple, or
        ``rule`` is a Partition of such rules. ``where(model, *index)``
        restricts the domain before the rule is applied.
        """
        self._check_draft("add a constraint family")
        self._check_name(name)
        if not (callable(rule) or isinstance(rule, Partition)):
            raise DeclarationError(f"Constraint family '{name}' needs a callable rule or a Partition")
        family = ConstraintFamily(name, self._resolve_sets(name, index_sets), rule, where)
        self._families[name] = family
        return family

    def add_constraint(self, name, rule):
        """A single named constraint, ``rule(model)`` returns its relation."""
        return self.add_constraint_family(name, (), rule)

    def set_objective(self, sense, expression):
        """``expression`` is one expression or a mapping of named components."""
        self._check_draft("set the objective")
        try:
            sense = Sense(sense) if not isinstance(sense, Sense) else sense
        except ValueError:
            raise DeclarationError(f"Unknown objective sense {sense!r}") from None
        if isinstance(expression, Mapping):
            components = dict(expression)
        else:
            components = {"objective": expression}
        for component, value in components.items():
            try:
                components[component] = LinearExpression.coerce(value)
            except TypeError as exc:
                raise DeclarationError(f"Objective component '{component}' is not linear: {exc}") from exc
            check_declared(self, components[component], component)
        self.objective = Objective(sense, components)
        return self.objective

    # -------- Lifecycle --------

    @property
    def rows(self):
        """Concrete constraints; regenerated on every access while a draft."""
        if self._rows is None:
            return generate(self)
        return self._rows

    def columns(self):
        """Stable enumeration of variable cells."""
        return [
            (variable.name, index)
            for variable in self._variables.values()
            for index in variable.keys()
        ]

    def freeze(self):
        self._check_draft("freeze")
        if self.objective is None:
            raise ModelStateError(f"Model '{self.name}' has no objective")
        for name, index in self.columns():
            self._variables[name].bounds_of(self, index)
        self._rows = generate(self)
        self.state = ModelState.FROZEN
        logger.info(
            "Froze model %s: %d variable cells, %d constraints",
            self.name, len(self.columns()), len(self._rows),
        )
        return self

    def submit(self):
        """Hand the model to a solver; a model is submitted at most once."""
        if self.state is ModelState.DRAFT:
            self.freeze()
        if self.state is not ModelState.FROZEN:
            raise ModelStateError(
                f"Model '{self.name}' is {self.state.value}; build a fresh model to solve again"
            )
        self.state = ModelState.SUBMITTED

    def finish(self, solved):
        if self.state is not ModelState.SUBMITTED:
            raise ModelStateError(f"Model '{self.name}' was not submitted")
        self.state = ModelState.SOLVED if solved else ModelState.FAILED

    def __repr__(self):
        return f"Model({self.name!r}, state={self.state.value})"
