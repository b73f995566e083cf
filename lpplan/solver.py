"""
Solver adapter: hand a frozen model to HiGHS through ``scipy.optimize.milp``.

The adapter owns the translation from the model's stable column/row
enumeration to the matrix form the engine expects:

    minimize    c @ x
    subject to  row_lb <= A @ x <= row_ub
                lb <= x <= ub, x[j] integer where integrality[j] == 1

Maximisation is handled by negating the cost vector, and objective constants
(which the engine never sees) are added back to the reported value. Any status
other than Optimal is returned as a normal Result with no variable values.
"""

import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional

import numpy as np
from scipy import sparse
from scipy.optimize import milp, LinearConstraint, Bounds

from lpplan.errors import DataError, PlanningError, SolveStatusError
from lpplan.model import Sense

logger = logging.getLogger(__name__)


class Status(Enum):
    OPTIMAL = "Optimal"
    INFEASIBLE = "Infeasible"
    UNBOUNDED = "Unbounded"
    TIMEOUT = "Timeout"
    ERROR = "Error"


# scipy.optimize.milp status codes
_MILP_STATUS = {
    0: Status.OPTIMAL,
    1: Status.TIMEOUT,
    2: Status.INFEASIBLE,
    3: Status.UNBOUNDED,
    4: Status.ERROR,
}


@dataclass(frozen=True)
class SolverOptions:
    """Settings passed to HiGHS; fixed before the model is submitted."""

    time_limit: Optional[float] = None
    mip_rel_gap: Optional[float] = None
    presolve: bool = True
    disp: bool = False

    @classmethod
    def from_config(cls, config):
        """Read the optional ``solver`` section of a data file."""
        section = config.get("solver", {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise DataError(f"Unknown solver settings: {', '.join(unknown)}")
        return cls(**section)

    def as_milp_options(self):
        options = {'disp': self.disp, 'presolve': self.presolve}
        if self.time_limit is not None:
            options['time_limit'] = self.time_limit
        if self.mip_rel_gap is not None:
            options['mip_rel_gap'] = self.mip_rel_gap
        return options


@dataclass
class Result:
    """Terminal outcome of one solve."""

    model: object = field(repr=False)
    status: Status
    objective_value: Optional[float] = None
    values: dict = field(default_factory=dict, repr=False)
    message: str = ""

    @property
    def ok(self):
        return self.status is Status.OPTIMAL

    def raise_for_status(self):
        if not self.ok:
            raise SolveStatusError(self.status, self.message)
        return self

    def value(self, name, *index):
        """Value of one cell, e.g. ``result.value("W", "Boston", 3)``."""
        self.raise_for_status()
        if len(index) == 1 and isinstance(index[0], tuple):
            index = index[0]
        return self.values[(name, tuple(index))]

    def evaluate(self, expression):
        self.raise_for_status()
        return expression.evaluate(self.values)


@dataclass(frozen=True)
class MatrixForm:
    """Model in the matrix form expected by ``milp``."""

    columns: list
    c: np.ndarray
    integrality: np.ndarray
    lb: np.ndarray
    ub: np.ndarray
    A: sparse.csr_matrix
    row_lb: np.ndarray
    row_ub: np.ndarray
    sign: float
    constant: float


def assemble(model):
    """
    Build the matrix form of a frozen (or draft) model.

    Columns follow ``model.columns()`` and rows follow ``model.rows``, so the
    same model always produces the same matrices.
    """
    columns = model.columns()
    position = {key: j for j, key in enumerate(columns)}
    num_vars = len(columns)

    # Objective function coefficients (we minimize, so negate for maximization)
    sign = -1.0 if model.objective.sense is Sense.MAXIMIZE else 1.0
    objective = model.objective.expression
    c = np.zeros(num_vars)
    for key, coef in objective.terms.items():
        c[position[key]] += sign * coef

    # Integrality and bounds, cell by cell
    integrality = np.zeros(num_vars)
    lb = np.zeros(num_vars)
    ub = np.zeros(num_vars)
    for j, (name, index) in enumerate(columns):
        variable = model.variables[name]
        integrality[j] = 1 if variable.domain.integral else 0
        lb[j], ub[j] = variable.bounds_of(model, index)

    # Constraint matrix, one row per concrete constraint
    rows = model.rows
    data, row_idx, col_idx = [], [], []
    for i, row in enumerate(rows):
        for key, coef in row.terms:
            row_idx.append(i)
            col_idx.append(position[key])
            data.append(coef)
    A = sparse.csr_matrix((data, (row_idx, col_idx)), shape=(len(rows), num_vars))
    row_lb = np.array([row.lower for row in rows], dtype=float)
    row_ub = np.array([row.upper for row in rows], dtype=float)

    return MatrixForm(columns, c, integrality, lb, ub, A, row_lb, row_ub, sign, objective.constant)


class HighsSolver:
    """Solve models with the HiGHS MILP solver shipped with SciPy."""

    name = "HiGHS"

    def __init__(self, options=None):
        self.options = options or SolverOptions()

    def solve(self, model):
        model.submit()
        try:
            problem = assemble(model)
        except PlanningError:
            model.finish(False)
            raise
        num_int = int(problem.integrality.sum())
        logger.info(
            "Solving %s with %s: %d variables (%d integer), %d constraints",
            model.name, self.name, len(problem.columns), num_int, problem.A.shape[0],
        )

        constraints = None
        if problem.A.shape[0]:
            constraints = LinearConstraint(problem.A, problem.row_lb, problem.row_ub)

        try:
            res = milp(
                c=problem.c,
                constraints=constraints,
                bounds=Bounds(lb=problem.lb, ub=problem.ub),
                integrality=problem.integrality,
                options=self.options.as_milp_options(),
            )
        except ValueError as exc:
            logger.error("%s rejected model %s: %s", self.name, model.name, exc)
            model.finish(False)
            return Result(model, Status.ERROR, message=str(exc))

        status = _MILP_STATUS.get(res.status, Status.ERROR)
        if status is Status.OPTIMAL and res.x is None:
            status = Status.ERROR

        if status is not Status.OPTIMAL:
            logger.warning("Model %s finished with status %s: %s", model.name, status.value, res.message)
            model.finish(False)
            return Result(model, status, message=res.message)

        values = {key: float(x) for key, x in zip(problem.columns, res.x)}
        objective_value = problem.sign * res.fun + problem.constant
        logger.info("Model %s solved, objective %.6g", model.name, objective_value)
        model.finish(True)
        return Result(model, status, objective_value, values, res.message)


def solve(model, options=None):
    """Submit ``model`` once and return its Result."""
    return HighsSolver(options).solve(model)
