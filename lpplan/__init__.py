"""
lpplan: multi-period allocation models on a small declarative LP/MIP layer.

Models are declared with index sets, parameters, variables and constraint
families, expanded into concrete rows, solved once with HiGHS and reported
from the same expressions the objective was built from.
"""

from lpplan.errors import (
    DataError, DeclarationError, DuplicateNameError, DuplicateSetError,
    MalformedConstraintError, MissingDataError, ModelStateError,
    OutOfRangeError, PartitionError, PlanningError, ReportingError,
    SolveStatusError, UnknownIndexError, UnknownSetError, UnknownVariableError,
)
from lpplan.expr import LinearExpression, Relation, quicksum
from lpplan.generate import ConstraintRow, Partition, expand_family, family_domain, generate
from lpplan.model import Domain, IndexSet, Model, ModelState, Sense
from lpplan.solver import HighsSolver, Result, SolverOptions, Status, solve

__version__ = "0.1.0"
