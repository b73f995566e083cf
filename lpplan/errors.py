"""
Exceptions raised while building, solving and reporting planning models.

Declaration and data problems are fatal and surface while the model is being
built. A solve that ends in anything but an optimal status is a normal return
value; SolveStatusError is only raised when the caller asks for it.
"""


class PlanningError(Exception):
    """Base class for every error raised by lpplan."""


# -------- Build time --------

class DeclarationError(PlanningError):
    """The model description is inconsistent."""


class DuplicateNameError(DeclarationError):
    """A component name is already taken."""


class DuplicateSetError(DuplicateNameError):
    """An index set (or one of its members) is declared twice."""


class UnknownSetError(DeclarationError):
    """A component is indexed by a set that was never declared."""


class UnknownVariableError(DeclarationError, AttributeError):
    """An expression refers to a variable or parameter that was never declared."""


class UnknownIndexError(DeclarationError):
    """A key is not a member of the index sets of the component."""


class MalformedConstraintError(DeclarationError):
    """A constraint rule did not return a relation."""


class PartitionError(DeclarationError):
    """An index tuple matched zero or several cases of a partitioned family."""

    def __init__(self, family, index, matches):
        self.family = family
        self.index = index
        self.matches = matches
        super().__init__(
            f"Constraint family '{family}' index {index!r} matched {matches} "
            f"cases, expected exactly 1"
        )


class ModelStateError(DeclarationError):
    """The operation is not allowed in the current model state."""


# -------- Data load time --------

class DataError(PlanningError):
    """Input data is missing or invalid."""


class MissingDataError(DataError):
    """A parameter has no value for some index tuple."""


class OutOfRangeError(DataError):
    """A parameter value violates its declared limits."""


# -------- Solve / report --------

class SolveStatusError(PlanningError):
    """The solver finished without an optimal solution."""

    def __init__(self, status, message=""):
        self.status = status
        self.message = message
        text = f"Solver finished with status {status.value}"
        if message:
            text += f": {message}"
        super().__init__(text)


class ReportingError(PlanningError):
    """A report was requested for a model that was not solved."""
