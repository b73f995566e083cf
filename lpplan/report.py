"""
Result reporting.

Each function renders one independent piece of a report; the caller composes
them. Cost components are recomputed from the expressions the objective was
built from, so a disagreement with the engine's objective value shows up in
``reconcile``.
"""

import logging
from collections import namedtuple
from pathlib import Path

import pandas as pd

from lpplan.errors import ReportingError
from lpplan.expr import LinearExpression
from lpplan.model import Domain, ModelState

logger = logging.getLogger(__name__)

Reconciliation = namedtuple("Reconciliation", "recomputed reported difference consistent")


def _require_solved(result):
    if not result.ok or result.model.state is not ModelState.SOLVED:
        raise ReportingError(
            f"Cannot report on model '{result.model.name}': status is {result.status.value}"
        )


def _period_set(result, periods):
    if isinstance(periods, str):
        try:
            return result.model.sets[periods]
        except KeyError:
            raise ReportingError(f"Model has no set named '{periods}'") from None
    return periods


def status_line(result):
    line = f"Status: {result.status.value}"
    if not result.ok and result.message:
        line += f" ({result.message})"
    return line


def objective_line(result):
    _require_solved(result)
    return f"Objective value: {result.objective_value:.2f}"


def selection_lines(result, variable, template="{} is OPEN"):
    """One line per cell of a Binary variable whose value is 1."""
    _require_solved(result)
    declared = result.model.variables.get(variable)
    if declared is None or declared.domain is not Domain.BINARY:
        raise ReportingError(f"'{variable}' is not a Binary variable")
    lines = []
    for index in declared.keys():
        if round(result.value(variable, index)) == 1:
            lines.append(template.format(", ".join(str(k) for k in index)))
    return lines


def _column_value(result, source, index):
    if isinstance(source, str):
        return result.value(source, index)
    value = source(result.model, *index)
    if isinstance(value, LinearExpression):
        return result.evaluate(value)
    return float(value)


def quantity_frame(result, periods, columns, fixed=()):
    """
    Tracked quantities as a DataFrame, one row per period.

    Parameters
    ----------
    result : Result
    periods : str or IndexSet
        The period set; it is the last index of every tracked variable.
    columns : mapping
        Column header -> variable name, or a callable ``source(model, *fixed, t)``
        returning an expression or a number (for parameters and derived values).
    fixed : tuple
        Leading index keys, e.g. ``("Boston",)``.
    """
    _require_solved(result)
    period_set = _period_set(result, periods)
    records = [
        [_column_value(result, source, tuple(fixed) + (t,)) for source in columns.values()]
        for t in period_set
    ]
    index = pd.Index(list(period_set), name=period_set.name)
    return pd.DataFrame(records, index=index, columns=list(columns), dtype=float)


def _display(value):
    # values that round to zero print as 0.00, never -0.00
    return 0.0 if abs(value) < 0.005 else value


def quantity_table(result, periods, columns, fixed=(), title=None, width=12):
    """Fixed-width text rendering of ``quantity_frame``."""
    frame = quantity_frame(result, periods, columns, fixed)
    label = frame.index.name or "Period"
    widths = [max(width, len(header)) for header in frame.columns]
    header = f"{label:>8}" + "".join(f" {h:>{w}}" for h, w in zip(frame.columns, widths))

    lines = [title] if title else []
    lines.append(header)
    lines.append("-" * len(header))
    for period, row in frame.iterrows():
        cells = "".join(f" {_display(value):>{w}.2f}" for value, w in zip(row, widths))
        lines.append(f"{str(period):>8}{cells}")
    return "\n".join(lines)


def cost_breakdown(result):
    """Recompute every objective component from the solution values."""
    _require_solved(result)
    return {
        name: result.evaluate(expression)
        for name, expression in result.model.objective.components.items()
    }


def breakdown_lines(result):
    breakdown = cost_breakdown(result)
    lines = ["Cost Breakdown:", "-" * 40]
    for name, value in breakdown.items():
        lines.append(f"{name.replace('_', ' ').title() + ':':<26}${value:12.2f}")
    lines.append("-" * 40)
    lines.append(f"{'Total:':<26}${sum(breakdown.values()):12.2f}")
    return lines


def reconcile(result, tolerance=1e-6):
    """
    Compare recomputed components with the engine's objective value.

    ``tolerance`` is an absolute difference.
    """
    recomputed = sum(cost_breakdown(result).values())
    reported = result.objective_value
    difference = recomputed - reported
    consistent = abs(difference) <= tolerance
    if not consistent:
        logger.warning(
            "Recomputed objective %.9g differs from solver objective %.9g by %.3g",
            recomputed, reported, difference,
        )
    return Reconciliation(recomputed, reported, difference, consistent)


def export_tables(frames, directory):
    """Write ``{name: DataFrame}`` to ``directory/name.csv``; return the paths."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, frame in frames.items():
        path = directory / f"{name}.csv"
        frame.to_csv(path)
        paths.append(path)
    return paths
