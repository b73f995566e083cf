#!/usr/bin/env python3
"""
Workforce Staffing - Multi-Facility MIP Model

Decides, week by week, how many workers each facility employs, hires, fires
and how much overtime they work, and which facilities are opened at all, so
that total weekly demand is met at minimum cost.

Decision Variables:
- W[f,t]: workers employed at facility f in week t (integer)
- H[f,t]: workers hired in week t, available from week t+1 (integer)
- F[f,t]: workers fired at the start of week t (integer)
- O[f,t]: overtime hours worked in week t (continuous)
- Open[f]: 1 if facility f operates over the horizon (binary)

Constraints:
- Workforce flow: W[f,1] = InitialEmployees[f] - F[f,1] in the first week,
  W[f,t] = W[f,t-1] - F[f,t] + H[f,t-1] afterwards
- Capacity: W[f,t] <= Capacity[f] * Open[f]
- Overtime: O[f,t] <= MaxOvertime[f] * W[f,t]
- Demand: sum_f UnitsPerHour[f] * (RegularHours[f] * W[f,t] + O[f,t]) >= Demand[t]
- Opening rules listed in the data ("A may open only if B is open")

Objective: Minimize total cost (wages + overtime + hiring + firing + facilities)
"""

import logging
import re
import sys

from lpplan.config import default_data_path, load_config, require
from lpplan.expr import quicksum
from lpplan.generate import Partition
from lpplan.model import Domain, Model
from lpplan.report import (
    breakdown_lines, objective_line, quantity_table, selection_lines,
    status_line,
)
from lpplan.solver import SolverOptions, solve

# Parameter name -> field in the per-facility data
FACILITY_FIELDS = {
    "InitialEmployees": "initial_employees",
    "Capacity": "capacity",
    "RegularHours": "regular_hours",
    "UnitsPerHour": "units_per_hour",
    "MaxOvertime": "max_overtime",
    "Wage": "wage",
    "OvertimeWage": "overtime_wage",
    "HiringCost": "hiring_cost",
    "FiringCost": "firing_cost",
    "OpeningCost": "opening_cost",
}

WORKFORCE_COLUMNS = {
    "Workers": "W",
    "Hired": "H",
    "Fired": "F",
    "Overtime": "O",
}


def _facility_field(facility_data, field):
    return lambda f: facility_data[f][field]


def _is_first_week(m, f, t):
    return t == m.Weeks.first()


def _is_later_week(m, f, t):
    return t != m.Weeks.first()


def _initial_workforce(m, f, t):
    return m.W[f, t] + m.F[f, t] == m.InitialEmployees[f]


def _workforce_flow(m, f, t):
    prev = m.Weeks.prev(t)
    return m.W[f, t] - m.W[f, prev] + m.F[f, t] - m.H[f, prev] == 0


def _opening_rule(facility, required):
    return lambda m: m.Open[facility] <= m.Open[required]


def build_workforce_model(config):
    """
    Build the staffing model from a data dictionary.

    Parameters:
    -----------
    config : dict
        ``facilities``, ``weeks``, ``demand`` (per week), ``facility_data``
        (per facility, see FACILITY_FIELDS) and optionally ``open_requires``,
        a list of ``[facility, required_facility]`` pairs.

    Returns:
    --------
    Model (draft)
    """
    facilities, weeks, demand, facility_data = require(
        config, 'facilities', 'weeks', 'demand', 'facility_data'
    )

    m = Model("workforce")
    m.declare_set("Facilities", facilities)
    m.declare_set("Weeks", weeks)

    m.declare_parameter("Demand", "Weeks", demand, lower=0)
    for param, field in FACILITY_FIELDS.items():
        m.declare_parameter(param, "Facilities", _facility_field(facility_data, field), lower=0)

    staffing = ("Facilities", "Weeks")
    m.declare_variable("W", staffing, Domain.NON_NEGATIVE_INTEGER)
    m.declare_variable("H", staffing, Domain.NON_NEGATIVE_INTEGER)
    m.declare_variable("F", staffing, Domain.NON_NEGATIVE_INTEGER)
    m.declare_variable("O", staffing, Domain.NON_NEGATIVE_CONTINUOUS)
    m.declare_variable("Open", "Facilities", Domain.BINARY)

    m.add_constraint_family("workforce_flow", staffing, Partition(
        (_is_first_week, _initial_workforce),
        (_is_later_week, _workforce_flow),
    ))
    m.add_constraint_family(
        "capacity", staffing,
        lambda m, f, t: m.W[f, t] <= m.Capacity[f] * m.Open[f],
    )
    m.add_constraint_family(
        "overtime_limit", staffing,
        lambda m, f, t: m.O[f, t] <= m.MaxOvertime[f] * m.W[f, t],
    )
    m.add_constraint_family(
        "demand", "Weeks",
        lambda m, t: quicksum(
            m.UnitsPerHour[f] * (m.RegularHours[f] * m.W[f, t] + m.O[f, t])
            for f in m.Facilities
        ) >= m.Demand[t],
    )

    # Business rules between named facilities, kept one constraint per rule
    for facility, required in config.get('open_requires', []):
        name = re.sub(r"\W", "_", f"open_{facility}_requires_{required}")
        m.add_constraint(name, _opening_rule(facility, required))

    cells = [(f, t) for f in m.Facilities for t in m.Weeks]
    m.set_objective("minimize", {
        "wages": quicksum(m.Wage[f] * m.W[f, t] for f, t in cells),
        "overtime": quicksum(m.OvertimeWage[f] * m.O[f, t] for f, t in cells),
        "hiring": quicksum(m.HiringCost[f] * m.H[f, t] for f, t in cells),
        "firing": quicksum(m.FiringCost[f] * m.F[f, t] for f, t in cells),
        "facilities": quicksum(m.OpeningCost[f] * m.Open[f] for f in m.Facilities),
    })
    return m


def report(result):
    """Text report: objective, open facilities, one table per facility."""
    if not result.ok:
        return status_line(result)

    lines = [objective_line(result)]
    lines.extend(selection_lines(result, "Open"))
    for f in result.model.Facilities:
        lines.append("")
        lines.append(quantity_table(
            result, "Weeks", WORKFORCE_COLUMNS, fixed=(f,), title=f"Workforce at {f}:"
        ))
    lines.append("")
    lines.extend(breakdown_lines(result))
    return "\n".join(lines)


def main(config_path=None):
    config = load_config(config_path or default_data_path("workforce"))
    model = build_workforce_model(config)
    result = solve(model, SolverOptions.from_config(config))
    print(report(result))
    return result


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    result = main(sys.argv[1] if len(sys.argv) > 1 else None)
    sys.exit(0 if result.ok else 1)
