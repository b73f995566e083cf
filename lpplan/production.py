#!/usr/bin/env python3
"""
Production-Inventory Planning - Multi-Product LP Model

Plans monthly material purchases and the product mix so that demand is met,
possibly late through backorders, while maximising profit.

Decision Variables (t = 1..T, p = 0..T):
- production[i,t]: units of product i made in month t
- buy[m,t]: units of material m purchased in month t
- inv[i,p]: inventory of product i at the end of period p
- back[i,p]: backorders of product i at the end of period p

Constraints:
- Balance: (inv[i,t] - back[i,t]) - (inv[i,t-1] - back[i,t-1])
           - production[i,t] + Demand[i,t] = 0
- Capacity: sum_i Hours[i] * production[i,t] <= Capacity[t]
- Material: sum_i Usage[m,i] * production[i,t] <= buy[m,t]
- Supply: buy[m,t] <= Supply[m,t]
- Boundaries: inv[i,0] = InitialInventory[i], back[i,0] = 0,
              inv[i,T] = FinalInventory[i], back[i,T] = 0

Objective: Maximize profit (revenue - production - materials - holding - backorders)
"""

import logging
import sys

from lpplan.config import default_data_path, load_config, require
from lpplan.expr import quicksum
from lpplan.model import Domain, Model
from lpplan.report import (
    breakdown_lines, objective_line, quantity_table, status_line,
)
from lpplan.solver import SolverOptions, solve

PRODUCT_COLUMNS = {
    "Demand": lambda m, i, t: m.Demand[i, t],
    "Production": "production",
    "Inventory": "inv",
    "Backorder": "back",
}


def _product_field(product_data, field):
    return lambda i: product_data[i][field]


def _material_field(material_data, field):
    return lambda mat: material_data[mat][field]


def _balance(m, i, t):
    prev = m.Periods.prev(t)
    return (
        (m.inv[i, t] - m.back[i, t]) - (m.inv[i, prev] - m.back[i, prev])
        - m.production[i, t] + m.Demand[i, t] == 0
    )


def build_production_model(config):
    """
    Build the production-inventory model from a data dictionary.

    Parameters:
    -----------
    config : dict
        ``products``, ``materials``, ``months`` (planning horizon T),
        ``demand`` and ``price`` (per product and month), ``capacity`` (per
        month), ``product_data`` (costs, hours, boundary inventories),
        ``material_data`` (cost, monthly supply) and ``usage`` (per material
        and product).

    Returns:
    --------
    Model (draft)
    """
    (products, materials, months, demand, price, capacity,
     product_data, material_data, usage) = require(
        config, 'products', 'materials', 'months', 'demand', 'price', 'capacity',
        'product_data', 'material_data', 'usage',
    )

    m = Model("production")
    m.declare_set("Products", products)
    m.declare_set("Materials", materials)
    m.declare_set("Periods", range(months + 1))
    m.declare_set("Months", range(1, months + 1))

    m.declare_parameter("Demand", ("Products", "Months"), demand, lower=0)
    m.declare_parameter("Price", ("Products", "Months"), price, lower=0)
    m.declare_parameter("Capacity", "Months", capacity, lower=0)
    m.declare_parameter("Usage", ("Materials", "Products"), usage, lower=0)
    for param, field in (("ProductionCost", "production_cost"),
                         ("HoldingCost", "holding_cost"),
                         ("BackorderCost", "backorder_cost"),
                         ("Hours", "hours"),
                         ("InitialInventory", "initial_inventory"),
                         ("FinalInventory", "final_inventory")):
        m.declare_parameter(param, "Products", _product_field(product_data, field), lower=0)
    m.declare_parameter("MaterialCost", "Materials", _material_field(material_data, "cost"), lower=0)
    m.declare_parameter(
        "Supply", ("Materials", "Months"),
        lambda mat, t: material_data[mat]["supply"][t - 1], lower=0,
    )

    m.declare_variable("production", ("Products", "Months"))
    m.declare_variable("buy", ("Materials", "Months"))
    m.declare_variable("inv", ("Products", "Periods"))
    m.declare_variable("back", ("Products", "Periods"))

    m.add_constraint_family("balance", ("Products", "Months"), _balance)
    m.add_constraint_family(
        "capacity", "Months",
        lambda m, t: quicksum(m.Hours[i] * m.production[i, t] for i in m.Products) <= m.Capacity[t],
    )
    m.add_constraint_family(
        "material", ("Materials", "Months"),
        lambda m, mat, t: quicksum(
            m.Usage[mat, i] * m.production[i, t] for i in m.Products
        ) <= m.buy[mat, t],
    )
    m.add_constraint_family(
        "supply", ("Materials", "Months"),
        lambda m, mat, t: m.buy[mat, t] <= m.Supply[mat, t],
    )
    m.add_constraint_family(
        "initial_inventory", "Products",
        lambda m, i: m.inv[i, m.Periods.first()] == m.InitialInventory[i],
    )
    m.add_constraint_family(
        "initial_backorder", "Products",
        lambda m, i: m.back[i, m.Periods.first()] == 0,
    )
    m.add_constraint_family(
        "final_inventory", "Products",
        lambda m, i: m.inv[i, m.Periods.last()] == m.FinalInventory[i],
    )
    m.add_constraint_family(
        "final_backorder", "Products",
        lambda m, i: m.back[i, m.Periods.last()] == 0,
    )

    cells = [(i, t) for i in m.Products for t in m.Months]
    purchases = [(mat, t) for mat in m.Materials for t in m.Months]
    m.set_objective("maximize", {
        "revenue": quicksum(m.Price[i, t] * m.Demand[i, t] for i, t in cells),
        "production": -quicksum(m.ProductionCost[i] * m.production[i, t] for i, t in cells),
        "materials": -quicksum(m.MaterialCost[mat] * m.buy[mat, t] for mat, t in purchases),
        "holding": -quicksum(m.HoldingCost[i] * m.inv[i, t] for i, t in cells),
        "backorders": -quicksum(m.BackorderCost[i] * m.back[i, t] for i, t in cells),
    })
    return m


def purchase_columns(model):
    """One column per material: units bought each month."""
    return {
        mat: (lambda m, t, mat=mat: m.buy[mat, t])
        for mat in model.Materials
    }


def report(result):
    """Text report: objective, purchases, one table per product."""
    if not result.ok:
        return status_line(result)

    model = result.model
    lines = [objective_line(result), ""]
    lines.append(quantity_table(
        result, "Months", purchase_columns(model), title="Material Purchases:"
    ))
    for i in model.Products:
        lines.append("")
        lines.append(quantity_table(
            result, "Months", PRODUCT_COLUMNS, fixed=(i,), title=f"Product {i}:"
        ))
    lines.append("")
    lines.extend(breakdown_lines(result))
    return "\n".join(lines)


def main(config_path=None):
    config = load_config(config_path or default_data_path("production"))
    model = build_production_model(config)
    result = solve(model, SolverOptions.from_config(config))
    print(report(result))
    return result


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    result = main(sys.argv[1] if len(sys.argv) > 1 else None)
    sys.exit(0 if result.ok else 1)
