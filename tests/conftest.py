import copy

import matplotlib
import pytest

matplotlib.use("Agg")

WORKFORCE_DATA = {
    "facilities": ["A", "B"],
    "weeks": [1, 2, 3],
    "demand": {"1": 800, "2": 1200, "3": 1000},
    "facility_data": {
        "A": {
            "initial_employees": 20, "capacity": 40, "regular_hours": 40,
            "units_per_hour": 1.0, "max_overtime": 10, "wage": 400,
            "overtime_wage": 15, "hiring_cost": 300, "firing_cost": 500,
            "opening_cost": 1000,
        },
        "B": {
            "initial_employees": 0, "capacity": 30, "regular_hours": 40,
            "units_per_hour": 1.0, "max_overtime": 10, "wage": 350,
            "overtime_wage": 12, "hiring_cost": 250, "firing_cost": 400,
            "opening_cost": 2000,
        },
    },
    "open_requires": [["B", "A"]],
}

PRODUCTION_DATA = {
    "products": ["Standard", "Deluxe"],
    "materials": ["Steel"],
    "months": 3,
    "demand": {
        "Standard": {"1": 50, "2": 80, "3": 60},
        "Deluxe": {"1": 20, "2": 30, "3": 40},
    },
    "price": {
        "Standard": {"1": 90, "2": 90, "3": 95},
        "Deluxe": {"1": 150, "2": 150, "3": 160},
    },
    "capacity": {"1": 250, "2": 250, "3": 250},
    "product_data": {
        "Standard": {
            "production_cost": 20, "holding_cost": 2, "backorder_cost": 12,
            "hours": 2, "initial_inventory": 10, "final_inventory": 0,
        },
        "Deluxe": {
            "production_cost": 30, "holding_cost": 3, "backorder_cost": 20,
            "hours": 3, "initial_inventory": 0, "final_inventory": 5,
        },
    },
    "material_data": {
        "Steel": {"cost": 4, "supply": [400, 400, 400]},
    },
    "usage": {"Steel": {"Standard": 3, "Deluxe": 5}},
}


@pytest.fixture
def workforce_config():
    return copy.deepcopy(WORKFORCE_DATA)


@pytest.fixture
def production_config():
    return copy.deepcopy(PRODUCTION_DATA)
