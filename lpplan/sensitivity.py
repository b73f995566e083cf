#!/usr/bin/env python3
"""
Sensitivity Analysis: Objective Response to a Scalar Input

Re-solves a planning model for a range of values of one input (for example a
demand scale factor) and records how the objective and its components move.

Each value gets a freshly built model that is solved exactly once; models are
never modified and resubmitted. This helps understand:
- How sensitive is the total cost to the input?
- Which cost components absorb the change?
- Where does the model stop being feasible?
"""

import copy
import logging
import sys

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from tqdm import tqdm

from lpplan.config import default_data_path, load_config
from lpplan.report import cost_breakdown
from lpplan.solver import SolverOptions, solve
from lpplan.workforce import build_workforce_model

logger = logging.getLogger(__name__)


def sweep(build, values, options=None, label="value", progress=True):
    """
    Solve one fresh model per input value.

    Parameters:
    -----------
    build : callable
        ``build(value)`` returns a draft Model
    values : iterable
        Input values to test
    options : SolverOptions, optional
    label : str
        Name of the input column in the result

    Returns:
    --------
    DataFrame with one row per value: status, objective and cost components
    """
    records = []
    for value in tqdm(list(values), desc="Sweep", disable=not progress):
        result = solve(build(value), options)
        record = {
            label: value,
            'status': result.status.value,
            'objective': result.objective_value,
        }
        if result.ok:
            record.update(cost_breakdown(result))
        else:
            logger.info("%s=%s finished with status %s", label, value, result.status.value)
        records.append(record)
    return pd.DataFrame.from_records(records)


def summary_lines(frame, label="value", sense="minimize"):
    """Best value and objective range over the optimal rows."""
    solved = frame[frame['status'] == "Optimal"]
    if solved.empty:
        return ["No successful optimizations to summarize."]

    objective = solved['objective'].astype(float).to_numpy()
    best = int(np.argmin(objective) if sense == "minimize" else np.argmax(objective))
    lines = [
        f"Best {label}: {solved[label].iloc[best]} (objective {objective[best]:.2f})",
        f"Objective range: {objective.min():.2f} to {objective.max():.2f}",
    ]
    failed = len(frame) - len(solved)
    if failed:
        lines.append(f"Non-optimal runs: {failed} of {len(frame)}")
    return lines


def plot_sweep(frame, output_path, label="value"):
    """Objective curve and stacked component bars for the optimal rows."""
    solved = frame[frame['status'] == "Optimal"]
    components = [
        col for col in solved.columns if col not in (label, 'status', 'objective')
    ]

    fig, axes = plt.subplots(2, 1, figsize=(12, 10))

    ax1 = axes[0]
    ax1.plot(solved[label], solved['objective'], 'b-o', linewidth=2, markersize=8, label='Objective')
    ax1.set_xlabel(label, fontsize=12, fontweight='bold')
    ax1.set_ylabel('Objective', fontsize=12, fontweight='bold')
    ax1.set_title(f'Sensitivity of the Objective to {label}', fontsize=14, fontweight='bold')
    ax1.grid(True, alpha=0.3)
    ax1.legend(loc='best', fontsize=10)

    ax2 = axes[1]
    x_pos = np.arange(len(solved))
    positive = np.zeros(len(solved))
    negative = np.zeros(len(solved))
    for col in components:
        heights = solved[col].astype(float).fillna(0).to_numpy()
        bottom = np.where(heights >= 0, positive, negative)
        ax2.bar(x_pos, heights, 0.6, bottom=bottom, label=col.replace('_', ' ').title(), alpha=0.8)
        positive += np.clip(heights, 0, None)
        negative += np.clip(heights, None, 0)
    ax2.set_xticks(x_pos)
    ax2.set_xticklabels([str(v) for v in solved[label]])
    ax2.set_xlabel(label, fontsize=12, fontweight='bold')
    ax2.set_title('Objective Components Breakdown', fontsize=14, fontweight='bold')
    ax2.grid(True, alpha=0.3, axis='y')
    ax2.legend(loc='best', fontsize=10)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    return output_path


def scaled_demand(config, factor):
    """Copy of a workforce data set with every weekly demand scaled."""
    scaled = copy.deepcopy(config)
    scaled['demand'] = {week: factor * value for week, value in config['demand'].items()}
    return scaled


def demand_sweep(config, factors, options=None, progress=True):
    return sweep(
        lambda factor: build_workforce_model(scaled_demand(config, factor)),
        factors, options, label="demand_factor", progress=progress,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config_path = sys.argv[1] if len(sys.argv) > 1 else default_data_path("workforce")
    config = load_config(config_path)

    print("=" * 80)
    print("SENSITIVITY ANALYSIS: Weekly Demand Scale")
    print("=" * 80)
    frame = demand_sweep(config, [0.5, 0.75, 1.0, 1.25, 1.5], SolverOptions.from_config(config))
    print(frame.to_string(index=False))
    print()
    print("\n".join(summary_lines(frame, label="demand_factor")))

    output_path = "demand_sensitivity.png"
    plot_sweep(frame, output_path, label="demand_factor")
    print(f"\n✓ Plot saved to: {output_path}")
