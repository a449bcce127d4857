"""
This script runs the capacity expansion model for a 3-node system with a gas
unit, wind and solar technologies, one storage technology and 4 time steps.
Results are written to the `outputs` folder of the case study directory.
"""

# Import Python standard and third-party packages
from pathlib import Path
import logging
import os

# Import esm package
from esm import main

logging.basicConfig(level=logging.INFO, format='%(message)s')

# Specify path of the case study directory
case_dir = Path(__file__).resolve().parent

solver_settings = {
                "solver_name": "appsi_highs",
                "tee": True,
                "solver_options": {},
            }
specs = {
        "renewable_target": True,
        "storage": True,
        "ramping": True,
        "voltage_angles": True,
    }

outcome = main.run_instance(os.path.join(case_dir, "inputs"), os.path.join(case_dir, "outputs"),
                            specs=specs, solver_settings=solver_settings)

print(f"Optimal: {outcome.optimal}, total cost: {outcome.objectives.total if outcome.optimal else None}")
