# ----------------------
# Import python packages
# ----------------------
import os
import logging
import time

logger = logging.getLogger(__name__)


# ------------------
# Import esm code
# ------------------
from esm.parameters.core import Params
from esm.modules.capacity_expansion.core import CapacityExpansion
from esm.modules.capacity_expansion.utils import SolveOutcome
from esm.utils.runtime_tools import setup_logging_file, close_logging_file

# ----------------
# Main functions
# ----------------
def run_instance(instance_directory, output_directory, specs=None, solver_settings=None) -> SolveOutcome:
    """
    Routine to load, build, solve and export the capacity expansion model of one instance.
    """
    start_time = time.time()

    # Set up logging to file
    file_handler = setup_logging_file(output_directory)

    try:
        # Load parameters from CSV and JSON files
        params = Params.from_instance(instance_directory)

        # Build and solve the model
        capex = CapacityExpansion(params=params, specs=specs, solver_settings=solver_settings,
                                  output_directory=output_directory)
        outcome = capex.solve()
        capex.export_results()

        logger.info(f"\n>> Run completed in {time.time() - start_time:.2f} seconds.\n")
    finally:
        close_logging_file(file_handler)

    return outcome


def run_batch(instances_directory, output_directory, specs=None, solver_settings=None) -> dict:
    """
    Routine to run every instance found in the sub-directories of `instances_directory`.

    A failing instance does not stop the batch: its exception is logged and
    returned in place of its outcome.
    """
    if not os.path.isdir(instances_directory):
        raise FileNotFoundError(f"Instances directory not found: '{instances_directory}'")

    instances = sorted(d for d in os.listdir(instances_directory)
                       if os.path.isdir(os.path.join(instances_directory, d)))
    logger.info(f">> Running {len(instances)} instances from {instances_directory}")

    outcomes = {}
    for name in instances:
        try:
            outcomes[name] = run_instance(os.path.join(instances_directory, name),
                                          os.path.join(output_directory, name),
                                          specs=specs, solver_settings=solver_settings)
        except Exception as e:
            logger.exception(f"Instance '{name}' failed: {e}")
            outcomes[name] = e

    return outcomes
