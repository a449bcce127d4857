from esm.parameters.core import Params, equivalent_annual_cost
from esm.modules.capacity_expansion.utils import Specs, SolverSettings, SolveOutcome
from esm.modules.capacity_expansion.core import CapacityExpansion
from esm.results.core import Variables, Objectives, extract_results, save_results, load_results
from esm.main import run_instance, run_batch
