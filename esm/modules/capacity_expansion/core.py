# ----------------------
# Import python packages
# ----------------------
from __future__ import annotations
import polars as pl
from dataclasses import dataclass
import os
import pyomo.environ as pyo
import time
import logging
from pyomo.common.log import LogStream
from pyomo.common.tee import capture_output
from pyomo.opt import check_optimal_termination
from pyomo.repn import generate_standard_repn
import math

# ------------------
# Import esm code
# ------------------
from esm.parameters.core import Params
from esm.modules.capacity_expansion.utils import Specs, SolverSettings, SolveOutcome
import esm.generator.generator as generator
import esm.storage.storage as storage
import esm.line.line as line
import esm.bus.bus as bus
from esm.results.core import extract_results, save_results, OBJECTIVE_TERMS
from esm.utils.runtime_tools import timeit

logger = logging.getLogger(__name__)

# -----------
# Main class
# -----------
@dataclass(slots=True)
class CapacityExpansion:
    params: Params
    specs: Specs = None
    solver_settings: SolverSettings = None
    output_directory: str = None
    model: pyo.ConcreteModel = None
    outcome: SolveOutcome = None

    def __post_init__(self):

        logger.info("\n>> Starting capacity expansion...\n")
        self.set_settings()
        self.construct()
        self.inspect_coefficients()
        self.set_output_folder()

    def set_settings(self):

        self.specs = Specs.create(self.specs)
        logger.info(f"Specs: {self.specs}")

        self.solver_settings = SolverSettings.create(self.solver_settings)
        logger.info(f"Solver settings: {self.solver_settings} \n")

    def set_output_folder(self):
        """
        Set up the output folder for storing results.
        """
        if self.output_directory is not None:
            os.makedirs(self.output_directory, exist_ok=True)

    @timeit
    def construct(self):
        """
        Construction of the optimization model for capacity expansion.
        """
        params = self.params

        # Create Pyomo model
        self.model = pyo.ConcreteModel()

        # Index sets. Lines are identified by their position in L.
        self.model.G = pyo.Set(initialize=params.G, ordered=True)
        self.model.G_r = pyo.Set(initialize=params.G_r, ordered=True)
        self.model.N = pyo.Set(initialize=params.N, ordered=True)
        self.model.L = pyo.Set(initialize=range(1, len(params.L) + 1), ordered=True)
        self.model.T = pyo.Set(initialize=params.T, ordered=True)
        self.model.T_succ = pyo.Set(initialize=[t for t in params.T if t > 1], ordered=True)
        self.model.S = pyo.Set(initialize=params.S, ordered=True)

        self.model.cost_components = []

        # Construct modules
        generator.construct_capacity_expansion_model(params, self.model, self.specs)
        storage.construct_capacity_expansion_model(params, self.model, self.specs)
        line.construct_capacity_expansion_model(params, self.model, self.specs)
        bus.construct_capacity_expansion_model(params, self.model, self.specs)

        # Define objective function
        logger.info("> Initializing construction of objective function ...")
        start_time = time.time()
        self.model.obj = pyo.Objective(expr=sum(self.model.cost_components), sense=pyo.minimize)
        logger.info(f"> Completed in {time.time() - start_time:.2f} seconds. \n")

    def solve(self) -> SolveOutcome:
        """
        Solve the capacity expansion optimization model.

        An infeasible or unbounded model is not an error: the returned outcome
        reports the termination condition and carries no results.
        """
        start_time = time.time()
        logger.info("> Solving capacity expansion model...")
        solver = pyo.SolverFactory(self.solver_settings.solver_name)
        if not solver.available(exception_flag=False):
            logger.error(f"Solver '{self.solver_settings.solver_name}' is not available.")
            raise RuntimeError(f"Solver '{self.solver_settings.solver_name}' is not available")

        if self.solver_settings.write_model_file and self.output_directory is not None:
            with open(os.path.join(self.output_directory, 'model_output.txt'), 'w') as output_file:
                self.model.pprint(ostream=output_file)

        # Write solver output to the log
        with capture_output(output=LogStream(logger=logging.getLogger(), level=logging.INFO)):
            results = solver.solve(self.model, options=dict(self.solver_settings.solver_options) or None,
                                   tee=self.solver_settings.tee, load_solutions=False)

        optimal = check_optimal_termination(results)
        if optimal:
            self.model.solutions.load_from(results)

        time_spent = time.time() - start_time
        self.model.solver_status = results.solver.status
        self.model.termination_condition = results.solver.termination_condition
        self.model.solver_time_spent = time_spent

        logger.info(f"> Time spent by solver: {time_spent:.2f} seconds.")
        logger.info(f"> Solver finished with status: {results.solver.status}, "
                    f"termination condition: {results.solver.termination_condition}.")

        variables, objectives = None, None
        if optimal:
            logger.info(f"> Objective value: {pyo.value(self.model.obj)}. \n")
            variables, objectives = extract_results(self.model)
        else:
            logger.warning("> No optimal solution was found. Variables and objectives are not available. \n")

        self.outcome = SolveOutcome(
            optimal=optimal,
            solver_status=str(results.solver.status),
            termination_condition=str(results.solver.termination_condition),
            time_spent_seconds=time_spent,
            variables=variables,
            objectives=objectives)

        return self.outcome

    @timeit
    def export_results(self):
        """
        Export of results to JSON and CSV files.
        """
        if self.outcome is None or not self.outcome.optimal:
            logger.warning("Nothing to export, the model has no optimal solution.")
            return
        if self.output_directory is None:
            raise ValueError("No output directory was given for the capacity expansion results")

        logger.info(f"- Directory: {self.output_directory}")
        save_results(self.specs, self.params, self.outcome.variables, self.outcome.objectives,
                     self.output_directory, outcome=self.outcome)

        objectives = self.outcome.objectives
        costs = pl.DataFrame({'component': [*OBJECTIVE_TERMS, 'total'],
                              'cost': [getattr(objectives, name) for name in (*OBJECTIVE_TERMS, 'total')]})
        costs.write_csv(os.path.join(self.output_directory, 'costs_summary.csv'))

    @timeit
    def inspect_coefficients(self):
        """
        Inspection of coefficients in the model.
        """
        min_coef, max_coef = math.inf, 0
        min_coef_info = max_coef_info = None
        min_rhs, max_rhs = math.inf, -math.inf
        min_rhs_info = max_rhs_info = None

        for c in self.model.component_data_objects(pyo.Constraint, active=True):
            repn = generate_standard_repn(c.body, compute_values=False)

            for var, coef in zip(repn.linear_vars, repn.linear_coefs):
                val = abs(pyo.value(coef))
                if val == 0:
                    continue
                if val < min_coef:
                    min_coef, min_coef_info = val, (pyo.value(coef), c.name, var.name)
                if val > max_coef:
                    max_coef, max_coef_info = val, (pyo.value(coef), c.name, var.name)

            for bound, label in ((c.lower, "lower"), (c.upper, "upper")):
                if bound is None:
                    continue
                v = abs(pyo.value(bound))
                if v < min_rhs:
                    min_rhs, min_rhs_info = v, (pyo.value(bound), c.name, label)
                if v > max_rhs:
                    max_rhs, max_rhs_info = v, (pyo.value(bound), c.name, label)

        if min_coef_info is None:
            logger.info("  - Model has no matrix coefficients to inspect.")
            return

        logger.info(f"  - Matrix coefficient extremes:")
        logger.info(f"     - Minimum coefficient: {min_coef_info[0]}")
        logger.info(f"       Constraint={min_coef_info[1]}  ")
        logger.info(f"       Variable={min_coef_info[2]}")
        logger.info(f"     - Maximum coefficient: {max_coef_info[0]}")
        logger.info(f"       Constraint={max_coef_info[1]}  ")
        logger.info(f"       Variable={max_coef_info[2]} \n")
        if min_rhs_info is not None:
            logger.info(f"  - RHS extremes:")
            logger.info(f"     - Minimum RHS: {min_rhs_info[0]} ({min_rhs_info[1]}, {min_rhs_info[2]})")
            logger.info(f"     - Maximum RHS: {max_rhs_info[0]} ({max_rhs_info[1]}, {max_rhs_info[2]}) \n")

        repn = generate_standard_repn(self.model.obj.expr, compute_values=True)
        obj_coefs = [(abs(coef), coef, var.name) for var, coef in zip(repn.linear_vars, repn.linear_coefs) if coef != 0]
        if obj_coefs:
            smallest, largest = min(obj_coefs), max(obj_coefs)
            logger.info(f"  - Objective coefficient extremes:")
            logger.info(f"     - Minimum coefficient: {smallest[1]} (Variable={smallest[2]})")
            logger.info(f"     - Maximum coefficient: {largest[1]} (Variable={largest[2]})")
