# ----------------------
# Import python packages
# ----------------------
from __future__ import annotations
import json
import os
import logging
import numpy as np
import pyomo.environ as pyo
from pyomo.opt import TerminationCondition
from dataclasses import dataclass, fields, is_dataclass

# ------------------
# Import esm code
# ------------------
from esm.parameters.core import Params
from esm.modules.capacity_expansion.utils import Specs, SolveOutcome
from esm.utils.errors import SolutionNotAvailableError, SchemaError
from esm.utils.pyomo_tools import pyovariable_to_array, pyoexpression_value
from esm.utils.runtime_tools import timeit

logger = logging.getLogger(__name__)

# Index sets of each decision variable, in axis order
VARIABLE_AXES = {
    "p_gnt": ("G", "N", "T"),
    "p_bar_gn": ("G", "N"),
    "sigma_nt": ("N", "T"),
    "f_lt": ("L", "T"),
    "f_lt_abs": ("L", "T"),
    "f_bar_l": ("L",),
    "b_snt": ("S", "N", "T"),
    "b_bar_sn": ("S", "N"),
    "b_plus_snt": ("S", "N", "T"),
    "b_minus_snt": ("S", "N", "T"),
    "theta_nt": ("N", "T"),
    "theta_prime_nt": ("N", "T"),
}

OBJECTIVE_TERMS = ("f1", "f2", "f3", "f4", "f5", "f6", "f7")

# -----------
# Main classes
# -----------
@dataclass(slots=True, frozen=True)
class Variables:
    """Variable values of a solved model, as dense arrays."""
    p_gnt: np.ndarray
    p_bar_gn: np.ndarray
    sigma_nt: np.ndarray
    f_lt: np.ndarray
    f_lt_abs: np.ndarray
    f_bar_l: np.ndarray
    b_snt: np.ndarray
    b_bar_sn: np.ndarray
    b_plus_snt: np.ndarray
    b_minus_snt: np.ndarray
    theta_nt: np.ndarray
    theta_prime_nt: np.ndarray

    @classmethod
    def from_model(cls, model: pyo.ConcreteModel) -> Variables:
        """Extract variable values from a solved model."""
        check_solved(model)
        values = {}
        for name, axes in VARIABLE_AXES.items():
            values[name] = pyovariable_to_array(getattr(model, name), [list(getattr(model, a)) for a in axes])
        return cls(**values)

    @classmethod
    def from_dict(cls, dct: dict) -> Variables:
        return cls(**{f.name: np.asarray(dct[f.name], dtype=float) for f in fields(cls)})


@dataclass(slots=True, frozen=True)
class Objectives:
    """Values of the cost components and of the overall objective."""
    f1: float
    f2: float
    f3: float
    f4: float
    f5: float
    f6: float
    f7: float
    total: float

    @classmethod
    def from_model(cls, model: pyo.ConcreteModel) -> Objectives:
        """Extract objective values from a solved model."""
        check_solved(model)
        terms = {name: pyoexpression_value(getattr(model, name)) for name in OBJECTIVE_TERMS}
        return cls(**terms, total=sum(terms.values()))

    @classmethod
    def from_dict(cls, dct: dict) -> Objectives:
        return cls(**{f.name: float(dct[f.name]) for f in fields(cls)})


def check_solved(model: pyo.ConcreteModel):
    """Raise if the model does not hold an optimal solution."""
    condition = getattr(model, "termination_condition", None)
    if condition != TerminationCondition.optimal:
        logger.error(f"Results are not available, termination condition: {condition}")
        raise SolutionNotAvailableError(f"Model has no optimal solution (termination condition: {condition})")


@timeit
def extract_results(model: pyo.ConcreteModel) -> tuple[Variables, Objectives]:
    """Extraction of variable and objective values from the solved model."""
    return Variables.from_model(model), Objectives.from_model(model)

# -------------
# Serialization
# -------------
def to_serializable(instance) -> dict:
    """Field name to JSON-compatible value mapping of an entity."""

    if is_dataclass(instance):
        dct = {f.name: getattr(instance, f.name) for f in fields(instance)}
    elif isinstance(instance, tuple) and hasattr(instance, "_asdict"):
        dct = instance._asdict()
    else:
        raise TypeError(f"Cannot serialize object of type {type(instance).__name__}")

    def convert(value):
        if isinstance(value, np.ndarray):
            return value.tolist()
        if isinstance(value, np.generic):
            return value.item()
        if isinstance(value, (list, tuple, range)):
            return [convert(v) for v in value]
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return {key: convert(value) for key, value in dct.items()}


@timeit
def save_results(specs: Specs, parameters: Params, variables: Variables, objectives: Objectives,
                 output_path: str, outcome: SolveOutcome = None):
    """
    Writing of specs, parameters, variables, and objectives into JSON files.

    Existing files are overwritten. When `outcome` is given its status fields
    are also written to `solver_status.json`.
    """
    os.makedirs(output_path, exist_ok=True)
    documents = {
        "specs": specs,
        "parameters": parameters,
        "variables": variables,
        "objectives": objectives,
    }
    if outcome is not None:
        documents["solver_status"] = outcome._replace(variables=None, objectives=None)

    for filename, instance in documents.items():
        file_path = os.path.join(output_path, f"{filename}.json")
        with open(file_path, "w") as io:
            json.dump(to_serializable(instance), io)
        logger.info(f"- Written: {file_path}")


def load_results(output_path: str) -> tuple[Variables, Objectives]:
    """Read variables and objectives previously written by `save_results`."""
    entities = []
    for filename, cls in (("variables", Variables), ("objectives", Objectives)):
        file_path = os.path.join(output_path, f"{filename}.json")
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Missing results file: '{file_path}'")
        with open(file_path, "r") as io:
            dct = json.load(io)
        try:
            entities.append(cls.from_dict(dct))
        except KeyError as e:
            raise SchemaError(f"Field {e} is missing in '{file_path}'") from e
    return tuple(entities)
