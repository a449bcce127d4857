# -----------
# Import python packages
# -----------
from __future__ import annotations
from typing import NamedTuple, Any
import logging

# Set up logging
logger = logging.getLogger(__name__)

# -----------
# Sub-classes
# -----------
class Specs(NamedTuple):
    """
    Specification of which optional constraint families to include in the
    model. Families that are not specified are included by default.

    #### Fields:
        - renewable_target: minimum renewables share of total generation.
        - storage: storage charge/discharge, capacity and cyclic constraints.
        - ramping: ramping limits between consecutive time steps.
        - voltage_angles: DC power flow relation between angles and line flows.
    """
    renewable_target: bool = True
    storage: bool = True
    ramping: bool = True
    voltage_angles: bool = True

    @classmethod
    def create(cls, specs: Specs | dict | None = None) -> Specs:
        """Build the specs from a dictionary, keeping an existing instance as it is."""
        if specs is None:
            specs = cls()
        elif not isinstance(specs, cls):
            unknown = set(specs) - set(cls._fields)
            if unknown:
                logger.error(f"Unknown specs {sorted(unknown)}. Valid specs are {list(cls._fields)}.")
                raise ValueError(f"Unknown specs {sorted(unknown)}")
            specs = cls(**specs)

        for name, value in specs._asdict().items():
            if not isinstance(value, bool):
                logger.error(f"Spec '{name}' must be a boolean, got {value!r}.")
                raise TypeError(f"Spec '{name}' must be a boolean, got {value!r}")

        return specs


class SolverSettings(NamedTuple):
    """
    Settings for the solver of the capacity expansion model.
    """
    solver_name: str = "appsi_highs"
    tee: bool = False
    solver_options: dict[str, Any] = None
    write_model_file: bool = False

    @classmethod
    def create(cls, settings: SolverSettings | dict | None = None) -> SolverSettings:
        """Build the solver settings from a dictionary. Missing solver options become an empty dictionary."""
        if settings is None:
            settings = cls()
        elif not isinstance(settings, cls):
            unknown = set(settings) - set(cls._fields)
            if unknown:
                logger.error(f"Unknown solver settings {sorted(unknown)}. Valid settings are {list(cls._fields)}.")
                raise ValueError(f"Unknown solver settings {sorted(unknown)}")
            settings = cls(**settings)

        if settings.solver_options is None:
            settings = settings._replace(solver_options={})
        return settings


class SolveOutcome(NamedTuple):
    """
    Outcome of a solver run. `variables` and `objectives` are only
    available when the solver reports an optimal termination.
    """
    optimal: bool
    solver_status: str
    termination_condition: str
    time_spent_seconds: float
    variables: Any = None
    objectives: Any = None
