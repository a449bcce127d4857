"""
pytest configuration

Fixtures that write small instance directories in the layout read by
`Params.from_instance`, and a fixture that picks an available LP solver.
"""

import json
import logging
import os

import polars as pl
import pyomo.environ as pyo
import pytest

logger = logging.getLogger(__name__)

SOLVERS = ("appsi_highs", "glpk", "cbc")


def _write_csv(file_path, columns: dict):
    pl.DataFrame(columns).write_csv(file_path)


def write_instance(directory, *, G=(1,), G_r=(), N=(1,), L=(), T=1, S=(),
                   kappa=0.0, C=1000.0, C_bar=1.0, r=0.0,
                   demand=None, availability=None, technology=None, transmission=None,
                   storage=None, availability_map=None, existing_capacity=None):
    """
    Write an instance directory.

    `demand` maps a node to its per-step demand (written as Dem_Inc=1,
    Max_Load=1, Load_mod=demand). `availability` maps a node to a dict with
    the `Avail_Win`/`Avail_Sol` columns. Tables are dicts of column lists.
    """
    os.makedirs(os.path.join(directory, "nodes"), exist_ok=True)
    with open(os.path.join(directory, "indices.json"), "w") as f:
        json.dump({"G": list(G), "G_r": list(G_r), "N": list(N), "L": [list(l) for l in L],
                   "T": T, "S": list(S)}, f)
    with open(os.path.join(directory, "constants.json"), "w") as f:
        json.dump({"kappa": kappa, "C": C, "C_bar": C_bar, "r": r}, f)

    demand = demand or {}
    availability = availability or {}
    for n in N:
        load = [float(v) for v in demand.get(n, [0.0] * T)]
        avail = availability.get(n, {})
        _write_csv(os.path.join(directory, "nodes", f"{n}.csv"), {
            "Dem_Inc": [1.0] * T,
            "Load_mod": load,
            "Max_Load": [1.0] * T,
            "Avail_Win": [float(v) for v in avail.get("Avail_Win", [1.0] * T)],
            "Avail_Sol": [float(v) for v in avail.get("Avail_Sol", [1.0] * T)],
        })

    if technology is None:
        technology = {"cost": [1000.0] * len(G), "lifetime": [20] * len(G), "M": [0.0] * len(G),
                      "fuel_cost_1": [10000.0] * len(G), "fuel_cost_2": [1.0] * len(G),
                      "r_minus": [1000.0] * len(G), "r_plus": [1000.0] * len(G)}
    _write_csv(os.path.join(directory, "technology.csv"), technology)

    if transmission is None:
        transmission = {"M": [0.0] * len(L), "cost": [0.0] * len(L), "dist": [1.0] * len(L),
                        "lifetime": [40] * len(L), "C": [0.0] * len(L), "B": [1.0] * len(L)}
    _write_csv(os.path.join(directory, "transmission.csv"), transmission)

    if storage is None:
        storage = {"xi": [0.9] * len(S), "cost": [100.0] * len(S), "lifetime": [10] * len(S),
                   "C": [0.1] * len(S)}
        storage.update({f"b0_{n}": [0.0] * len(S) for n in N})
    _write_csv(os.path.join(directory, "storage.csv"), storage)

    if availability_map is not None:
        with open(os.path.join(directory, "availability.json"), "w") as f:
            json.dump(availability_map, f)

    if existing_capacity is not None:
        _write_csv(os.path.join(directory, "existing_capacity.csv"),
                   {f"Q_{n}": [float(v) for v in values] for n, values in existing_capacity.items()})

    return str(directory)


@pytest.fixture
def make_instance(tmp_path):
    """Factory writing an instance directory under `tmp_path`."""
    def factory(name="instance", **kwargs):
        return write_instance(tmp_path / name, **kwargs)
    return factory


@pytest.fixture
def two_node_instance(make_instance):
    """
    Two nodes joined by one line (1 -> 2), one non-renewable generator with
    existing capacity only at node 1, demand only at node 2, no storage.
    """
    return make_instance(
        "two_node",
        G=(1,), N=(1, 2), L=((1, 2),), T=1, S=(),
        demand={1: [0.0], 2: [40.0]},
        existing_capacity={1: [100.0], 2: [0.0]},
    )


@pytest.fixture(scope="session")
def solver_name():
    for name in SOLVERS:
        if pyo.SolverFactory(name).available(exception_flag=False):
            logger.info(f"Using solver {name} for tests")
            return name
    pytest.skip("No LP solver available")
