# ----------------------
# Import python packages
# ----------------------
from __future__ import annotations
import os
import logging
import numpy as np
from dataclasses import dataclass, fields
from typing import NamedTuple

# ------------------
# Import esm code
# ------------------
from esm.parameters.loaders import (read_json_document, read_csv_table, column,
                                    to_int_list)
from esm.utils.errors import SchemaError, DimensionError
from esm.utils.runtime_tools import timeit

logger = logging.getLogger(__name__)

# Columns of a node table that carry availability factors
AVAILABILITY_COLUMNS = ("Avail_Win", "Avail_Sol")

# -----------
# Sub-classes
# -----------
class IndexPositions(NamedTuple):
    """
    Mapping from the value of each index to its slot along the array axis.
    Lines are addressed by their 1-based position in `L`.
    """
    G: dict[int, int]
    N: dict[int, int]
    L: dict[int, int]
    T: dict[int, int]
    S: dict[int, int]


def equivalent_annual_cost(cost, n, r: float):
    """
    Equivalent annual cost (EAC) of a one-time investment.

    The annuity factor is `n` when `r == 0` and `(1 - (1 + r)**(-n)) / r`
    otherwise. Works element-wise when `cost` and `n` are arrays.

    #### Args:
        - cost: Net present value of the investment.
        - n: Number of payments (lifetime in years).
        - r: Interest rate.
    """
    cost = np.asarray(cost, dtype=float)
    n = np.asarray(n, dtype=float)
    if r == 0:
        factor = n
    else:
        factor = (1 - (1 + r) ** (-n)) / r
    result = cost / factor
    return float(result) if result.ndim == 0 else result

# -----------
# Main class
# -----------
@dataclass(slots=True, frozen=True)
class Params:
    """Input indices and parameters of one problem instance."""
    G: list[int]
    G_r: list[int]
    N: list[int]
    L: list[tuple[int, int]]
    T: list[int]
    S: list[int]
    kappa: float
    C: float
    C_bar: float
    tau: int
    tau_t: np.ndarray
    Q_gn: np.ndarray
    A_gnt: np.ndarray
    D_nt: np.ndarray
    I_g: np.ndarray
    M_g: np.ndarray
    C_g: np.ndarray
    r_minus_g: np.ndarray
    r_plus_g: np.ndarray
    I_l: np.ndarray
    M_l: np.ndarray
    C_l: np.ndarray
    B_l: np.ndarray
    xi_s: np.ndarray
    I_s: np.ndarray
    C_s: np.ndarray
    b0_sn: np.ndarray

    def __post_init__(self):
        self.validate()
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                value.flags.writeable = False

    def shapes(self) -> dict[str, tuple[int, ...]]:
        """Expected extent of every array given the cardinality of the index sets."""
        nG, nN, nL, nT, nS = len(self.G), len(self.N), len(self.L), len(self.T), len(self.S)
        return {
            "tau_t": (nT,),
            "Q_gn": (nG, nN),
            "A_gnt": (nG, nN, nT),
            "D_nt": (nN, nT),
            "I_g": (nG,), "M_g": (nG,), "C_g": (nG,), "r_minus_g": (nG,), "r_plus_g": (nG,),
            "I_l": (nL,), "M_l": (nL,), "C_l": (nL,), "B_l": (nL,),
            "xi_s": (nS,), "I_s": (nS,), "C_s": (nS,),
            "b0_sn": (nS, nN),
        }

    def validate(self):
        """Check index sets, scalars and the extent of every array."""

        for name in ("G", "G_r", "N", "T", "S"):
            values = getattr(self, name)
            if len(set(values)) != len(values):
                logger.error(f"Index set {name} contains repeated values: {values}")
                raise DimensionError(f"Index set {name} contains repeated values")

        if list(self.T) != list(range(1, len(self.T) + 1)):
            raise DimensionError("Time steps T must be the contiguous range 1..T_max")

        unknown = [g for g in self.G_r if g not in self.G]
        if unknown:
            logger.error(f"Renewable technologies {unknown} are not in G")
            raise DimensionError(f"Renewable technologies {unknown} are not in G")

        for position, line in enumerate(self.L, start=1):
            if len(line) != 2 or any(n not in self.N for n in line):
                logger.error(f"Line {position} {line} does not connect two nodes of N")
                raise DimensionError(f"Line {position} {line} does not connect two nodes of N")

        if not 0 <= self.kappa <= 1:
            raise SchemaError(f"kappa must be within [0, 1], got {self.kappa}")
        if self.C_bar < 0:
            raise SchemaError(f"C_bar must be non-negative, got {self.C_bar}")

        if np.any(np.asarray(self.D_nt) < 0):
            logger.error("Demand D_nt contains negative values")
            raise SchemaError("Demand D_nt must be non-negative")
        A_gnt = np.asarray(self.A_gnt)
        if np.any((A_gnt < 0) | (A_gnt > 1)):
            logger.error("Availability A_gnt contains values outside [0, 1]")
            raise SchemaError("Availability A_gnt must be within [0, 1]")

        for name, shape in self.shapes().items():
            actual = np.shape(getattr(self, name))
            if actual != shape:
                logger.error(f"Parameter {name} has shape {actual} but the index sets require {shape}")
                raise DimensionError(f"Parameter {name} has shape {actual} but the index sets require {shape}")

    def positions(self) -> IndexPositions:
        """Index-to-slot mapping for every index set."""
        return IndexPositions(
            G={g: i for i, g in enumerate(self.G)},
            N={n: i for i, n in enumerate(self.N)},
            L={l: l - 1 for l in range(1, len(self.L) + 1)},
            T={t: i for i, t in enumerate(self.T)},
            S={s: i for i, s in enumerate(self.S)},
        )

    @classmethod
    @timeit
    def from_instance(cls, instance_path: str) -> Params:
        """
        Loading of parameter values for an instance from CSV and JSON files.

        Reads the following files from `instance_path`:

        - `indices.json` with fields `G`, `G_r`, `N`, `L`, `T`, `S`
        - `constants.json` with fields `kappa`, `C`, `C_bar`, `r`
        - `nodes/<n>.csv` with columns `Dem_Inc`, `Load_mod`, `Max_Load`,
          `Avail_Win`, `Avail_Sol`, one row per time step
        - `technology.csv` with columns `cost`, `lifetime`, `M`,
          `fuel_cost_1`, `fuel_cost_2`, `r_minus`, `r_plus`
        - `transmission.csv` with columns `M`, `cost`, `dist`, `lifetime`, `C`, `B`
        - `storage.csv` with columns `xi`, `cost`, `lifetime`, `C`, `b0_<n>`
        - `availability.json` (optional) mapping availability columns to technologies
        - `existing_capacity.csv` (optional) with columns `Q_<n>`
        """
        if not os.path.isdir(instance_path):
            logger.error(f"Instance directory not found: '{instance_path}'")
            raise FileNotFoundError(f"Instance directory not found: '{instance_path}'")

        logger.info(f" - Instance directory: {instance_path}")

        # Indices
        indices_file = os.path.join(instance_path, "indices.json")
        indices = read_json_document(indices_file, ["G", "G_r", "N", "L", "T", "S"])
        G = to_int_list(indices["G"], "G", indices_file)
        G_r = to_int_list(indices["G_r"], "G_r", indices_file)
        N = to_int_list(indices["N"], "N", indices_file)
        if not isinstance(indices["L"], list):
            raise SchemaError(f"Field 'L' in '{indices_file}' must be a list of node pairs")
        L = [tuple(to_int_list(line, "L", indices_file)) for line in indices["L"]]
        try:
            n_steps = int(indices["T"])
        except (TypeError, ValueError) as e:
            raise SchemaError(f"Field 'T' in '{indices_file}' must be an integer") from e
        T = list(range(1, n_steps + 1))
        S = to_int_list(indices["S"], "S", indices_file)
        unknown = [g for g in G_r if g not in G]
        if unknown:
            logger.error(f"Renewable technologies {unknown} in '{indices_file}' are not in G")
            raise DimensionError(f"Renewable technologies {unknown} in '{indices_file}' are not in G")
        logger.info(f"   Size: |G|={len(G)}, |N|={len(N)}, |L|={len(L)}, |T|={len(T)}, |S|={len(S)}")

        # Constants
        constants_file = os.path.join(instance_path, "constants.json")
        constants = read_json_document(constants_file, ["kappa", "C", "C_bar", "r"])
        try:
            kappa, C, C_bar, interest_rate = (float(constants[k]) for k in ("kappa", "C", "C_bar", "r"))
        except (TypeError, ValueError) as e:
            raise SchemaError(f"Constants in '{constants_file}' must be numbers") from e

        # Time clustering is not implemented: one cluster, unit weights.
        tau = 1
        tau_t = np.ones(len(T))

        # Availability columns are mapped explicitly to technologies
        availability = _read_availability_mapping(instance_path, G, G_r)
        g_pos = {g: i for i, g in enumerate(G)}

        logger.info(" - Node time series")
        D_nt = np.zeros((len(N), len(T)))
        A_gnt = np.ones((len(G), len(N), len(T)))
        for i, n in enumerate(N):
            df = read_csv_table(
                os.path.join(instance_path, "nodes", f"{n}.csv"),
                ["Dem_Inc", "Load_mod", "Max_Load", *AVAILABILITY_COLUMNS],
                n_rows=len(T))
            D_nt[i, :] = column(df, "Dem_Inc")[0] * column(df, "Load_mod") * column(df, "Max_Load")[0]
            for col, g in availability.items():
                A_gnt[g_pos[g], i, :] = column(df, col)

        logger.info(" - Technology parameters")
        technology = read_csv_table(
            os.path.join(instance_path, "technology.csv"),
            ["cost", "lifetime", "M", "fuel_cost_1", "fuel_cost_2", "r_minus", "r_plus"],
            n_rows=len(G))
        I_g = equivalent_annual_cost(column(technology, "cost"), column(technology, "lifetime"), interest_rate)
        M_g = column(technology, "M")
        C_g = column(technology, "fuel_cost_1") / column(technology, "fuel_cost_2") / 1000
        r_minus_g = column(technology, "r_minus")
        r_plus_g = column(technology, "r_plus")

        logger.info(" - Transmission parameters")
        transmission = read_csv_table(
            os.path.join(instance_path, "transmission.csv"),
            ["M", "cost", "dist", "lifetime", "C", "B"],
            n_rows=len(L))
        M_l = column(transmission, "M")
        I_l = equivalent_annual_cost(column(transmission, "cost") * column(transmission, "dist") + M_l,
                                     column(transmission, "lifetime"), interest_rate)
        C_l = column(transmission, "C")
        B_l = column(transmission, "B")

        logger.info(" - Storage parameters")
        b0_columns = [f"b0_{n}" for n in N]
        storage = read_csv_table(
            os.path.join(instance_path, "storage.csv"),
            ["xi", "cost", "lifetime", "C", *b0_columns],
            n_rows=len(S))
        xi_s = column(storage, "xi")
        I_s = equivalent_annual_cost(column(storage, "cost"), column(storage, "lifetime"), interest_rate)
        C_s = column(storage, "C")
        b0_sn = storage.select(b0_columns).to_numpy().astype(float).reshape(len(S), len(N))

        Q_gn = np.zeros((len(G), len(N)))
        capacity_file = os.path.join(instance_path, "existing_capacity.csv")
        if os.path.exists(capacity_file):
            logger.info(" - Existing generation capacity")
            q_columns = [f"Q_{n}" for n in N]
            Q_gn = read_csv_table(capacity_file, q_columns, n_rows=len(G)).to_numpy().astype(float)

        return cls(
            G=G, G_r=G_r, N=N, L=L, T=T, S=S, kappa=kappa, C=C, C_bar=C_bar, tau=tau,
            tau_t=tau_t, Q_gn=Q_gn, A_gnt=A_gnt, D_nt=D_nt, I_g=I_g, M_g=M_g, C_g=C_g,
            r_minus_g=r_minus_g, r_plus_g=r_plus_g, I_l=I_l, M_l=M_l, C_l=C_l, B_l=B_l,
            xi_s=xi_s, I_s=I_s, C_s=C_s, b0_sn=b0_sn)


def _read_availability_mapping(instance_path: str, G: list[int], G_r: list[int]) -> dict[str, int]:
    """Availability column -> technology. Defaults to pairing the columns with G_r in order."""

    mapping_file = os.path.join(instance_path, "availability.json")
    if not os.path.exists(mapping_file):
        if len(G_r) > len(AVAILABILITY_COLUMNS):
            logger.warning(f"Renewable technologies {G_r[len(AVAILABILITY_COLUMNS):]} have no availability column "
                           f"and are treated as always available. Map them in '{mapping_file}'.")
        return dict(zip(AVAILABILITY_COLUMNS, G_r))

    document = read_json_document(mapping_file, [])
    mapping = {}
    for col, g in document.items():
        if col not in AVAILABILITY_COLUMNS:
            logger.error(f"Unknown availability column '{col}' in '{mapping_file}'")
            raise SchemaError(f"Unknown availability column '{col}' in '{mapping_file}', "
                              f"expected one of {AVAILABILITY_COLUMNS}")
        if isinstance(g, bool) or not isinstance(g, int) or g not in G:
            logger.error(f"Availability column '{col}' is mapped to unknown technology {g!r}")
            raise SchemaError(f"Availability column '{col}' is mapped to unknown technology {g!r}")
        mapping[col] = g

    if len(set(mapping.values())) != len(mapping):
        raise SchemaError(f"Two availability columns are mapped to the same technology in '{mapping_file}'")

    return mapping
