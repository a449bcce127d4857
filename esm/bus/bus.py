# -------------
# Import python packages
# --------------
import pyomo.environ as pyo
import logging

# -------------
# Import esm code
# --------------
from esm.parameters.core import Params
from esm.modules.capacity_expansion.utils import Specs
from esm.utils.runtime_tools import timeit

logger = logging.getLogger(__name__)

@timeit
def construct_capacity_expansion_model(params: Params, model: pyo.ConcreteModel, specs: Specs):
    """Construction of shedding variables, energy balance, and shedding costs."""

    pos = params.positions()
    D_nt, tau_t = params.D_nt, params.tau_t

    logger.info(" - Decision variables of load shedding")
    model.sigma_nt = pyo.Var(model.N, model.T, within=pyo.NonNegativeReals)
    logger.info(f"   Size: {len(model.sigma_nt)} variables")

    logger.info(" - Maximum load shedding constraints")
    model.cMaxShedding = pyo.Constraint(model.N, model.T, rule=lambda m, n, t:
                        m.sigma_nt[n, t] <= float(params.C_bar * D_nt[pos.N[n], pos.T[t]]))
    logger.info(f"   Size: {len(model.cMaxShedding)} constraints")

    def supply(m, n, t):
        return m.eGenAtBus[n, t] + m.sigma_nt[n, t] + m.eFlowIntoBus[n, t]

    logger.info(" - Energy balance at each node")
    # The storage term is part of the balance whether or not the storage
    # operating constraints are included.
    if len(model.S) > 0:
        # The balance is stated once per storage unit. With several units each
        # copy sees a single unit, which over-constrains the system.
        if len(model.S) > 1:
            logger.warning(f"   Energy balance is replicated for each of the {len(model.S)} storage units.")
        model.cEnergyBalance = pyo.Constraint(model.S, model.N, model.T, rule=lambda m, s, n, t:
                        supply(m, n, t) + m.eStorageInjection[s, n, t] == float(D_nt[pos.N[n], pos.T[t]]))
    else:
        model.cEnergyBalance = pyo.Constraint(model.N, model.T, rule=lambda m, n, t:
                        supply(m, n, t) == float(D_nt[pos.N[n], pos.T[t]]))
    logger.info(f"   Size: {len(model.cEnergyBalance)} constraints")

    logger.info(" - Load shedding cost expressions")
    model.f3 = pyo.Expression(expr=sum(float(params.C * tau_t[pos.T[t]]) * model.sigma_nt[n, t]
                                       for n in model.N for t in model.T))
    model.cost_components.append(model.f3)
