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
    """Construction of storage variables, constraints, and costs."""

    pos = params.positions()
    xi_s, b0_sn, tau_t = params.xi_s, params.b0_sn, params.tau_t
    t_first, t_last = (model.T.first(), model.T.last()) if len(model.T) else (None, None)

    logger.info(" - Decision variables")
    model.b_snt = pyo.Var(model.S, model.N, model.T, within=pyo.NonNegativeReals)
    model.b_bar_sn = pyo.Var(model.S, model.N, within=pyo.NonNegativeReals)
    model.b_plus_snt = pyo.Var(model.S, model.N, model.T, within=pyo.NonNegativeReals)
    model.b_minus_snt = pyo.Var(model.S, model.N, model.T, within=pyo.NonNegativeReals)
    n_vars = len(model.b_snt) + len(model.b_bar_sn) + len(model.b_plus_snt) + len(model.b_minus_snt)
    logger.info(f"   Size: {n_vars} variables")

    # Change of the storage level with respect to the previous step.
    # The first step has no previous level in the energy balance.
    logger.info(" - Storage injection expressions")
    def eStorageInjection_rule(m, s, n, t):
        xi = float(xi_s[pos.S[s]])
        if t == t_first:
            return xi * m.b_snt[s, n, t]
        return xi * (m.b_snt[s, n, t] - m.b_snt[s, n, t - 1])

    model.eStorageInjection = pyo.Expression(model.S, model.N, model.T, rule=eStorageInjection_rule)
    logger.info(f"   Size: {len(model.eStorageInjection)} expressions")

    if specs.storage:
        # Level change is measured against the initial state of charge at the first step.
        def level_change(m, s, n, t):
            if t == t_first:
                return m.b_snt[s, n, t] - float(b0_sn[pos.S[s], pos.N[n]])
            return m.b_snt[s, n, t] - m.b_snt[s, n, t - 1]

        logger.info(" - Charge and discharge constraints")
        model.cCharge = pyo.Constraint(model.S, model.N, model.T, rule=lambda m, s, n, t:
                        m.b_plus_snt[s, n, t] >= level_change(m, s, n, t))
        model.cDischarge = pyo.Constraint(model.S, model.N, model.T, rule=lambda m, s, n, t:
                        m.b_minus_snt[s, n, t] >= -level_change(m, s, n, t))
        logger.info(f"   Size: {len(model.cCharge) + len(model.cDischarge)} constraints")

        logger.info(" - Maximum storage level constraints")
        model.cMaxStorageLevel = pyo.Constraint(model.S, model.N, model.T, rule=lambda m, s, n, t:
                        m.b_snt[s, n, t] <= m.b_bar_sn[s, n])
        logger.info(f"   Size: {len(model.cMaxStorageLevel)} constraints")

        logger.info(" - Cyclic storage level constraints")
        def cCyclicStorage_rule(m, s, n):
            if t_first == t_last:
                return pyo.Constraint.Skip
            return m.b_snt[s, n, t_first] == m.b_snt[s, n, t_last]

        model.cCyclicStorage = pyo.Constraint(model.S, model.N, rule=cCyclicStorage_rule)
        logger.info(f"   Size: {len(model.cCyclicStorage)} constraints")

    logger.info(" - Expressions for storage costs")
    model.f6 = pyo.Expression(expr=sum(float(params.I_s[pos.S[s]]) * model.b_bar_sn[s, n]
                                       for s in model.S for n in model.N))
    model.f7 = pyo.Expression(expr=sum(float(params.C_s[pos.S[s]] * tau_t[pos.T[t]])
                                       * (model.b_plus_snt[s, n, t] + model.b_minus_snt[s, n, t])
                                       for s in model.S for n in model.N for t in model.T))
    model.cost_components.extend([model.f6, model.f7])
