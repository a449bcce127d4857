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
    """Construction of generator variables, constraints, and costs."""

    pos = params.positions()
    A_gnt, Q_gn, tau_t = params.A_gnt, params.Q_gn, params.tau_t

    logger.info(" - Decision variables of dispatch")
    model.p_gnt = pyo.Var(model.G, model.N, model.T, within=pyo.NonNegativeReals)
    logger.info(f"   Size: {len(model.p_gnt)} variables")

    logger.info(" - Decision variables of capacity expansion for generators")
    model.p_bar_gn = pyo.Var(model.G, model.N, within=pyo.NonNegativeReals)
    logger.info(f"   Size: {len(model.p_bar_gn)} variables")

    logger.info(" - Constraints on dispatch based on availability and existing/built capacity")
    def cMaxDispatch_rule(m, g, n, t):
        gi, ni, ti = pos.G[g], pos.N[n], pos.T[t]
        return m.p_gnt[g, n, t] <= float(A_gnt[gi, ni, ti]) * (float(Q_gn[gi, ni]) + m.p_bar_gn[g, n])

    model.cMaxDispatch = pyo.Constraint(model.G, model.N, model.T, rule=cMaxDispatch_rule)
    logger.info(f"   Size: {len(model.cMaxDispatch)} constraints")

    logger.info(" - Expressions for dispatch at any node")
    model.eGenAtBus = pyo.Expression(model.N, model.T, rule=lambda m, n, t: sum(m.p_gnt[g, n, t] for g in m.G))
    logger.info(f"   Size: {len(model.eGenAtBus)} expressions")

    if specs.ramping:
        # Ramp-down limit bounds the decrease, ramp-up limit bounds the increase.
        logger.info(" - Ramping constraints")
        model.cRampDown = pyo.Constraint(model.G, model.N, model.T_succ, rule=lambda m, g, n, t:
                        m.p_gnt[g, n, t] - m.p_gnt[g, n, t - 1] >= -float(params.r_minus_g[pos.G[g]]))
        model.cRampUp = pyo.Constraint(model.G, model.N, model.T_succ, rule=lambda m, g, n, t:
                        m.p_gnt[g, n, t] - m.p_gnt[g, n, t - 1] <= float(params.r_plus_g[pos.G[g]]))
        logger.info(f"   Size: {len(model.cRampDown) + len(model.cRampUp)} constraints")

    if specs.renewable_target:
        logger.info(" - Minimum renewables share constraint")
        def cRenewableTarget_rule(m):
            if len(m.p_gnt) == 0 or (len(m.G_r) == 0 and params.kappa == 0):
                return pyo.Constraint.Skip
            return (sum(m.p_gnt[g, n, t] for g in m.G_r for n in m.N for t in m.T) >=
                    params.kappa * sum(m.p_gnt[g, n, t] for g in m.G for n in m.N for t in m.T))

        model.cRenewableTarget = pyo.Constraint(rule=cRenewableTarget_rule)
        logger.info(f"   Size: {len(model.cRenewableTarget)} constraints")

    logger.info(" - Expressions for generation costs")
    model.f1 = pyo.Expression(expr=sum(float(params.I_g[pos.G[g]] + params.M_g[pos.G[g]]) * model.p_bar_gn[g, n]
                                       for g in model.G for n in model.N))
    model.f2 = pyo.Expression(expr=sum(float(params.C_g[pos.G[g]] * tau_t[pos.T[t]]) * model.p_gnt[g, n, t]
                                       for g in model.G for n in model.N for t in model.T))
    model.cost_components.extend([model.f1, model.f2])
