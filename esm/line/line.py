# -------------
# Import python packages
# --------------
from collections import defaultdict
import pyomo.environ as pyo
from pyomo.environ import quicksum
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
    """Construction of transmission variables, constraints, and costs."""

    pos = params.positions()
    endpoints = dict(zip(model.L, params.L))
    tau_t = params.tau_t

    logger.info(" - Decision variables of line flows and capacities")
    model.f_lt = pyo.Var(model.L, model.T, within=pyo.Reals)
    model.f_lt_abs = pyo.Var(model.L, model.T, within=pyo.Reals)
    model.f_bar_l = pyo.Var(model.L, within=pyo.NonNegativeReals)
    logger.info(f"   Size: {len(model.f_lt) + len(model.f_lt_abs) + len(model.f_bar_l)} variables")

    logger.info(" - Decision variables of voltage angles")
    model.theta_nt = pyo.Var(model.N, model.T, within=pyo.NonNegativeReals)
    model.theta_prime_nt = pyo.Var(model.N, model.T, within=pyo.NonNegativeReals)
    logger.info(f"   Size: {len(model.theta_nt) + len(model.theta_prime_nt)} variables")

    logger.info(" - Maximum and minimum flow constraints per line")
    model.cMaxFlow = pyo.Constraint(model.L, model.T, rule=lambda m, l, t: m.f_lt[l, t] <= m.f_bar_l[l])
    model.cMinFlow = pyo.Constraint(model.L, model.T, rule=lambda m, l, t: m.f_lt[l, t] >= -m.f_bar_l[l])
    logger.info(f"   Size: {len(model.cMaxFlow) + len(model.cMinFlow)} constraints")

    logger.info(" - Absolute value of flow constraints per line")
    model.cAbsFlowPos = pyo.Constraint(model.L, model.T, rule=lambda m, l, t: m.f_lt_abs[l, t] >= m.f_lt[l, t])
    model.cAbsFlowNeg = pyo.Constraint(model.L, model.T, rule=lambda m, l, t: m.f_lt_abs[l, t] >= -m.f_lt[l, t])
    logger.info(f"   Size: {len(model.cAbsFlowPos) + len(model.cAbsFlowNeg)} constraints")

    logger.info(" - Net inflow per node expressions")
    lines_to_bus = defaultdict(list)
    lines_from_bus = defaultdict(list)
    for l, (i, j) in endpoints.items():
        lines_from_bus[i].append(l)
        lines_to_bus[j].append(l)

    model.eFlowIntoBus = pyo.Expression(model.N, model.T, rule=lambda m, n, t:
                        quicksum(m.f_lt[l, t] for l in lines_to_bus[n])
                        - quicksum(m.f_lt[l, t] for l in lines_from_bus[n]))
    logger.info(f"   Size: {len(model.eFlowIntoBus)} expressions")

    if specs.voltage_angles:
        # The signed angle of a node is theta - theta_prime.
        logger.info(" - DC power flow constraints per line")
        def cVoltageAngle_rule(m, l, t):
            i, j = endpoints[l]
            angle_difference = (m.theta_nt[i, t] - m.theta_prime_nt[i, t]) - (m.theta_nt[j, t] - m.theta_prime_nt[j, t])
            return m.f_lt[l, t] == float(params.B_l[pos.L[l]]) * angle_difference

        model.cVoltageAngle = pyo.Constraint(model.L, model.T, rule=cVoltageAngle_rule)
        logger.info(f"   Size: {len(model.cVoltageAngle)} constraints")

    logger.info(" - Expressions for transmission costs")
    model.f4 = pyo.Expression(expr=sum(float(params.I_l[pos.L[l]] + params.M_l[pos.L[l]]) * model.f_bar_l[l]
                                       for l in model.L))
    model.f5 = pyo.Expression(expr=sum(float(params.C_l[pos.L[l]] * tau_t[pos.T[t]]) * model.f_lt_abs[l, t]
                                       for l in model.L for t in model.T))
    model.cost_components.extend([model.f4, model.f5])
