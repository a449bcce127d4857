import pyomo.environ as pyo
from pyomo.core.expr import identify_variables
from pyomo.repn import generate_standard_repn
import pytest

from esm.modules.capacity_expansion.core import CapacityExpansion
from esm.modules.capacity_expansion.utils import Specs
from esm.parameters.core import Params


@pytest.fixture
def params(make_instance):
    path = make_instance(
        G=(1, 2), G_r=(2,), N=(1, 2, 3), L=((1, 2), (2, 3)), T=4, S=(1,),
        kappa=0.2, demand={1: [1.0, 2.0, 3.0, 4.0], 3: [2.0, 2.0, 2.0, 2.0]},
    )
    return Params.from_instance(path)


def build(params, **specs):
    return CapacityExpansion(params=params, specs=Specs(**specs)).model


def test_variables_cover_index_sets(params):
    model = build(params)

    assert len(model.p_gnt) == 2 * 3 * 4
    assert len(model.p_bar_gn) == 2 * 3
    assert len(model.sigma_nt) == 3 * 4
    assert len(model.f_lt) == len(model.f_lt_abs) == 2 * 4
    assert len(model.f_bar_l) == 2
    assert len(model.b_snt) == len(model.b_plus_snt) == len(model.b_minus_snt) == 1 * 3 * 4
    assert len(model.b_bar_sn) == 3
    assert len(model.theta_nt) == len(model.theta_prime_nt) == 3 * 4


def test_all_families_included(params):
    model = build(params)

    assert len(model.cRampUp) == len(model.cRampDown) == 2 * 3 * 3
    assert len(model.cRenewableTarget) == 1
    assert len(model.cVoltageAngle) == 2 * 4
    assert len(model.cCharge) == len(model.cDischarge) == len(model.cMaxStorageLevel) == 1 * 3 * 4
    assert len(model.cCyclicStorage) == 1 * 3
    # Balance is stated per storage unit when storage is included
    assert len(model.cEnergyBalance) == 1 * 3 * 4


def test_optional_families_excluded(params):
    model = build(params, renewable_target=False, storage=False, ramping=False, voltage_angles=False)

    for name in ("cRampUp", "cRampDown", "cRenewableTarget", "cVoltageAngle",
                 "cCharge", "cDischarge", "cMaxStorageLevel", "cCyclicStorage"):
        assert not hasattr(model, name)
    # Storage still contributes to the balance
    assert model.cEnergyBalance.dim() == 3
    assert len(model.cEnergyBalance) == 1 * 3 * 4
    assert len(model.cMaxDispatch) == 2 * 3 * 4
    assert len(model.cMaxShedding) == 3 * 4


def test_ramping_bounds(params):
    model = build(params)

    up = model.cRampUp[1, 1, 2]
    down = model.cRampDown[1, 1, 2]
    assert pyo.value(up.upper) == pytest.approx(params.r_plus_g[0])
    assert pyo.value(down.lower) == pytest.approx(-params.r_minus_g[0])


def test_shedding_bound(params):
    model = build(params)
    assert pyo.value(model.cMaxShedding[1, 3].upper) == pytest.approx(params.C_bar * 3.0)


def test_energy_balance_right_hand_side(params):
    model = build(params, storage=False)
    assert pyo.value(model.cEnergyBalance[1, 1, 4].upper) == pytest.approx(4.0)
    assert pyo.value(model.cEnergyBalance[1, 2, 4].lower) == pytest.approx(0.0)


def test_flow_into_node(params):
    model = build(params)
    flows = {var.name for var in identify_variables(model.eFlowIntoBus[2, 1].expr)}
    assert flows == {"f_lt[1,1]", "f_lt[2,1]"}


def test_no_cyclic_constraint_with_single_step(make_instance):
    params = Params.from_instance(make_instance(S=(1,), T=1))
    model = build(params)
    assert len(model.cCyclicStorage) == 0


def test_objective_sums_cost_components(params):
    model = build(params)
    assert sorted(c.name for c in model.cost_components) == ["f1", "f2", "f3", "f4", "f5", "f6", "f7"]


TOL = 1e-9


def satisfied(constraint):
    body = pyo.value(constraint.body)
    lower_ok = constraint.lower is None or body >= pyo.value(constraint.lower) - TOL
    upper_ok = constraint.upper is None or body <= pyo.value(constraint.upper) + TOL
    return lower_ok and upper_ok


def linear_coefficients(expression):
    repn = generate_standard_repn(expression, compute_values=True)
    return {var.name: pytest.approx(coef) for var, coef in zip(repn.linear_vars, repn.linear_coefs)}


@pytest.fixture
def storage_params(make_instance):
    path = make_instance(
        N=(1,), T=3, S=(1,), demand={1: [5.0, 5.0, 5.0]},
        storage={"xi": [0.8], "cost": [100.0], "lifetime": [10], "C": [0.1], "b0_1": [1.0]},
    )
    return Params.from_instance(path)


def test_storage_term_in_balance_without_storage_constraints(storage_params):
    model = build(storage_params, storage=False)

    assert model.cEnergyBalance.dim() == 3
    names = {var.name for var in identify_variables(model.cEnergyBalance[1, 1, 2].body)}
    assert {"b_snt[1,1,1]", "b_snt[1,1,2]"} <= names
    assert not hasattr(model, "cCharge")


def test_balance_per_node_and_step_without_storage_units(make_instance):
    model = build(Params.from_instance(make_instance(N=(1, 2), T=2, S=())))
    assert model.cEnergyBalance.dim() == 2
    assert len(model.cEnergyBalance) == 2 * 2


def test_storage_injection(storage_params):
    model = build(storage_params)

    assert linear_coefficients(model.eStorageInjection[1, 1, 1].expr) == {"b_snt[1,1,1]": 0.8}
    assert linear_coefficients(model.eStorageInjection[1, 1, 3].expr) == {"b_snt[1,1,3]": 0.8,
                                                                         "b_snt[1,1,2]": -0.8}


def test_first_step_charge_measured_from_initial_level(storage_params):
    model = build(storage_params)
    charge, discharge = model.cCharge[1, 1, 1], model.cDischarge[1, 1, 1]

    # Level rises from b0 = 1 to 3
    model.b_snt[1, 1, 1].value = 3.0
    model.b_plus_snt[1, 1, 1].value = 2.0
    model.b_minus_snt[1, 1, 1].value = 0.0
    assert satisfied(charge) and satisfied(discharge)
    model.b_plus_snt[1, 1, 1].value = 1.9
    assert not satisfied(charge)

    # Level falls from b0 = 1 to 0.25
    model.b_snt[1, 1, 1].value = 0.25
    model.b_plus_snt[1, 1, 1].value = 0.0
    model.b_minus_snt[1, 1, 1].value = 0.75
    assert satisfied(charge) and satisfied(discharge)
    model.b_minus_snt[1, 1, 1].value = 0.7
    assert not satisfied(discharge)


def test_later_step_charge_measured_from_previous_level(storage_params):
    model = build(storage_params)

    model.b_snt[1, 1, 1].value = 4.0
    model.b_snt[1, 1, 2].value = 6.0
    model.b_plus_snt[1, 1, 2].value = 2.0
    model.b_minus_snt[1, 1, 2].value = 0.0
    assert satisfied(model.cCharge[1, 1, 2]) and satisfied(model.cDischarge[1, 1, 2])
    model.b_plus_snt[1, 1, 2].value = 1.5
    assert not satisfied(model.cCharge[1, 1, 2])


def test_voltage_angle_relation(make_instance):
    path = make_instance(
        N=(1, 2), L=((1, 2),), T=1,
        transmission={"M": [0.0], "cost": [0.0], "dist": [1.0], "lifetime": [40], "C": [0.0], "B": [3.0]},
    )
    model = build(Params.from_instance(path))
    constraint = model.cVoltageAngle[1, 1]

    # Signed angles: 0.5 - 0.1 at node 1, 0.2 - 0.0 at node 2
    model.theta_nt[1, 1].value, model.theta_prime_nt[1, 1].value = 0.5, 0.1
    model.theta_nt[2, 1].value, model.theta_prime_nt[2, 1].value = 0.2, 0.0
    model.f_lt[1, 1].value = 3.0 * 0.2
    assert satisfied(constraint)
    model.f_lt[1, 1].value = 0.2
    assert not satisfied(constraint)
