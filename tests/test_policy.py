import pytest

gp = pytest.importorskip("gurobipy")

from scresilience import rhs
from scresilience.data import (
    FACILITIES,
    FG_COST,
    MAX_DELAY,
    NUM_BACKUP_OPTIONS,
    WEEKS_PER_YEAR,
    WIP_COST,
    Facility,
)
from scresilience.operations import OperationsModel
from scresilience.policy import PolicyParameters, PolicyVariables
from scresilience.scenario import Scenario
from scresilience.solver import EQ, ModelSession, Status


def test_from_options_derives_capacity_and_ramp():
    policy = PolicyParameters.from_options(supplier=1, plant=4, dc=6)
    # supplier option 1: 50% of 150 after 4 weeks
    assert policy.capacity[Facility.SUPPLIER] == 75.0
    assert policy.delayed_capacity[Facility.SUPPLIER] == (75.0, 75.0, 75.0, 75.0, 0.0, 0.0)
    # plant option 4: full capacity after 6 weeks, still ramping for the whole window
    assert policy.delayed_capacity[Facility.PLANT] == (150.0,) * MAX_DELAY
    # DC option 6: 100% of mean demand after one week
    assert policy.capacity[Facility.DC] == 100.0
    assert policy.delayed_capacity[Facility.DC] == (100.0, 0.0, 0.0, 0.0, 0.0, 0.0)


def test_available_capacity_follows_ramp():
    policy = PolicyParameters.from_options(supplier=2)
    assert policy.available_capacity(Facility.SUPPLIER, 0) == 0.0
    assert policy.available_capacity(Facility.SUPPLIER, 1) == 0.0
    assert policy.available_capacity(Facility.SUPPLIER, 2) == 75.0
    assert policy.available_capacity(Facility.SUPPLIER, MAX_DELAY + 3) == 75.0


def test_backup_cost_includes_buffer_levels():
    policy = PolicyParameters.from_options(supplier=1, plant=2, dc=3, wip_policy=52.0, fg_policy=104.0)
    expected = 400.0 + 1800.0 + 6000.0 + WIP_COST + 2 * FG_COST
    assert policy.backup_cost == pytest.approx(expected)


def test_no_backup_policy_costs_nothing():
    assert PolicyParameters.none().backup_cost == 0.0


@pytest.mark.parametrize("index", [-1, 7])
def test_option_must_be_on_menu(index):
    with pytest.raises(ValueError):
        PolicyParameters.from_options(plant=index)


def test_delayed_vector_length_is_checked():
    policy = PolicyParameters.none()
    delayed = dict(policy.delayed_capacity)
    delayed[Facility.DC] = (0.0,) * (MAX_DELAY - 1)
    with pytest.raises(ValueError):
        PolicyParameters(policy.options, policy.capacity, delayed)


def test_rhs_expressions_evaluate_against_policy():
    policy = PolicyParameters.from_options(supplier=5, wip_policy=30.0)
    assert rhs.Constant(7).evaluate(policy) == 7.0
    assert rhs.PolicyReference(rhs.wip_policy(), 2.0).evaluate(policy) == 60.0
    ceiling = rhs.RhsSum(
        rhs.PolicyReference(rhs.capacity(Facility.SUPPLIER)),
        rhs.PolicyReference(rhs.delayed_capacity(Facility.SUPPLIER, 1), -1.0),
    )
    assert ceiling.evaluate(policy) == 0.0
    ceiling = rhs.RhsSum(
        rhs.PolicyReference(rhs.capacity(Facility.SUPPLIER)),
        rhs.PolicyReference(rhs.delayed_capacity(Facility.SUPPLIER, 2), -1.0),
    )
    assert ceiling.evaluate(policy) == 150.0
    assert ceiling.depends_on_policy
    assert not rhs.RhsSum(rhs.Constant(1), rhs.ZERO).depends_on_policy


def test_accumulate_merges_fields_and_drops_tiny_multipliers():
    cap = rhs.capacity(Facility.PLANT)
    terms = [
        (2.0, rhs.Constant(10)),
        (-1.5, rhs.PolicyReference(cap)),
        (0.5, rhs.RhsSum(rhs.PolicyReference(cap), rhs.Constant(4))),
        (1e-12, rhs.PolicyReference(rhs.fg_policy())),
    ]
    constant, coefficients = rhs.accumulate(terms, constant=1.0)
    assert constant == pytest.approx(1.0 + 20.0 + 2.0)
    assert coefficients == {cap: pytest.approx(-1.0)}


def test_backup_ceiling_shape_over_outage(flat_demand):
    model = OperationsModel(Scenario.build(flat_demand, dc=(19, 12)))
    assert model.backup_ceiling(Facility.DC, 18) is rhs.ZERO
    ramping = model.backup_ceiling(Facility.DC, 21)
    assert isinstance(ramping, rhs.RhsSum)
    assert rhs.delayed_capacity(Facility.DC, 2) in dict(ramping.terms())
    full = model.backup_ceiling(Facility.DC, 19 + MAX_DELAY)
    assert isinstance(full, rhs.PolicyReference)
    assert model.backup_ceiling(Facility.DC, 31) is rhs.ZERO
    assert model.backup_ceiling(Facility.SUPPLIER, 25) is rhs.ZERO
    assert len(model.scenario.demand) == WEEKS_PER_YEAR


@pytest.mark.parametrize("index", range(NUM_BACKUP_OPTIONS))
def test_policy_block_accepts_every_option(index):
    session = ModelSession("policy_block")
    block = PolicyVariables().add_variables(session).add_constraints(session)
    for facility in FACILITIES:
        session.add_constr(block.selectors[facility][index], EQ, 1.0)
    session.set_objective(gp.quicksum(
        gp.quicksum(block.delayed[facility]) for facility in FACILITIES
    ))
    try:
        assert session.solve() is Status.OPTIMAL
        chosen = block.read(session.values)
    finally:
        session.release()

    expected = PolicyParameters.from_options(index, index, index)
    for facility in FACILITIES:
        assert chosen.options[facility] == index
        assert chosen.capacity[facility] == pytest.approx(expected.capacity[facility])
        assert chosen.delayed_capacity[facility] == pytest.approx(
            expected.delayed_capacity[facility]
        )
