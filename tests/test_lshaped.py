import logging

import pytest

pytest.importorskip("gurobipy")

from scresilience.data import (
    FACILITIES,
    FUZZ,
    IRR,
    RISK_AVERSION_FACTOR,
    SUPPLIER_CAPACITY,
    VARIABILITY_INDEX_PENALTY,
    WIP_COST,
)
from scresilience.deterministic import UnifiedModel
from scresilience.lshaped import ACCEPTED, FEASIBILITY, OPTIMALITY, EngineState, MulticutLShaped
from scresilience.policy import PolicyParameters
from scresilience.risk import RISK_MEASURES
from scresilience.solver import Status
from scresilience.subproblem import RecourseSubproblem

BASELINE = IRR * WIP_COST * SUPPLIER_CAPACITY


def run(scenarios, **kwargs):
    engine = MulticutLShaped(scenarios, **kwargs)
    solution = engine.solve()
    return engine, solution


def test_undisrupted_batch_needs_no_backup(undisrupted):
    engine, solution = run([undisrupted, undisrupted])
    assert engine.state is EngineState.CONVERGED
    assert solution.converged
    assert solution.total_cost == pytest.approx(BASELINE, rel=1e-4)
    assert solution.backup_cost == pytest.approx(0.0, abs=1e-6)
    assert all(solution.policy.options[f] == 0 for f in FACILITIES)
    assert solution.policy.wip_policy == pytest.approx(0.0, abs=1e-6)
    assert solution.scenario_costs == pytest.approx([BASELINE, BASELINE], rel=1e-4)
    engine.release()


@pytest.mark.parametrize("risk", sorted(RISK_MEASURES))
def test_every_risk_measure_solves(undisrupted, risk):
    engine, solution = run([undisrupted, undisrupted], risk_measure=risk)
    assert solution.converged
    # identical scenarios well below the cost target carry no risk penalty
    assert solution.risk_cost == pytest.approx(0.0, abs=1e-4)
    assert solution.total_cost == pytest.approx(BASELINE, rel=1e-4)
    engine.release()


def test_unknown_risk_measure_is_rejected(undisrupted):
    with pytest.raises(ValueError):
        MulticutLShaped([undisrupted], risk_measure="regret")


def test_empty_batch_is_rejected():
    with pytest.raises(ValueError):
        MulticutLShaped([])


def test_build_steps_follow_state_order(undisrupted):
    engine = MulticutLShaped([undisrupted])
    with pytest.raises(RuntimeError):
        engine.build_objective()
    engine.build_variables()
    assert engine.state is EngineState.VARIABLES_BUILT
    with pytest.raises(RuntimeError):
        engine.build_constraints()
    engine.build_objective()
    engine.build_constraints()
    assert engine.state is EngineState.CONSTRAINTS_BUILT
    engine.release()


def test_recorded_cost_matches_recourse_of_final_policy(undisrupted, supplier_outage):
    scenarios = [undisrupted, supplier_outage]
    engine, solution = run(scenarios)
    assert solution.converged

    recourse = []
    for scenario in scenarios:
        sub = RecourseSubproblem(scenario, policy=solution.policy)
        assert sub.solve() is Status.OPTIMAL
        recourse.append(sub.objective)
        sub.release()
    expected = solution.policy.backup_cost + sum(recourse) / len(recourse)
    assert solution.total_cost == pytest.approx(expected, rel=1e-3)
    for theta, cost in zip(solution.scenario_costs, recourse):
        assert theta >= cost - 1e-3
    assert engine.incumbent is not None
    assert any(c.outcome == ACCEPTED for c in engine.candidate_log)
    engine.release()


def test_decomposition_agrees_with_unified_model(supplier_outage):
    engine, solution = run([supplier_outage])
    unified = UnifiedModel(supplier_outage).solve()
    assert solution.converged and unified.converged
    assert solution.total_cost == pytest.approx(unified.total_cost, rel=1e-3)
    engine.release()
    unified_model_cost = unified.backup_cost + unified.operations_cost
    assert unified_model_cost == pytest.approx(unified.total_cost, rel=1e-6)


def test_feasibility_cuts_never_repeat_a_policy(supplier_outage, undisrupted):
    engine, solution = run([supplier_outage, undisrupted], strict_fill_rate=True)
    assert engine.state is EngineState.CONVERGED
    assert solution.converged
    assert engine.cut_count[FEASIBILITY] >= 1

    log = engine.candidate_log
    for position, candidate in enumerate(log):
        if candidate.outcome != FEASIBILITY:
            continue
        rejected = candidate.policy.key(digits=4)
        later = [c.policy.key(digits=4) for c in log[position + 1:]]
        assert rejected not in later

    # the final policy is feasible for every scenario
    for scenario in (supplier_outage, undisrupted):
        sub = RecourseSubproblem(scenario, policy=solution.policy, strict_fill_rate=True)
        assert sub.solve() is Status.OPTIMAL
        sub.release()
    engine.release()


def test_release_frees_subproblems(undisrupted):
    engine, _ = run([undisrupted])
    engine.release_subproblems()
    assert engine.subproblems == []
    engine.release()


@pytest.mark.parametrize("risk", ["robust", "variabilityIdx"])
def test_spread_penalty_on_unequal_scenarios(undisrupted, supplier_outage, risk):
    engine, solution = run([undisrupted, supplier_outage], risk_measure=risk)
    assert solution.converged
    theta = solution.scenario_costs
    assert abs(theta[0] - theta[1]) > 1.0

    mean = sum(theta) / len(theta)
    if risk == "robust":
        expected = RISK_AVERSION_FACTOR / len(theta) * sum((t - mean) ** 2 for t in theta)
    else:
        expected = VARIABILITY_INDEX_PENALTY / len(theta) * sum(max(0.0, t - mean) for t in theta)
    assert expected > 0.0
    assert solution.risk_cost == pytest.approx(expected, rel=1e-4, abs=1e-3)
    engine.release()


def test_unproven_incumbent_leaves_engine_stopped(undisrupted):
    engine, _ = run([undisrupted])
    engine.state = EngineState.SOLVING
    stopped = engine._finalize(Status.UNKNOWN)
    assert engine.state is EngineState.STOPPED
    assert not stopped.converged
    assert stopped.policy is not None
    engine.release()


# ----------------------------------------------------------------------------
# callback, driven with a hand-made candidate
# ----------------------------------------------------------------------------
class StubCandidate:
    objective = 0.0

    def __init__(self, theta):
        self.theta = list(theta)
        self.cuts = []

    def values(self, variables):
        return list(self.theta)

    def add_cut(self, lhs, sense, rhs):
        self.cuts.append((lhs, sense, rhs))


def engine_proposing(scenarios, policy, monkeypatch):
    engine = MulticutLShaped(scenarios)
    engine.build()
    monkeypatch.setattr(engine.policy, "read", lambda values: policy)
    return engine


def recourse_cost(scenario, policy):
    sub = RecourseSubproblem(scenario, policy=policy)
    assert sub.solve() is Status.OPTIMAL
    cost = sub.objective
    sub.release()
    return cost


def test_surrogate_within_tolerance_is_accepted(undisrupted, supplier_outage, monkeypatch):
    scenarios = [undisrupted, supplier_outage]
    policy = PolicyParameters.none()
    costs = [recourse_cost(s, policy) for s in scenarios]
    engine = engine_proposing(scenarios, policy, monkeypatch)

    tied = StubCandidate([costs[0] - FUZZ / 2, costs[1] + 1.0])
    engine._on_candidate(tied)
    assert tied.cuts == []
    assert engine.candidate_log[-1].outcome == ACCEPTED
    assert engine.incumbent is not None

    short = StubCandidate([costs[0] - 10 * FUZZ, costs[1]])
    engine._on_candidate(short)
    assert len(short.cuts) == 1
    assert engine.candidate_log[-1].outcome == OPTIMALITY
    assert engine.candidate_log[-1].cuts == 1
    engine.release()


def test_unsettled_subproblem_is_skipped(undisrupted, supplier_outage, monkeypatch, caplog):
    engine = engine_proposing([undisrupted, supplier_outage], PolicyParameters.none(), monkeypatch)
    skipped = engine.subproblems[1]

    def unknown():
        skipped.status = Status.UNKNOWN
        return skipped.status

    monkeypatch.setattr(skipped, "solve", unknown)
    low = StubCandidate([0.0, 0.0])
    with caplog.at_level(logging.WARNING, logger="scresilience.lshaped"):
        engine._on_candidate(low)

    # only scenario 0 is priced
    assert len(low.cuts) == 1
    assert engine.candidate_log[-1].outcome == OPTIMALITY
    assert "scenario 1: subproblem unknown, skipped" in caplog.text
    engine.release()
