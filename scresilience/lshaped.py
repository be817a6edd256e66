"""
================================================================================
Multicut L-Shaped Method with a Lazy-Constraint Callback
================================================================================

MASTER PROBLEM:
  Minimise  backup_cost(y, wip, fg) + (1/n) * sum_s theta[s] + risk(theta)
  s.t.      policy block (one option per facility, capacity / ramp links)
            risk-measure rows
            cuts, added lazily

  theta[s] >= 0 is the surrogate for the recourse cost of scenario s.

CALLBACK (every new integer-feasible candidate, before it is accepted):
  1. read the candidate policy
  2. update_rhs + solve every subproblem, stop at the first infeasible one
  3. infeasible -> feasibility cut   sum_i farkas_i * rhs_i(policy) <= 0
                   (reject, no optimality cuts this round)
  4. otherwise, for every s with theta[s] < Q_s - FUZZ:
                   optimality cut    theta[s] >= c0_s + sum_i dual_i * rhs_i(policy)
  5. no cut -> candidate accepted; subproblem 0's trajectory is kept as the
               incumbent's representative

There is no separate convergence loop: Gurobi's branch-and-cut terminates
and the callback guarantees every accepted incumbent is correctly priced.

STATES:
  CREATED -> VARIABLES_BUILT -> OBJECTIVE_BUILT -> CONSTRAINTS_BUILT
          -> SOLVING -> CONVERGED | STOPPED | INFEASIBLE | ERROR

  STOPPED: an incumbent exists but optimality was not proven (time limit).
================================================================================
"""

import logging
import time
from collections import namedtuple
from enum import Enum

import gurobipy as gp

from .data import FUZZ
from .policy import PolicyVariables
from .rhs import accumulate
from .risk import make_risk_measure
from .solution import Solution
from .solver import GE, LE, ModelSession, Status
from .subproblem import RecourseSubproblem

log = logging.getLogger(__name__)

ACCEPTED = "accepted"
OPTIMALITY = "optimality"
FEASIBILITY = "feasibility"

Candidate = namedtuple("Candidate", ["policy", "outcome", "objective", "cuts"])


class EngineState(Enum):
    CREATED = "created"
    VARIABLES_BUILT = "variables built"
    OBJECTIVE_BUILT = "objective built"
    CONSTRAINTS_BUILT = "constraints built"
    SOLVING = "solving"
    CONVERGED = "converged"
    STOPPED = "stopped"
    INFEASIBLE = "infeasible"
    ERROR = "error"


class MulticutLShaped:
    def __init__(
        self,
        scenarios,
        risk_measure="neutral",
        strict_fill_rate=False,
        time_limit=None,
        mip_gap=None,
        threads=None,
        output=False,
    ):
        self.scenarios = list(scenarios)
        if not self.scenarios:
            raise ValueError("the master needs at least one scenario")
        self.risk = make_risk_measure(risk_measure)
        self.strict_fill_rate = strict_fill_rate
        self.session = ModelSession(
            "Master_Multicut",
            output=output,
            TimeLimit=time_limit,
            MIPGap=mip_gap,
            Threads=threads,
        )
        self.policy = PolicyVariables()
        self.scenario_cost = []
        self.subproblems = []
        self.state = EngineState.CREATED
        self.candidate_log = []
        self.incumbent = None
        self.cut_count = {OPTIMALITY: 0, FEASIBILITY: 0}
        self._backup_cost = None
        self._risk_term = None

    def _advance(self, expected, new):
        if self.state is not expected:
            raise RuntimeError(
                f"cannot move to '{new.value}' from '{self.state.value}' "
                f"(expected '{expected.value}')"
            )
        self.state = new

    # ------------------------------------------------------------------
    # building
    # ------------------------------------------------------------------
    def build_variables(self):
        self._advance(EngineState.CREATED, EngineState.VARIABLES_BUILT)
        n = len(self.scenarios)
        self.policy.add_variables(self.session)
        self.scenario_cost = self.session.add_vars(n, "scenario_cost")
        self.risk.add_variables(self.session, n)
        log.debug("[MASTER] variables for %d scenarios", n)

    def build_objective(self):
        self._advance(EngineState.VARIABLES_BUILT, EngineState.OBJECTIVE_BUILT)
        n = len(self.scenarios)
        self._backup_cost = self.policy.backup_cost()
        self._risk_term = self.risk.penalty(self.scenario_cost)
        expected = (1.0 / n) * gp.quicksum(self.scenario_cost)
        self.session.set_objective(self._backup_cost + expected + self._risk_term)
        log.debug("[MASTER] objective: backup cost + expected recourse + %s risk", self.risk.name)

    def build_constraints(self):
        self._advance(EngineState.OBJECTIVE_BUILT, EngineState.CONSTRAINTS_BUILT)
        self.policy.add_constraints(self.session)
        self.risk.add_constraints(self.session, self.scenario_cost)
        self.subproblems = [
            RecourseSubproblem(scenario, strict_fill_rate=self.strict_fill_rate, name=f"recourse_{s}")
            for s, scenario in enumerate(self.scenarios)
        ]
        self.session.use_callback(self._on_candidate)
        self.session.update()
        log.debug("[MASTER] %d subproblems attached", len(self.subproblems))

    def build(self):
        if self.state is EngineState.CREATED:
            self.build_variables()
        if self.state is EngineState.VARIABLES_BUILT:
            self.build_objective()
        if self.state is EngineState.OBJECTIVE_BUILT:
            self.build_constraints()

    # ------------------------------------------------------------------
    # cut generation
    # ------------------------------------------------------------------
    def _on_candidate(self, context):
        policy = self.policy.read(context.values)
        theta = context.values(self.scenario_cost)

        for s, sub in enumerate(self.subproblems):
            sub.update_rhs(policy)
            if sub.solve() is Status.INFEASIBLE:
                self._feasibility_cut(context, s, policy)
                return

        cuts = 0
        for s, sub in enumerate(self.subproblems):
            if sub.status is not Status.OPTIMAL:
                log.warning("[CUT] scenario %d: subproblem %s, skipped", s, sub.status.value)
                continue
            if theta[s] < sub.objective - FUZZ:
                constant, coefficients = accumulate(sub.optimality_terms(), sub.objective_constant)
                cut = self.policy.linearize(constant, coefficients)
                context.add_cut(self.scenario_cost[s] - cut, GE, 0.0)
                cuts += 1

        if cuts:
            self.cut_count[OPTIMALITY] += cuts
            self.candidate_log.append(Candidate(policy, OPTIMALITY, context.objective, cuts))
            log.debug("[CUT] %d optimality cuts, candidate %.2f rejected", cuts, context.objective)
            return

        self.candidate_log.append(Candidate(policy, ACCEPTED, context.objective, 0))
        self.incumbent = self.subproblems[0].record_solution()
        log.info("[MASTER] new incumbent %.2f: %s", context.objective, policy.describe())

    def _feasibility_cut(self, context, s, policy):
        constant, coefficients = accumulate(self.subproblems[s].farkas_terms())
        context.add_cut(self.policy.linearize(constant, coefficients), LE, 0.0)
        self.cut_count[FEASIBILITY] += 1
        self.candidate_log.append(Candidate(policy, FEASIBILITY, context.objective, 1))
        log.debug("[CUT] scenario %d infeasible, feasibility cut added", s)

    # ------------------------------------------------------------------
    # solving
    # ------------------------------------------------------------------
    def solve(self):
        self.build()
        self._advance(EngineState.CONSTRAINTS_BUILT, EngineState.SOLVING)
        started = time.time()
        try:
            status = self.session.solve()
        except gp.GurobiError as exc:
            log.error("[MASTER] solver error: %s", exc)
            self.state = EngineState.ERROR
            return Solution.empty(Status.UNKNOWN)
        except Exception:
            self.state = EngineState.ERROR
            raise
        elapsed = time.time() - started

        if self.session.has_incumbent:
            solution = self._finalize(status)
            log.info(
                "[MASTER] %s in %.1fs: cost %.2f, %d candidates, %d optimality / %d feasibility cuts",
                "optimal" if solution.converged else "stopped",
                elapsed,
                solution.total_cost,
                len(self.candidate_log),
                self.cut_count[OPTIMALITY],
                self.cut_count[FEASIBILITY],
            )
            return solution

        if status is Status.INFEASIBLE:
            self.state = EngineState.INFEASIBLE
            log.warning("[MASTER] no policy is feasible for every scenario")
        else:
            self.state = EngineState.ERROR
            log.error("[MASTER] search ended without an incumbent (Gurobi status %s)",
                      self.session.raw_status)
        return Solution.empty(status)

    def _finalize(self, status):
        policy = self.policy.read(self.session.values)
        representative = self.subproblems[0]
        representative.update_rhs(policy)
        sub_status = representative.solve()

        solution = representative.record_solution()
        solution.policy = policy
        solution.backup_cost = self.session.value(self._backup_cost)
        solution.risk_cost = self.session.value(self._risk_term)
        solution.scenario_costs = list(self.session.values(self.scenario_cost))
        solution.total_cost = self.session.best_bound
        solution.status = status
        solution.converged = status is Status.OPTIMAL and sub_status is Status.OPTIMAL
        if solution.converged:
            self.state = EngineState.CONVERGED
        else:
            self.state = EngineState.STOPPED
            log.warning(
                "[MASTER] stopped before optimality (master %s, representative %s), "
                "incumbent %.2f, bound %.2f",
                status.value, sub_status.value, self.session.objective_value, solution.total_cost,
            )
        return solution

    # ------------------------------------------------------------------
    def release_subproblems(self):
        for sub in self.subproblems:
            sub.release()
        self.subproblems = []

    def release(self):
        self.release_subproblems()
        self.session.release()
