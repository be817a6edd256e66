"""
================================================================================
Deterministic Unified Model - one scenario, policy and operations together
================================================================================

A single MIP with the full policy block and the weekly operations LP of one
known scenario.  Every policy-dependent right-hand side of the operations
rows becomes the corresponding policy variable, so a backup option can only
be used inside its own facility's outage window, after its response time.

  Minimise  operations cost + backup cost
  s.t.      policy block
            operations rows (rhs = policy variables where applicable)

Useful as a regression anchor: with flat demand and no outage the optimum is
the pipeline WIP carrying cost IRR * WIP_COST * SUPPLIER_CAPACITY.
================================================================================
"""

import logging

import gurobipy as gp

from .operations import OperationsModel
from .policy import PolicyVariables
from .solver import ModelSession, Status

log = logging.getLogger(__name__)


class UnifiedModel(OperationsModel):
    def __init__(self, scenario, strict_fill_rate=False, time_limit=None, output=False):
        super().__init__(scenario, strict_fill_rate)
        self.time_limit = time_limit
        self.output = output
        self.policy = PolicyVariables()

    def _new_session(self):
        session = ModelSession("Unified", output=self.output, TimeLimit=self.time_limit)
        self.policy.add_variables(session)
        self.policy.add_constraints(session)
        return session

    def _extra_cost(self):
        return self.policy.backup_cost()

    def _add_row(self, name, lhs, sense, expression):
        if expression.depends_on_policy:
            right = self.policy.expression(expression)
        else:
            right = expression.evaluate(None)
        self.session.add_constr(lhs, sense, right, name=name)

    def solve(self):
        self.build()
        try:
            self.status = self.session.solve()
        except gp.GurobiError as exc:
            log.error("[MODEL] solver error: %s", exc)
            self.status = Status.UNKNOWN
        log.info("[MODEL] unified model %s", self.status.value)
        return self.record_solution()

    def record_solution(self):
        solution = super().record_solution()
        if self.status is Status.OPTIMAL:
            solution.policy = self.policy.read(self.session.values)
            solution.backup_cost = self.session.value(self.policy.backup_cost())
            solution.total_cost = self.session.objective_value
        return solution
