"""
================================================================================
Recourse Subproblem - second stage for one scenario
================================================================================

Given a scenario and the master's current PolicyParameters, solve the weekly
operations LP and expose what the master needs to build cuts:

  duals       get_dual(row_id) after an optimal solve
  Farkas ray  dual_farkas()    after an infeasible solve
  RHS         get_rhs(row_id)  symbolic right-hand side of each row

Every row is registered once, at build time, under a stable integer id.  Rows
whose right-hand side depends on the policy (buffer initial levels, backup
ceilings) are refreshed in place by update_rhs(); the row set itself never
changes, so successive re-solves warm start from the previous basis.
================================================================================
"""

import logging

import gurobipy as gp

from .operations import OperationsModel
from .policy import PolicyParameters
from .solver import ModelSession, Status

log = logging.getLogger(__name__)


class RecourseSubproblem(OperationsModel):
    def __init__(self, scenario, policy=None, strict_fill_rate=False, name=None):
        super().__init__(scenario, strict_fill_rate)
        self.name = name or "recourse"
        self.policy = policy if policy is not None else PolicyParameters.none()
        self._rows = []
        self._rhs = []
        self._policy_rows = []

    def _new_session(self):
        return ModelSession(self.name, farkas=True, Method=1)

    def build(self):
        if not self.built:
            # rows of a released model are gone; ids restart at 0
            self._rows, self._rhs, self._policy_rows = [], [], []
        super().build()

    def _add_row(self, name, lhs, sense, expression):
        value = expression.evaluate(self.policy)
        if expression.depends_on_policy:
            value = max(0.0, value)
            self._policy_rows.append(len(self._rows))
        self._rows.append(self.session.add_constr(lhs, sense, value, name=name))
        self._rhs.append(expression)

    # ------------------------------------------------------------------
    def update_rhs(self, policy):
        """Point every policy-dependent row at ``policy``."""
        self.policy = policy
        self.status = None
        if not self.built:
            return
        for row_id in self._policy_rows:
            value = max(0.0, self._rhs[row_id].evaluate(policy))
            self.session.set_rhs(self._rows[row_id], value)

    def solve(self):
        self.build()
        try:
            self.status = self.session.solve()
        except gp.GurobiError as exc:
            log.error("[SUBPROBLEM] %s: solver error %s", self.name, exc)
            self.status = Status.UNKNOWN
        return self.status

    @property
    def objective(self):
        return self.session.objective_value

    # ------------------------------------------------------------------
    def constraints(self):
        """Ids of every tracked row."""
        return range(len(self._rows))

    def get_rhs(self, row_id):
        self._require(Status.OPTIMAL, "right-hand sides")
        return self._rhs[row_id]

    def get_dual(self, row_id):
        self._require(Status.OPTIMAL, "duals")
        return self.session.dual(self._rows[row_id])

    def duals(self):
        """Dual of every row, in id order."""
        self._require(Status.OPTIMAL, "duals")
        return self.session.duals(self._rows)

    def optimality_terms(self):
        """``(dual, rhs_expression)`` pairs over all tracked rows."""
        return list(zip(self.duals(), self._rhs))

    def dual_farkas(self):
        """``(row_id, coefficient)`` pairs proving infeasibility."""
        self._require(Status.INFEASIBLE, "a Farkas certificate")
        coefficients = self.session.farkas_certificate(self._rows)
        return [(row_id, coef) for row_id, coef in enumerate(coefficients) if coef != 0.0]

    def farkas_terms(self):
        return [(coef, self._rhs[row_id]) for row_id, coef in self.dual_farkas()]

    def _require(self, status, what):
        if self.status is not status:
            raise RuntimeError(
                f"{self.name}: {what} need a {status.value} solve, last status is "
                f"{self.status.value if self.status else 'unsolved'}"
            )

    # ------------------------------------------------------------------
    def record_solution(self):
        solution = super().record_solution()
        solution.policy = self.policy
        return solution
