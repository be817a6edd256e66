"""
Thin session object over a gurobipy model.

Every component (master, subproblem, unified model) owns exactly one
ModelSession.  The session hides the handful of Gurobi specifics the rest of
the package needs:

  - parameter setup (OutputFlag, and the InfUnbdInfo / Presolve /
    DualReductions trio that makes Farkas certificates available)
  - status translation to the package's Status vocabulary
  - duals, Farkas certificates and in-place RHS updates
  - the MIPSOL lazy-constraint callback, exposed as a CandidateContext
  - explicit release of the native model
"""

import logging
from enum import Enum

import gurobipy as gp
from gurobipy import GRB

log = logging.getLogger(__name__)

# Constraint senses, passed straight through to addLConstr / cbLazy
LE = GRB.LESS_EQUAL     # lhs <= rhs
EQ = GRB.EQUAL          # lhs == rhs
GE = GRB.GREATER_EQUAL  # lhs >= rhs


class Status(Enum):
    OPTIMAL = "optimal"         # proven optimal; duals and X available
    INFEASIBLE = "infeasible"   # Farkas certificate available when requested
    UNBOUNDED = "unbounded"
    UNKNOWN = "unknown"         # time limit, numerical trouble, anything else


# Gurobi status codes we act on; every other code maps to Status.UNKNOWN
_STATUS = {
    GRB.OPTIMAL: Status.OPTIMAL,
    GRB.INFEASIBLE: Status.INFEASIBLE,
    GRB.UNBOUNDED: Status.UNBOUNDED,
}


def relation(lhs, sense, rhs):
    if sense == LE:
        return lhs <= rhs
    if sense == GE:
        return lhs >= rhs
    if sense == EQ:
        return lhs == rhs
    raise ValueError(f"unknown constraint sense {sense!r}")


class CandidateContext:
    """
    Read-only view of an integer-feasible candidate inside a MIPSOL callback,
    plus the sink for lazy cuts.
    """

    def __init__(self, model):
        self._model = model
        self.cuts_added = 0

    def value(self, var):
        return self._model.cbGetSolution(var)

    def values(self, variables):
        return self._model.cbGetSolution(list(variables))

    @property
    def objective(self):
        return self._model.cbGet(GRB.Callback.MIPSOL_OBJ)

    @property
    def best_bound(self):
        return self._model.cbGet(GRB.Callback.MIPSOL_OBJBND)

    def add_cut(self, lhs, sense, rhs):
        self._model.cbLazy(relation(lhs, sense, rhs))
        self.cuts_added += 1


class ModelSession:
    def __init__(self, name, output=False, farkas=False, **params):
        self.name = name
        self.model = gp.Model(name)
        self.model.Params.OutputFlag = 1 if output else 0
        if farkas:
            # certificate of infeasibility on the original (unpresolved) rows
            self.model.Params.InfUnbdInfo = 1
            self.model.Params.Presolve = 0
            self.model.Params.DualReductions = 0
        for key, value in params.items():
            if value is not None:
                self.model.setParam(key, value)
        self.status = None
        self._callback = None
        self._callback_error = None

    # ------------------------------------------------------------------
    # building
    # ------------------------------------------------------------------
    def add_var(self, name, lb=0.0, ub=GRB.INFINITY, binary=False):
        vtype = GRB.BINARY if binary else GRB.CONTINUOUS
        if binary:
        # binaries ignore the requested bounds
            lb, ub = 0.0, 1.0
        return self.model.addVar(lb=lb, ub=ub, vtype=vtype, name=name)

    def add_vars(self, count, name, lb=0.0, ub=GRB.INFINITY, binary=False):
        vtype = GRB.BINARY if binary else GRB.CONTINUOUS
        if binary:
            lb, ub = 0.0, 1.0
        created = self.model.addVars(count, lb=lb, ub=ub, vtype=vtype, name=name)
        # tupledict -> plain list, indexed 0..count-1
        return [created[i] for i in range(count)]

    def add_constr(self, lhs, sense, rhs, name=""):
        return self.model.addLConstr(lhs, sense, rhs, name=name)

    def set_objective(self, expr):
        self.model.setObjective(expr, GRB.MINIMIZE)

    def use_callback(self, callback):
        """Install ``callback(context)`` for every new candidate incumbent."""
        self._callback = callback
        self.model.Params.LazyConstraints = 1

    # ------------------------------------------------------------------
    # solving
    # ------------------------------------------------------------------
    def _dispatch(self, model, where):
        # Only new integer-feasible incumbents are screened; MIPNODE etc. pass through
        if where != GRB.Callback.MIPSOL:
            return
        try:
            self._callback(CandidateContext(model))
        except Exception as exc:  # re-raised from solve()
            self._callback_error = exc
            model.terminate()

    def solve(self):
        # Plain LP/MIP solve unless a lazy-cut callback was installed
        if self._callback is None:
            self.model.optimize()
        else:
            self.model.optimize(self._dispatch)
        # Gurobi swallows callback exceptions; surface the stored one here
        if self._callback_error is not None:
            error, self._callback_error = self._callback_error, None
            raise error
        self.status = _STATUS.get(self.model.Status, Status.UNKNOWN)
        return self.status

    @property
    def raw_status(self):
        return self.model.Status

    @property
    def has_incumbent(self):
        return self.model.SolCount > 0

    @property
    def objective_value(self):
        return self.model.ObjVal

    @property
    def best_bound(self):
        return self.model.ObjBound  # equals ObjVal for LPs and proven-optimal MIPs

    # ------------------------------------------------------------------
    # reading results
    # ------------------------------------------------------------------
    def value(self, item):
        if isinstance(item, gp.Var):
            return item.X
        return item.getValue()  # LinExpr or QuadExpr at the current solution

    def values(self, variables):
        return self.model.getAttr(GRB.Attr.X, list(variables))

    def dual(self, constr):
        return constr.Pi

    def duals(self, constrs):
        return self.model.getAttr(GRB.Attr.Pi, list(constrs))

    def farkas_certificate(self, constrs):
        """
        Multipliers ``y`` such that every feasible right-hand side ``b``
        satisfies ``sum(y_i * b_i) <= 0``; the current ``b`` violates it.

        Gurobi's FarkasDual ``lam`` proves ``lam'Ax <= lam'b`` has no solution
        inside the variable bounds.  With all variables on [0, inf) that means
        ``lam'A >= 0`` and ``lam'b < 0``, so ``y = -lam``.
        """
        raw = self.model.getAttr(GRB.Attr.FarkasDual, list(constrs))
        return [-coef for coef in raw]

    def set_rhs(self, constr, value):
        # Takes effect at the next optimize(); the basis is kept for a warm start
        constr.setAttr(GRB.Attr.RHS, value)

    def update(self):
        self.model.update()

    def release(self):
        # Frees the native model and its licence token; safe to call twice
        if self.model is not None:
            self.model.dispose()
            self.model = None
