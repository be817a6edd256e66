"""
Right-hand-side expressions for cut bookkeeping.

Each subproblem row carries a symbolic right-hand side built from three
shapes:

    Constant(value)                 scenario data, never changes
    PolicyReference(field, scale)   scale * <policy number named by field>
    RhsSum(parts)                   sum of the above

An expression can be evaluated against concrete PolicyParameters (to refresh
the subproblem) or expanded into ``(field, coefficient)`` terms so that the
master can rebuild it over its own policy variables when a cut is assembled:

    optimality cut   theta_s >= c0 + sum_i dual_i * rhs_i(policy)
    feasibility cut  sum_i farkas_i * rhs_i(policy) <= 0
"""

from collections import defaultdict
from typing import NamedTuple, Optional

from .data import DUAL_ZERO_TOLERANCE, Facility

# Names of the policy numbers a right-hand side can refer to
WIP_POLICY = "wip_policy"                # strategic WIP buffer level
FG_POLICY = "fg_policy"                  # strategic FG buffer level
CAPACITY = "capacity"                    # backup capacity, per facility
DELAYED_CAPACITY = "delayed_capacity"    # ramp entry, per facility and week


class PolicyField(NamedTuple):
    name: str
    facility: Optional[Facility] = None  # None for the two buffer levels
    step: Optional[int] = None           # weeks since outage onset, ramp only


def wip_policy():
    return PolicyField(WIP_POLICY)


def fg_policy():
    return PolicyField(FG_POLICY)


def capacity(facility):
    return PolicyField(CAPACITY, facility)


def delayed_capacity(facility, step):
    return PolicyField(DELAYED_CAPACITY, facility, step)


class Constant:
    __slots__ = ("value",)

    depends_on_policy = False

    def __init__(self, value):
        self.value = float(value)

    def evaluate(self, policy):
        return self.value

    def terms(self):
        yield None, self.value  # field None marks the constant part

    def __repr__(self):
        return f"Constant({self.value:g})"


class PolicyReference:
    __slots__ = ("field", "scale")

    depends_on_policy = True

    def __init__(self, field, scale=1.0):
        self.field = field
        self.scale = float(scale)

    def evaluate(self, policy):
        return self.scale * policy.lookup(self.field)

    def terms(self):
        yield self.field, self.scale

    def __repr__(self):
        return f"PolicyReference({self.field}, {self.scale:g})"


class RhsSum:
    __slots__ = ("parts",)

    def __init__(self, *parts):
        self.parts = tuple(parts)

    @property
    def depends_on_policy(self):
        return any(part.depends_on_policy for part in self.parts)

    def evaluate(self, policy):
        return sum(part.evaluate(policy) for part in self.parts)

    def terms(self):
        for part in self.parts:
            yield from part.terms()

    def __repr__(self):
        return "RhsSum(" + ", ".join(repr(p) for p in self.parts) + ")"


ZERO = Constant(0.0)  # shared right-hand side of the homogeneous rows


def accumulate(weighted, constant=0.0):
    """
    Fold ``(multiplier, expression)`` pairs into one affine form.

    Returns ``(constant, {field: coefficient})``.  Multipliers smaller than
    DUAL_ZERO_TOLERANCE in magnitude are skipped.
    """
    coefficients = defaultdict(float)
    for multiplier, expression in weighted:
        # Near-zero duals only add noise to the cut
        if abs(multiplier) < DUAL_ZERO_TOLERANCE:
            continue
        for field, coef in expression.terms():
            if field is None:
                constant += multiplier * coef        # scenario data folds into c0
            else:
                coefficients[field] += multiplier * coef  # becomes a master variable term
    return constant, dict(coefficients)
