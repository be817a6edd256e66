"""
================================================================================
Backup Policy - first-stage decision
================================================================================

PolicyParameters is the numeric policy handed to subproblems (by value).
PolicyVariables is the same policy expressed as decision variables; it is
shared by the L-shaped master and by the deterministic unified model.

Master-side formulation per facility f with menu options j:

    sum_j y[f,j] = 1                                  (one option)
    capacity[f]  = sum_j base_f * fraction_j * y[f,j]
    response[f]  = sum_j response_j * y[f,j]
    delayed[f,i] >= base_f * fraction_j * y[f,j]      i < min(response_j, MAX_DELAY)
    delayed[f,i] <= base_f * (1 - y[f,j])          response_j <= i < MAX_DELAY

delayed[f,i] is the part of the backup capacity NOT yet available i weeks
after the disruption started; the subproblem ceiling is capacity - delayed.

Backup cost = sum option costs + WIP_COST/W * wip_policy + FG_COST/W * fg_policy
================================================================================
"""

from dataclasses import dataclass
from typing import Mapping

import gurobipy as gp

from . import rhs
from .data import (
    FACILITIES,
    FG_COST,
    MAX_DELAY,
    NUM_BACKUP_OPTIONS,
    WEEKS_PER_YEAR,
    WIP_COST,
)
from .solver import EQ, GE, LE


@dataclass(frozen=True)
class PolicyParameters:
    options: Mapping            # Facility -> option index
    capacity: Mapping           # Facility -> backup capacity per week
    delayed_capacity: Mapping   # Facility -> tuple of MAX_DELAY ramp values
    wip_policy: float = 0.0
    fg_policy: float = 0.0

    def __post_init__(self):
        for facility in FACILITIES:
            if facility not in self.options:
                raise ValueError(f"no backup option chosen for {facility.value}")
            index = self.options[facility]
            if not 0 <= index < NUM_BACKUP_OPTIONS:
                raise ValueError(f"{facility.value} option {index} is not on the menu")
            if len(self.delayed_capacity[facility]) != MAX_DELAY:
                raise ValueError(
                    f"{facility.value} delayed capacity needs {MAX_DELAY} entries"
                )
        object.__setattr__(
            self,
            "delayed_capacity",
            {f: tuple(float(v) for v in self.delayed_capacity[f]) for f in FACILITIES},
        )

    @classmethod
    def from_options(cls, supplier=0, plant=0, dc=0, wip_policy=0.0, fg_policy=0.0):
        """Policy implied by an option choice, with the tightest ramp."""
        options = dict(zip(FACILITIES, (supplier, plant, dc)))
        capacity = {}
        delayed = {}
        for facility, index in options.items():
            if not 0 <= index < NUM_BACKUP_OPTIONS:
                raise ValueError(f"{facility.value} option {index} is not on the menu")
            cap = facility.option_capacity(index)
            response = facility.options[index].response_time
            capacity[facility] = cap
            delayed[facility] = tuple(cap if k < response else 0.0 for k in range(MAX_DELAY))
        return cls(options, capacity, delayed, wip_policy, fg_policy)

    @classmethod
    def none(cls):
        return cls.from_options()

    def lookup(self, field: rhs.PolicyField) -> float:
        if field.name == rhs.WIP_POLICY:
            return self.wip_policy
        if field.name == rhs.FG_POLICY:
            return self.fg_policy
        if field.name == rhs.CAPACITY:
            return self.capacity[field.facility]
        if field.name == rhs.DELAYED_CAPACITY:
            return self.delayed_capacity[field.facility][field.step]
        raise KeyError(field)

    def key(self, digits=6):
        """Hashable rounded fingerprint, for comparing proposals."""
        return tuple(
            (self.options[f], round(self.capacity[f], digits),
             tuple(round(v, digits) for v in self.delayed_capacity[f]))
            for f in FACILITIES
        ) + (round(self.wip_policy, digits), round(self.fg_policy, digits))

    def option(self, facility):
        return facility.options[self.options[facility]]

    @property
    def backup_cost(self) -> float:
        cost = sum(self.option(f).cost for f in FACILITIES)
        cost += WIP_COST / WEEKS_PER_YEAR * self.wip_policy
        cost += FG_COST / WEEKS_PER_YEAR * self.fg_policy
        return cost

    def available_capacity(self, facility, weeks_into_outage: int) -> float:
        """Backup capacity usable ``weeks_into_outage`` weeks after onset."""
        if weeks_into_outage >= MAX_DELAY:
            return self.capacity[facility]
        return max(0.0, self.capacity[facility] - self.delayed_capacity[facility][weeks_into_outage])

    def describe(self) -> str:
        parts = []
        for facility in FACILITIES:
            option = self.option(facility)
            parts.append(
                f"{facility.value}: option {self.options[facility]} "
                f"({option.fraction:.0%} after {option.response_time}w)"
            )
        parts.append(f"WIP buffer {self.wip_policy:.1f}")
        parts.append(f"FG buffer {self.fg_policy:.1f}")
        return ", ".join(parts)


class PolicyVariables:
    """Policy decision variables and linking constraints inside one model."""

    def __init__(self):
        self.selectors = {}
        self.capacity = {}
        self.response_time = {}
        self.delayed = {}
        self.wip_policy = None
        self.fg_policy = None

    def add_variables(self, session):
        for facility in FACILITIES:
            tag = facility.value
            self.selectors[facility] = session.add_vars(
                NUM_BACKUP_OPTIONS, f"{tag}_option", binary=True
            )
            self.capacity[facility] = session.add_var(f"{tag}_capacity")
            self.response_time[facility] = session.add_var(f"{tag}_response")
            self.delayed[facility] = session.add_vars(MAX_DELAY, f"{tag}_delayed")
        self.wip_policy = session.add_var("wip_policy")
        self.fg_policy = session.add_var("fg_policy")
        return self

    def add_constraints(self, session):
        for facility in FACILITIES:
            tag = facility.value
            y = self.selectors[facility]
            base = facility.base_capacity
            menu = facility.options
            delayed = self.delayed[facility]

            session.add_constr(gp.quicksum(y), EQ, 1.0, name=f"{tag}_one_option")
            session.add_constr(
                self.capacity[facility]
                - gp.quicksum(base * menu[j].fraction * y[j] for j in range(NUM_BACKUP_OPTIONS)),
                EQ, 0.0, name=f"{tag}_capacity_link",
            )
            session.add_constr(
                self.response_time[facility]
                - gp.quicksum(menu[j].response_time * y[j] for j in range(NUM_BACKUP_OPTIONS)),
                EQ, 0.0, name=f"{tag}_response_link",
            )
            for j, option in enumerate(menu):
                for i in range(min(option.response_time, MAX_DELAY)):
                    session.add_constr(
                        delayed[i] - base * option.fraction * y[j],
                        GE, 0.0, name=f"{tag}_ramp_{j}_{i}",
                    )
                for i in range(option.response_time, MAX_DELAY):
                    session.add_constr(
                        delayed[i] + base * y[j],
                        LE, base, name=f"{tag}_ready_{j}_{i}",
                    )
        return self

    def backup_cost(self):
        expr = gp.LinExpr()
        for facility in FACILITIES:
            menu = facility.options
            expr += gp.quicksum(
                menu[j].cost * self.selectors[facility][j] for j in range(NUM_BACKUP_OPTIONS)
            )
        expr += WIP_COST / WEEKS_PER_YEAR * self.wip_policy
        expr += FG_COST / WEEKS_PER_YEAR * self.fg_policy
        return expr

    def lookup(self, field: rhs.PolicyField):
        if field.name == rhs.WIP_POLICY:
            return self.wip_policy
        if field.name == rhs.FG_POLICY:
            return self.fg_policy
        if field.name == rhs.CAPACITY:
            return self.capacity[field.facility]
        if field.name == rhs.DELAYED_CAPACITY:
            return self.delayed[field.facility][field.step]
        raise KeyError(field)

    def linearize(self, constant, coefficients):
        """Affine form from ``rhs.accumulate`` as a LinExpr over these variables."""
        fields = list(coefficients)
        expr = gp.LinExpr(
            [coefficients[f] for f in fields], [self.lookup(f) for f in fields]
        )
        expr.addConstant(constant)
        return expr

    def expression(self, rhs_expression):
        return self.linearize(*rhs.accumulate([(1.0, rhs_expression)]))

    def all_variables(self):
        variables = []
        for facility in FACILITIES:
            variables.extend(self.selectors[facility])
            variables.append(self.capacity[facility])
            variables.extend(self.delayed[facility])
        variables.extend([self.wip_policy, self.fg_policy])
        return variables

    def read(self, values):
        """
        PolicyParameters from ``values(list_of_vars) -> list_of_floats``,
        which is either a solved session or a callback candidate.
        """
        numbers = iter(values(self.all_variables()))
        options, capacity, delayed = {}, {}, {}
        for facility in FACILITIES:
            selected = [next(numbers) for _ in range(NUM_BACKUP_OPTIONS)]
            chosen = [j for j, y in enumerate(selected) if y > 0.5]
            options[facility] = chosen[0] if chosen else 0
            capacity[facility] = max(0.0, next(numbers))
            delayed[facility] = tuple(max(0.0, next(numbers)) for _ in range(MAX_DELAY))
        wip_policy = max(0.0, next(numbers))
        fg_policy = max(0.0, next(numbers))
        return PolicyParameters(options, capacity, delayed, wip_policy, fg_policy)
