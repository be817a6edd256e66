"""
================================================================================
Weekly Operations LP - one scenario, one policy
================================================================================

Shared by the recourse subproblem (policy given as numbers) and the unified
deterministic model (policy given as decision variables).  Subclasses decide
what a "right-hand side" is by implementing _add_row(); everything else, the
variables, the objective and the row structure, lives here.

VARIABLES (per week i, all >= 0):
  supplier_prod, plant_prod, dc_transfer     regular throughput
  wip, fg_to_dc, fg_to_customer              stage flows
  fg_stock                                   FG stock at the DC
  lost_sales
  backup_supplier, backup_plant, backup_dc   backup capacity used
  backup_wip_stock, backup_fg_stock          strategic buffers
  backup_wip_transfer, backup_fg_transfer    buffer draw-downs
  fill_rate_slack (scalar, omitted in strict fill-rate mode)

OBJECTIVE:
  IRR * (WIP_COST * avg_wip + FG_COST * avg_fg)
  + (FG_PRICE - FG_COST) * sum(lost_sales)
  + FG_PRICE * fill_rate_slack

  avg_wip = (SUPPLIER_CAPACITY * (W - supplier outage) + sum(backup_wip_stock)
             + sum(backup_supplier)) / W
  avg_fg  = (sum(fg_stock) + sum(backup_fg_stock) + sum(backup_dc)) / W

  The pipeline-WIP term is a constant: objective_constant.
================================================================================
"""

import gurobipy as gp
import numpy as np

from . import rhs
from .data import (
    BASE_DC_STOCK_LEVEL,
    DESIRED_IFR,
    FG_COST,
    FG_PRICE,
    IRR,
    MAX_DELAY,
    SUPPLIER_CAPACITY,
    WIP_COST,
    Facility,
)
from .solution import SERIES, Solution
from .solver import EQ, GE, LE, Status

BACKUP_USAGE = {
    Facility.SUPPLIER: "backup_supplier",
    Facility.PLANT: "backup_plant",
    Facility.DC: "backup_dc",
}

REGULAR_THROUGHPUT = {
    Facility.SUPPLIER: "supplier_prod",
    Facility.PLANT: "plant_prod",
    Facility.DC: "dc_transfer",
}


class OperationsModel:
    def __init__(self, scenario, strict_fill_rate=False):
        self.scenario = scenario
        self.strict_fill_rate = strict_fill_rate
        self.session = None
        self.x = {}
        self.fill_rate_slack = None
        self.objective_constant = 0.0
        self.inventory_expr = None
        self.lost_sales_expr = None
        self.fill_penalty_expr = None
        self.status = None

    # hooks ---------------------------------------------------------------
    def _new_session(self):
        raise NotImplementedError

    def _add_row(self, name, lhs, sense, expression):
        raise NotImplementedError

    def _extra_cost(self):
        return gp.LinExpr()

    # building ------------------------------------------------------------
    @property
    def built(self):
        return self.session is not None

    def build(self):
        if self.built:
            return
        self.session = self._new_session()
        self._build_variables()
        self._build_objective()
        self._build_constraints()
        self.session.update()

    def _build_variables(self):
        weeks = self.scenario.weeks
        for name in SERIES:
            self.x[name] = self.session.add_vars(weeks, name)
        if not self.strict_fill_rate:
            self.fill_rate_slack = self.session.add_var("fill_rate_slack")

    def _build_objective(self):
        x = self.x
        weeks = self.scenario.weeks
        per_week = 1.0 / weeks

        outage = self.scenario.duration(Facility.SUPPLIER)
        self.objective_constant = IRR * WIP_COST * SUPPLIER_CAPACITY * (weeks - outage) * per_week

        avg_wip = per_week * (gp.quicksum(x["backup_wip_stock"]) + gp.quicksum(x["backup_supplier"]))
        avg_fg = per_week * (
            gp.quicksum(x["fg_stock"])
            + gp.quicksum(x["backup_fg_stock"])
            + gp.quicksum(x["backup_dc"])
        )
        self.inventory_expr = IRR * (WIP_COST * avg_wip + FG_COST * avg_fg) + self.objective_constant
        self.lost_sales_expr = (FG_PRICE - FG_COST) * gp.quicksum(x["lost_sales"])
        if self.fill_rate_slack is None:
            self.fill_penalty_expr = gp.LinExpr()
        else:
            self.fill_penalty_expr = FG_PRICE * self.fill_rate_slack

        self.session.set_objective(
            self.inventory_expr + self.lost_sales_expr + self.fill_penalty_expr + self._extra_cost()
        )

    def backup_ceiling(self, facility, week):
        """Right-hand side of the backup-usage ceiling for ``facility`` in ``week``."""
        if not self.scenario.is_disrupted(facility, week):
            return rhs.ZERO
        full = rhs.PolicyReference(rhs.capacity(facility))
        elapsed = week - self.scenario.start(facility)
        if elapsed >= MAX_DELAY:
            return full
        ramping = rhs.PolicyReference(rhs.delayed_capacity(facility, elapsed), -1.0)
        return rhs.RhsSum(full, ramping)

    def _build_constraints(self):
        x = self.x
        sc = self.scenario
        row = self._add_row

        for i in range(sc.weeks):
            # (a) regular throughput, zero while disrupted
            for facility, name in REGULAR_THROUGHPUT.items():
                cap = 0.0 if sc.is_disrupted(facility, i) else facility.nameplate_capacity
                row(f"{facility.value}_status[{i}]", x[name][i], LE, rhs.Constant(cap))

            # (b) stage availability: regular + backup feeds the next stage
            row(f"wip_availability[{i}]",
                x["supplier_prod"][i] + x["backup_wip_transfer"][i] + x["backup_supplier"][i] - x["wip"][i],
                EQ, rhs.ZERO)
            row(f"fg_to_dc_availability[{i}]",
                x["plant_prod"][i] + x["backup_plant"][i] - x["fg_to_dc"][i],
                EQ, rhs.ZERO)
            row(f"fg_to_customer_availability[{i}]",
                x["dc_transfer"][i] + x["backup_fg_transfer"][i] + x["backup_dc"][i] - x["fg_to_customer"][i],
                EQ, rhs.ZERO)

            # (c) backup ceilings net of ramp-up
            for facility, name in BACKUP_USAGE.items():
                row(f"{name}_ceiling[{i}]", x[name][i], LE, self.backup_ceiling(facility, i))

            # (d) demand coverage; sales never exceed demand
            row(f"demand[{i}]", x["fg_to_customer"][i] + x["lost_sales"][i], GE,
                rhs.Constant(sc.demand[i]))
            row(f"sales_cap[{i}]", x["fg_to_customer"][i], LE, rhs.Constant(sc.demand[i]))

            row(f"fg_stock_cap[{i}]", x["fg_stock"][i], LE, rhs.Constant(BASE_DC_STOCK_LEVEL))

            # (b) balances
            row(f"wip_balance[{i}]", x["plant_prod"][i] - x["wip"][i], EQ, rhs.ZERO)
            if i == 0:
                row(f"fg_balance[{i}]",
                    x["fg_to_dc"][i] - x["fg_stock"][i] - x["dc_transfer"][i],
                    EQ, rhs.ZERO)
                row(f"backup_wip_balance[{i}]",
                    x["backup_wip_stock"][i] + x["backup_wip_transfer"][i],
                    EQ, rhs.PolicyReference(rhs.wip_policy()))
                row(f"backup_fg_balance[{i}]",
                    x["backup_fg_stock"][i] + x["backup_fg_transfer"][i],
                    EQ, rhs.PolicyReference(rhs.fg_policy()))
            else:
                row(f"fg_balance[{i}]",
                    x["fg_to_dc"][i] + x["fg_stock"][i - 1] - x["fg_stock"][i] - x["dc_transfer"][i],
                    EQ, rhs.ZERO)
                row(f"backup_wip_balance[{i}]",
                    x["backup_wip_stock"][i - 1] - x["backup_wip_transfer"][i] - x["backup_wip_stock"][i],
                    EQ, rhs.ZERO)
                row(f"backup_fg_balance[{i}]",
                    x["backup_fg_stock"][i - 1] - x["backup_fg_transfer"][i] - x["backup_fg_stock"][i],
                    EQ, rhs.ZERO)

            # (e) buffers are only drawn while something upstream is down
            if not sc.is_disrupted(Facility.SUPPLIER, i):
                row(f"no_wip_transfer[{i}]", x["backup_wip_transfer"][i], LE, rhs.ZERO)
            if not (sc.is_disrupted(Facility.DC, i) or sc.is_disrupted(Facility.PLANT, i)):
                row(f"no_fg_transfer[{i}]", x["backup_fg_transfer"][i], LE, rhs.ZERO)

        # (f) item fill ratio over the horizon
        delivered = gp.quicksum(x["fg_to_customer"])
        if self.fill_rate_slack is not None:
            delivered = delivered + self.fill_rate_slack
        row("fill_rate", delivered, GE, rhs.Constant(DESIRED_IFR * sc.total_demand))

    # results -------------------------------------------------------------
    def record_solution(self):
        """Snapshot of every trajectory; all-zero and flagged unless optimal."""
        status = self.status
        if status is not Status.OPTIMAL or not self.built:
            return Solution.empty(status or Status.UNKNOWN)

        solution = Solution(status=status, converged=True)
        for name in SERIES:
            setattr(solution, name, np.asarray(self.session.values(self.x[name]), dtype=float))
        if self.fill_rate_slack is not None:
            solution.fill_rate_slack = self.session.value(self.fill_rate_slack)
        solution.inventory_cost = self.session.value(self.inventory_expr)
        solution.lost_sales_cost = self.session.value(self.lost_sales_expr)
        solution.fill_rate_penalty = (
            self.session.value(self.fill_penalty_expr) if self.fill_rate_slack is not None else 0.0
        )
        solution.total_cost = solution.operations_cost
        return solution

    def release(self):
        if self.session is not None:
            self.session.release()
            self.session = None
        self.status = None
