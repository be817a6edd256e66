"""
================================================================================
Risk Measures for the master objective
================================================================================

The master minimises

    backup cost + (1/n) * sum_s theta[s] + risk(theta)

where theta[s] is the recourse-cost surrogate of scenario s.  A risk measure
may add its own variables and rows, then returns the penalty expression.

  neutral            0
  robust             RISK_AVERSION_FACTOR / n * sum_s (theta[s] - mean)^2
  variabilityIdx     VARIABILITY_INDEX_PENALTY / n * sum_s r[s],
                     r[s] >= theta[s] - mean
  probFinancialRisk  PROB_FINANCIAL_RISK_PENALTY / n * sum_s z[s], z binary,
                     theta[s] <= COST_TARGET + BIG_M * z[s]
                     theta[s] >= COST_TARGET - BIG_M * (1 - z[s])
  downsideRisk       DOWNSIDE_RISK_PENALTY / n * sum_s r[s],
                     r[s] >= theta[s] - COST_TARGET
================================================================================
"""

import gurobipy as gp

from .data import (
    BIG_M,
    COST_TARGET,
    DOWNSIDE_RISK_PENALTY,
    PROB_FINANCIAL_RISK_PENALTY,
    RISK_AVERSION_FACTOR,
    VARIABILITY_INDEX_PENALTY,
)
from .solver import GE, LE


class RiskMeasure:
    name = "neutral"

    def __init__(self):
        self.scenario_risk = []

    def add_variables(self, session, count):
        return self

    def add_constraints(self, session, scenario_costs):
        return self

    def penalty(self, scenario_costs):
        return gp.LinExpr()


class Neutral(RiskMeasure):
    """Expected cost only."""


class Robust(RiskMeasure):
    name = "robust"

    def __init__(self, factor=RISK_AVERSION_FACTOR):
        super().__init__()
        self.factor = factor

    def penalty(self, scenario_costs):
        n = len(scenario_costs)
        mean = (1.0 / n) * gp.quicksum(scenario_costs)
        spread = gp.QuadExpr()
        for theta in scenario_costs:
            deviation = theta - mean
            spread += deviation * deviation
        return (self.factor / n) * spread


class _PerScenarioPenalty(RiskMeasure):
    binary = False
    weight = 1.0

    def add_variables(self, session, count):
        self.scenario_risk = session.add_vars(count, f"{self.name}_risk", binary=self.binary)
        return self

    def penalty(self, scenario_costs):
        n = len(scenario_costs)
        return (self.weight / n) * gp.quicksum(self.scenario_risk)


class VariabilityIndex(_PerScenarioPenalty):
    name = "variabilityIdx"
    weight = VARIABILITY_INDEX_PENALTY

    def add_constraints(self, session, scenario_costs):
        n = len(scenario_costs)
        mean = (1.0 / n) * gp.quicksum(scenario_costs)
        for s, theta in enumerate(scenario_costs):
            session.add_constr(self.scenario_risk[s] - theta + mean, GE, 0.0, name=f"above_mean[{s}]")
        return self


class ProbabilityFinancialRisk(_PerScenarioPenalty):
    name = "probFinancialRisk"
    binary = True
    weight = PROB_FINANCIAL_RISK_PENALTY

    def add_constraints(self, session, scenario_costs):
        for s, theta in enumerate(scenario_costs):
            z = self.scenario_risk[s]
            session.add_constr(theta - BIG_M * z, LE, COST_TARGET, name=f"over_target[{s}]")
            session.add_constr(theta - BIG_M * z, GE, COST_TARGET - BIG_M, name=f"under_target[{s}]")
        return self


class DownsideRisk(_PerScenarioPenalty):
    name = "downsideRisk"
    weight = DOWNSIDE_RISK_PENALTY

    def add_constraints(self, session, scenario_costs):
        for s, theta in enumerate(scenario_costs):
            session.add_constr(self.scenario_risk[s] - theta, GE, -COST_TARGET, name=f"downside[{s}]")
        return self


RISK_MEASURES = {
    cls.name: cls
    for cls in (Neutral, Robust, VariabilityIndex, ProbabilityFinancialRisk, DownsideRisk)
}


def make_risk_measure(risk):
    """Strategy for ``risk``: a name from RISK_MEASURES or an instance."""
    if isinstance(risk, RiskMeasure):
        return risk
    try:
        return RISK_MEASURES[risk]()
    except KeyError:
        raise ValueError(
            f"unknown risk measure {risk!r}; choose from {', '.join(RISK_MEASURES)}"
        ) from None
