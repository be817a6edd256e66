"""
================================================================================
Sampled Average Approximation (SAA) Driver
================================================================================

Phase 1 - LOWER BOUND:
  For each batch m = 1..M:
    - draw n scenarios
    - solve the multicut L-shaped master on them
    - keep the reported cost (best bound) and the candidate policy
    - release the batch's subproblems, then the engine
  Lower bound = confidence interval over the M in-sample costs.

Phase 2 - UPPER BOUND:
  For each candidate policy:
    - draw n2 fresh scenarios
    - evaluate the fixed policy on each (stand-alone recourse LP)
    - sample cost = recourse cost + backup cost of the policy
  Each candidate gets its own interval; the candidate with the lowest average
  is selected and its interval is the upper bound.

The upper bound only covers the candidates that were evaluated, not the true
optimum: it is the best achievable cost among the sampled policies.
================================================================================
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from .bounds import CostBound
from .data import DEFAULT_CONFIDENCE, DEMAND_VECTORS_PER_BATCH
from .lshaped import MulticutLShaped
from .solution import Solution
from .solver import Status
from .subproblem import RecourseSubproblem

log = logging.getLogger(__name__)


@dataclass
class SAAResult:
    lower_bound: Optional[CostBound] = None      # over the M in-sample costs
    upper_bound: Optional[CostBound] = None      # interval of the selected candidate
    candidates: List[Solution] = field(default_factory=list)                # one per batch
    candidate_bounds: List[Optional[CostBound]] = field(default_factory=list)  # None = infeasible
    solution: Optional[Solution] = None          # cheapest candidate out of sample

    @property
    def gap(self):
        if self.lower_bound is None or self.upper_bound is None:
            return None
        return self.upper_bound.mean - self.lower_bound.mean

    def summary(self):
        lines = [
            f"lower bound  {self.lower_bound if self.lower_bound else 'n/a'}",
            f"upper bound  {self.upper_bound if self.upper_bound else 'n/a'}",
        ]
        if self.gap is not None:
            lines.append(f"gap          {self.gap:.2f}")
        for m, bound in enumerate(self.candidate_bounds):
            policy = self.candidates[m].policy
            label = policy.describe() if policy is not None else "no policy"
            lines.append(f"candidate {m}: {bound if bound else 'infeasible'}  {label}")
        return "\n".join(lines)


def batch_shape(n):
    """(demand vectors, disruption triples) whose product is n."""
    if n >= DEMAND_VECTORS_PER_BATCH and n % DEMAND_VECTORS_PER_BATCH == 0:
        return DEMAND_VECTORS_PER_BATCH, n // DEMAND_VECTORS_PER_BATCH
    return n, 1


class SampledAverageApproximation:
    def __init__(
        self,
        sampler,
        confidence=DEFAULT_CONFIDENCE,
        risk_measure="neutral",
        strict_fill_rate=False,
        time_limit=None,
        mip_gap=None,
    ):
        self.sampler = sampler
        self.confidence = confidence
        self.risk_measure = risk_measure
        self.strict_fill_rate = strict_fill_rate
        self.time_limit = time_limit
        self.mip_gap = mip_gap

    # ------------------------------------------------------------------
    def solve_batch(self, scenarios):
        """One master engine on one batch; native resources freed on return."""
        engine = MulticutLShaped(
            scenarios,
            risk_measure=self.risk_measure,
            strict_fill_rate=self.strict_fill_rate,
            time_limit=self.time_limit,
            mip_gap=self.mip_gap,
        )
        try:
            return engine.solve()
        finally:
            engine.release()

    def evaluate(self, policy, backup_cost, scenarios):
        """Out-of-sample total costs of a fixed policy; None if it is infeasible."""
        costs = []  # total cost per evaluation scenario
        for s, scenario in enumerate(scenarios):
            sub = RecourseSubproblem(
                scenario, policy=policy, strict_fill_rate=self.strict_fill_rate, name=f"evaluate_{s}"
            )
            try:
                status = sub.solve()
                if status is Status.OPTIMAL:
                    # Recourse for this scenario + first-stage cost of the fixed policy
                    costs.append(sub.objective + backup_cost)
                elif status is Status.INFEASIBLE:
                    # One infeasible scenario rules the candidate out
                    log.warning("[SAA] policy infeasible on evaluation scenario %d", s)
                    return None
                else:
                    log.warning("[SAA] evaluation scenario %d: %s, skipped", s, status.value)
            finally:
                sub.release()  # free each evaluation model before the next
        return costs

    def run(self, m, n, n2):
        if m < 1 or n < 1 or n2 < 1:
            raise ValueError("m, n and n2 must all be positive")
        result = SAAResult()

        # ==============================================================
        # Phase 1: lower bound from M independent batches
        # ==============================================================
        shape = batch_shape(n)  # (demand vectors, disruption triples)
        in_sample = []          # reported cost of each batch that produced a policy
        for batch in range(m):
            scenarios = self.sampler.generate(*shape)
            log.info("[SAA] batch %d/%d: %d scenarios", batch + 1, m, len(scenarios))
            solution = self.solve_batch(scenarios)  # engine released inside
            result.candidates.append(solution)
            if solution.policy is not None and solution.status is not Status.INFEASIBLE:
                in_sample.append(solution.total_cost)
                if not solution.converged:
                    log.warning("[SAA] batch %d stopped before optimality", batch + 1)
            else:
                log.warning("[SAA] batch %d produced no policy (%s)", batch + 1, solution.status.value)

        # Needs at least one batch; a single batch gives a zero-width interval
        if in_sample:
            result.lower_bound = CostBound(self.confidence, in_sample)
            log.info("[SAA] lower bound %s", result.lower_bound)

        # ==============================================================
        # Phase 2: upper bound from fresh scenarios per candidate
        # ==============================================================
        best_mean = math.inf  # lowest out-of-sample average seen so far
        for index, candidate in enumerate(result.candidates):
            if candidate.policy is None:
                result.candidate_bounds.append(None)
                continue
            # Fresh draws from the sampler stream, disjoint from the training batches
            scenarios = self.sampler.generate(1, n2)
            costs = self.evaluate(candidate.policy, candidate.backup_cost, scenarios)
            if not costs:
                result.candidate_bounds.append(None)
                continue
            bound = CostBound(self.confidence, costs)
            result.candidate_bounds.append(bound)
            log.info("[SAA] candidate %d evaluated: %s", index, bound)
            if bound.mean < best_mean:
                best_mean = bound.mean
                result.upper_bound = bound
                result.solution = candidate

        if result.solution is None:
            log.warning("[SAA] no candidate policy survived out-of-sample evaluation")
        return result
