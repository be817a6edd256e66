"""
================================================================================
Scenario Samplers
================================================================================

Every sampler exposes

    generate(nb_demand_scenarios, nb_disaster_scenarios) -> list[Scenario]

and draws from a numpy Generator so that a seed reproduces a batch.

  MonteCarloSampler      independent demand vectors x independent disruption
                         triples (cartesian product)
  LatinHypercubeSampler  one stratified column per dimension; demand through
                         the normal inverse CDF, disruptions through uniform
                         integer inverse CDFs
  FixedScenarioSampler   replays given scenarios (regression runs, tests)

Demand ~ Normal(MEAN_DEMAND, STD_DEV) truncated to a non-negative integer.
Disruption start uniform over the year, duration uniform over what is left.
================================================================================
"""

import itertools

import numpy as np
from scipy.stats import norm

from .data import FACILITIES, MEAN_DEMAND, STD_DEV, WEEKS_PER_YEAR, Facility
from .scenario import Disruption, Scenario


def _rng(seed):
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


class MonteCarloSampler:
    def __init__(self, seed=None):
        self.rng = _rng(seed)

    def demand(self):
        draws = self.rng.normal(MEAN_DEMAND, STD_DEV, WEEKS_PER_YEAR)
        return tuple(max(0, int(d)) for d in draws)

    def disruption(self):
        start = int(self.rng.integers(0, WEEKS_PER_YEAR))
        duration = int(self.rng.integers(0, WEEKS_PER_YEAR - start))
        return Disruption(start, duration)

    def generate(self, nb_demand_scenarios, nb_disaster_scenarios):
        demands = [self.demand() for _ in range(nb_demand_scenarios)]
        disasters = [
            {facility: self.disruption() for facility in FACILITIES}
            for _ in range(nb_disaster_scenarios)
        ]
        return [Scenario(d, w) for d, w in itertools.product(demands, disasters)]


class LatinHypercubeSampler:
    """
    Latin hypercube over WEEKS_PER_YEAR demand dimensions plus a
    (start, duration) pair per facility.
    """

    def __init__(self, seed=None):
        self.rng = _rng(seed)

    def unit_hypercube(self, size, dimensions):
        strata = np.arange(size)[:, None] + self.rng.random((size, dimensions))
        points = strata / size
        for column in range(dimensions):
            points[:, column] = points[self.rng.permutation(size), column]
        return points

    def generate(self, nb_demand_scenarios, nb_disaster_scenarios):
        size = nb_demand_scenarios * nb_disaster_scenarios
        if size <= 0:
            return []
        dimensions = WEEKS_PER_YEAR + 2 * len(FACILITIES)
        points = self.unit_hypercube(size, dimensions)

        quantiles = np.clip(points[:, :WEEKS_PER_YEAR], 1e-12, 1.0 - 1e-12)
        demand = norm.ppf(quantiles, loc=MEAN_DEMAND, scale=STD_DEV)
        demand = np.maximum(demand, 0).astype(int)

        scenarios = []
        for row in range(size):
            disruptions = {}
            column = WEEKS_PER_YEAR
            for facility in FACILITIES:
                start = _uniform_integer(points[row, column], 0, WEEKS_PER_YEAR)
                duration = _uniform_integer(points[row, column + 1], 0, WEEKS_PER_YEAR - start)
                disruptions[facility] = Disruption(start, duration)
                column += 2
            scenarios.append(Scenario(tuple(demand[row]), disruptions))
        return scenarios


def _uniform_integer(u, low, high):
    """Inverse CDF of the discrete uniform on {low, ..., high}."""
    return min(high, low + int(u * (high - low + 1)))


class FixedScenarioSampler:
    def __init__(self, scenarios):
        self.scenarios = list(scenarios)
        if not self.scenarios:
            raise ValueError("FixedScenarioSampler needs at least one scenario")

    def generate(self, nb_demand_scenarios, nb_disaster_scenarios):
        size = nb_demand_scenarios * nb_disaster_scenarios
        return [self.scenarios[i % len(self.scenarios)] for i in range(size)]


def single_scenario():
    """Reference scenario: mean demand, every facility down once."""
    return Scenario(
        tuple([int(MEAN_DEMAND)] * WEEKS_PER_YEAR),
        {
            Facility.DC: Disruption(19, 12),
            Facility.PLANT: Disruption(4, 14),
            Facility.SUPPLIER: Disruption(3, 7),
        },
    )


SAMPLERS = {
    "montecarlo": MonteCarloSampler,
    "lhs": LatinHypercubeSampler,
}
