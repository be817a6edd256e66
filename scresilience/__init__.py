"""Supply chain resilience design with multicut L-shaped decomposition and SAA."""

from .bounds import CostBound
from .data import Facility
from .deterministic import UnifiedModel
from .lshaped import EngineState, MulticutLShaped
from .policy import PolicyParameters
from .saa import SAAResult, SampledAverageApproximation
from .sampling import FixedScenarioSampler, LatinHypercubeSampler, MonteCarloSampler
from .scenario import Disruption, Scenario
from .solution import Solution
from .solver import Status
from .subproblem import RecourseSubproblem

__version__ = "0.1.0"
