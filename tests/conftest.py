import pytest

from scresilience.data import WEEKS_PER_YEAR
from scresilience.scenario import Scenario

FLAT_DEMAND = [100] * WEEKS_PER_YEAR


@pytest.fixture
def flat_demand():
    return list(FLAT_DEMAND)


@pytest.fixture
def undisrupted():
    return Scenario.undisrupted(FLAT_DEMAND)


@pytest.fixture
def supplier_outage():
    """Supplier down for weeks 10..15, everything else up."""
    return Scenario.build(FLAT_DEMAND, supplier=(10, 6))
