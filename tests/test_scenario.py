import pytest

from scresilience.data import WEEKS_PER_YEAR, Facility
from scresilience.scenario import Disruption, Scenario


def test_disruption_window_is_half_open(flat_demand):
    scenario = Scenario.build(flat_demand, plant=(4, 14))
    assert scenario.end(Facility.PLANT) == 18
    assert not scenario.is_disrupted(Facility.PLANT, 3)
    assert scenario.is_disrupted(Facility.PLANT, 4)
    assert scenario.is_disrupted(Facility.PLANT, 17)
    assert not scenario.is_disrupted(Facility.PLANT, 18)
    assert not scenario.is_disrupted(Facility.SUPPLIER, 5)


def test_zero_duration_never_disrupts(flat_demand):
    scenario = Scenario.build(flat_demand, dc=(20, 0))
    assert not any(scenario.is_disrupted(Facility.DC, w) for w in range(WEEKS_PER_YEAR))


def test_missing_facilities_default_to_no_outage(flat_demand):
    scenario = Scenario(tuple(flat_demand), {Facility.DC: Disruption(1, 2)})
    assert scenario.duration(Facility.SUPPLIER) == 0
    assert scenario.duration(Facility.DC) == 2


def test_outage_may_end_at_horizon(flat_demand):
    scenario = Scenario.build(flat_demand, supplier=(40, WEEKS_PER_YEAR - 40))
    assert scenario.end(Facility.SUPPLIER) == WEEKS_PER_YEAR


def test_scenarios_are_immutable(undisrupted):
    with pytest.raises(AttributeError):
        undisrupted.demand = ()


@pytest.mark.parametrize(
    "demand",
    [[100] * (WEEKS_PER_YEAR - 1), [100] * (WEEKS_PER_YEAR + 1), [-1] + [100] * (WEEKS_PER_YEAR - 1),
     [100.5] + [100] * (WEEKS_PER_YEAR - 1)],
)
def test_malformed_demand_is_rejected(demand):
    with pytest.raises(ValueError):
        Scenario.undisrupted(demand)


@pytest.mark.parametrize("window", [(5, -1), (-1, 3), (50, 5)])
def test_malformed_disruption_is_rejected(flat_demand, window):
    with pytest.raises(ValueError):
        Scenario.build(flat_demand, supplier=window)
