"""
Scenario records.

A Scenario is one realisation of the uncertainty: a weekly demand vector and,
for each facility, a single contiguous disruption window
[start, start + duration).  Scenarios are immutable and validated on
construction; a malformed scenario is a structural error (ValueError).
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence, Tuple

from .data import FACILITIES, MEAN_DEMAND, WEEKS_PER_YEAR, Facility


@dataclass(frozen=True)
class Disruption:
    start: int = 0      # first week the facility is down
    duration: int = 0   # weeks down; 0 means no outage

    @property
    def end(self) -> int:
        return self.start + self.duration

    def covers(self, week: int) -> bool:
        return self.start <= week < self.end


NO_DISRUPTION = Disruption(0, 0)  # default for facilities left out of a scenario


@dataclass(frozen=True)
class Scenario:
    """Weekly demand plus one disruption window per facility."""

    demand: Tuple[int, ...]
    disruptions: Mapping[Facility, Disruption] = field(default_factory=dict)

    def __post_init__(self):
        # --- demand: one non-negative integer per week ---
        demand = tuple(self.demand)
        if len(demand) != WEEKS_PER_YEAR:
            raise ValueError(
                f"demand has {len(demand)} weeks, expected {WEEKS_PER_YEAR}"
            )
        for week, units in enumerate(demand):
            if units < 0 or int(units) != units:
                raise ValueError(f"demand[{week}] = {units} is not a non-negative integer")
        demand = tuple(int(units) for units in demand)  # 100.0 -> 100

        # --- disruptions: one window per facility, inside the horizon ---
        disruptions: Dict[Facility, Disruption] = {}
        for facility in FACILITIES:
            window = self.disruptions.get(facility, NO_DISRUPTION)
            if not isinstance(window, Disruption):
                window = Disruption(*window)  # accept plain (start, duration) pairs
            if window.duration < 0:
                raise ValueError(f"{facility.value} disruption has negative duration")
            if window.start < 0 or window.end > WEEKS_PER_YEAR:
                raise ValueError(
                    f"{facility.value} disruption [{window.start}, {window.end}) "
                    f"leaves the horizon [0, {WEEKS_PER_YEAR}]"
                )
            disruptions[facility] = window
        unknown = set(self.disruptions) - set(FACILITIES)
        if unknown:
            raise ValueError(f"unknown facilities {unknown}")

        # frozen dataclass: normalised fields are written through object
        object.__setattr__(self, "demand", demand)
        object.__setattr__(self, "disruptions", disruptions)

    @classmethod
    def build(cls, demand: Sequence[int], supplier=(0, 0), plant=(0, 0), dc=(0, 0)):
        """Build from ``(start, duration)`` pairs."""
        return cls(
            tuple(demand),
            {
                Facility.SUPPLIER: Disruption(*supplier),
                Facility.PLANT: Disruption(*plant),
                Facility.DC: Disruption(*dc),
            },
        )

    @classmethod
    def undisrupted(cls, demand=None):
        if demand is None:
            demand = [int(MEAN_DEMAND)] * WEEKS_PER_YEAR
        return cls.build(demand)

    @property
    def weeks(self) -> int:
        return len(self.demand)

    @property
    def total_demand(self) -> int:
        return sum(self.demand)

    def start(self, facility: Facility) -> int:
        return self.disruptions[facility].start

    def duration(self, facility: Facility) -> int:
        return self.disruptions[facility].duration

    def end(self, facility: Facility) -> int:
        return self.disruptions[facility].end

    def is_disrupted(self, facility: Facility, week: int) -> bool:
        return self.disruptions[facility].covers(week)

    # disruptions is a dict, so the generated hash would fail
    def __hash__(self):
        return hash((self.demand, tuple(self.disruptions[f] for f in FACILITIES)))
