"""
Confidence bound on an expected cost.

    mean +/- critical * sqrt(variance / n)

variance is Bessel corrected (divisor n - 1).  The critical value is the
two-sided quantile 1 - (1 - confidence) / 2 of a Student t with n - 1 degrees
of freedom when 1 < n < 30 (variance estimated from a small sample), and of
the standard normal otherwise.  A single observation gives a zero-width
interval.
"""

import logging
import math
import statistics

from scipy.stats import norm, t

log = logging.getLogger(__name__)

SMALL_SAMPLE = 30


class CostBound:
    def __init__(self, confidence, costs):
        if not 0.0 < confidence < 1.0:
            raise ValueError(f"confidence must lie in (0, 1), got {confidence}")
        self.costs = [float(c) for c in costs]
        if not self.costs:
            raise ValueError("a confidence bound needs at least one cost")
        self.confidence = confidence
        self.n = len(self.costs)
        self.mean = statistics.mean(self.costs)
        self.variance = statistics.variance(self.costs, self.mean) if self.n > 1 else 0.0

        quantile = 1.0 - (1.0 - confidence) / 2.0
        if 1 < self.n < SMALL_SAMPLE:
            self.critical_value = t.ppf(quantile, df=self.n - 1)
        else:
            self.critical_value = norm.ppf(quantile)
        self.half_width = self.critical_value * math.sqrt(self.variance / self.n)
        log.debug("[BOUND] %s", self)

    @property
    def std_dev(self):
        return math.sqrt(self.variance)

    @property
    def lower(self):
        return self.mean - self.half_width

    @property
    def upper(self):
        return self.mean + self.half_width

    @property
    def width(self):
        return 2.0 * self.half_width

    def __str__(self):
        return (
            f"{self.mean:.2f} +/- {self.half_width:.2f} "
            f"[{self.lower:.2f}, {self.upper:.2f}] "
            f"({self.confidence:.0%}, n={self.n})"
        )
