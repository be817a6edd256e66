import math

import pytest
from scipy.stats import norm, t

from scresilience.bounds import CostBound


@pytest.mark.parametrize("confidence", [0.5, 0.9, 0.95, 0.999])
@pytest.mark.parametrize("n", [1, 2, 7, 40])
def test_identical_costs_give_zero_width(confidence, n):
    bound = CostBound(confidence, [1234.5] * n)
    assert bound.mean == 1234.5
    assert bound.half_width == 0.0
    assert bound.lower == bound.upper == 1234.5


def test_two_samples_use_bessel_variance():
    a, b = 3000.0, 3400.0
    bound = CostBound(0.95, [a, b])
    assert bound.variance == pytest.approx((a - b) ** 2 / 2)
    assert bound.critical_value == pytest.approx(t.ppf(0.975, df=1))
    assert bound.half_width == pytest.approx(t.ppf(0.975, df=1) * math.sqrt(bound.variance / 2))


def test_small_sample_uses_student_t():
    costs = [10.0, 12.0, 11.0, 9.0, 13.0]
    bound = CostBound(0.9, costs)
    assert bound.critical_value == pytest.approx(t.ppf(0.95, df=4))


def test_large_sample_uses_normal():
    costs = [float(i % 7) for i in range(30)]
    bound = CostBound(0.95, costs)
    assert bound.critical_value == pytest.approx(norm.ppf(0.975))
    assert bound.lower < bound.mean < bound.upper


def test_single_observation_collapses():
    bound = CostBound(0.95, [42.0])
    assert bound.variance == 0.0
    assert bound.width == 0.0


def test_rejects_empty_sample():
    with pytest.raises(ValueError):
        CostBound(0.95, [])


@pytest.mark.parametrize("confidence", [0.0, 1.0, 1.5, -0.1])
def test_rejects_bad_confidence(confidence):
    with pytest.raises(ValueError):
        CostBound(confidence, [1.0, 2.0])
