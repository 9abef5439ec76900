"""
Tests for the two-stage schedule (budgeted round robin, then predicted order).
"""
import pytest

from errors import ConfigurationError
from schedulers.base import spt
from schedulers.two_stage import TwoStage, two_stage_schedule
from test_utils import assert_at_least_optimal


def test_zero_robustification_follows_prediction(small_instance):
    assert two_stage_schedule(small_instance, small_instance, 0.0) == pytest.approx(20.0)


def test_budgeted_round_robin_then_prediction(small_instance):
    """
    Budget = 0.5 * 3 * 20 / 3 = 10: round robin finishes the 2 at t=6 and the 4
    at t=10, then the 6 runs alone.
    """
    scheduler = TwoStage(0.5)
    assert scheduler.budget(small_instance) == pytest.approx(10.0)
    assert scheduler.run(small_instance, small_instance) == pytest.approx(28.0)
    assert scheduler.misprediction_time is None


def test_misprediction_in_predicted_order_falls_back_to_round_robin():
    scheduler = TwoStage(0.0)

    obj = scheduler.run([5.0, 1.0, 3.0], [1.0, 2.0, 3.0])

    # job 0 runs alone to 5, then round robin finishes the others at 7 and 9
    assert obj == pytest.approx(21.0)
    assert scheduler.misprediction_time == pytest.approx(5.0)


def test_misprediction_during_round_robin_skips_predicted_order():
    scheduler = TwoStage(1.0)

    obj = scheduler.run([1.0, 3.0, 3.0], [2.0, 3.0, 3.0])

    assert obj == pytest.approx(17.0)
    assert scheduler.misprediction_time == pytest.approx(3.0)


def test_single_job_has_no_budget():
    scheduler = TwoStage(1.0)
    assert scheduler.budget([4.0]) == 0.0
    assert scheduler.run([4.0], [3.0]) == pytest.approx(4.0)


@pytest.mark.parametrize("lam", [0.0, 0.1, 0.5, 0.75, 1.0])
def test_random_instance_is_feasible(random_instance, lam):
    instance, prediction = random_instance
    obj = two_stage_schedule(instance, prediction, lam)
    assert_at_least_optimal(obj, instance)


def test_perfect_prediction_cost_grows_with_budget(mixed_instance):
    costs = [two_stage_schedule(mixed_instance, mixed_instance, lam) for lam in (0.0, 0.5, 1.0)]
    assert costs[0] == pytest.approx(spt(mixed_instance))
    assert costs[0] <= costs[1] * (1 + 1e-9)
    assert costs[1] <= costs[2] * (1 + 1e-9)


def test_rejects_bad_robustification():
    with pytest.raises(ConfigurationError):
        TwoStage(1.5)
    with pytest.raises(ConfigurationError):
        TwoStage(-0.1)
