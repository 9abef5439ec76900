"""
Tests for the randomized phase algorithm and its estimators.

Sampling is driven by seeded numpy Generators so every run here is reproducible.
"""
import numpy as np
import pytest

from errors import ConfigurationError
from schedulers.base import round_robin, spt
from schedulers.phase import (
    MEDIAN_EXPECTATION,
    MEDIAN_HIGH_PROBABILITY,
    PhaseAlgorithm,
    error_estimate,
    ftp_round,
    median_estimate,
    median_sample_size,
    phase_algorithm,
    rr_round,
    sample_pairs,
)
from test_utils import assert_at_least_optimal, create_test_env


def test_median_sample_size_modes():
    # ln(20) / 0.25 = 11.98
    assert median_sample_size(10, 0.5, MEDIAN_HIGH_PROBABILITY) == 12
    assert median_sample_size(10, 0.5, MEDIAN_EXPECTATION) == 4
    with pytest.raises(ConfigurationError):
        median_sample_size(10, 0.5, "bogus")


def test_median_estimate_on_equal_jobs(rng):
    env = create_test_env([5.0] * 10)

    estimate = median_estimate(env, 0.5, rng)

    assert estimate == 5.0
    assert env.time > 0.0
    assert env.nk() < 10, "At least the tipping job completes"
    assert all(env.jobs[j].length > 0.0 for j in env.active)


def test_median_estimate_is_a_sampled_length(rng):
    lengths = [float(x) for x in range(1, 21)]
    env = create_test_env(lengths)

    estimate = median_estimate(env, 0.3, rng)

    assert estimate in lengths
    # completed jobs were charged exactly once, at most at the current time
    done = [job for job in env.jobs if job.completed]
    assert env.obj == pytest.approx(sum(job.completion_time for job in done))
    assert all(job.completion_time <= env.time for job in done)


def test_sample_pairs_are_ordered_and_in_range(rng):
    pairs, total = sample_pairs(rng, 7, 500)

    assert total == 28
    assert pairs.shape == (500, 2)
    assert np.all(pairs[:, 0] <= pairs[:, 1])
    assert np.all(pairs[:, 1] < 7)
    assert len({tuple(p) for p in pairs}) > 20, "Sampling covers most of the 28 pairs"


def test_sample_pairs_single_job(rng):
    pairs, total = sample_pairs(rng, 1, 3)
    assert total == 1
    assert pairs.tolist() == [[0, 0]] * 3


def test_error_estimate_is_zero_for_perfect_prediction(rng):
    env = create_test_env([2.0, 3.0, 5.0, 7.0, 11.0])

    assert error_estimate(env, 1.0, 4.0, rng) == 0.0


def test_error_estimate_detects_wrong_prediction(rng):
    env = create_test_env([10.0] * 8, [1.0] * 8)

    assert error_estimate(env, 0.5, 10.0, rng) > 0.0


def test_rr_round_uncapped_matches_round_robin():
    env = create_test_env([1.0, 2.0, 3.0])

    rr_round(env, float("inf"))

    assert env.obj == pytest.approx(round_robin([1.0, 2.0, 3.0]))
    assert not env.active


def test_rr_round_respects_cap():
    env = create_test_env([1.0, 2.0, 3.0])

    rr_round(env, 1.5)

    assert env.obj == 3.0
    assert env.time == 4.0
    assert sorted(env.jobs[j].length for j in env.active) == [0.5, 1.5]


def test_ftp_round_runs_short_predicted_jobs():
    env = create_test_env([2.0, 4.0, 8.0])

    ftp_round(env, 0.5, 4.0)

    assert env.obj == 8.0
    assert env.active == [2]


def test_phase_low_trust_is_round_robin(random_instance, rng):
    """log2(n) / 0.1^3 exceeds n, so no phase runs."""
    instance, prediction = random_instance
    obj = PhaseAlgorithm(0.1, rng=rng).run(instance, prediction)
    assert obj == pytest.approx(round_robin(instance))


def test_phase_expectation_mode_follows_perfect_prediction(random_instance, rng):
    instance, _ = random_instance
    obj = PhaseAlgorithm(0.1, expectation=True, rng=rng).run(instance, instance)
    assert obj == pytest.approx(spt(instance))


@pytest.mark.parametrize("expectation", [False, True])
def test_phase_completes_every_job(random_instance, expectation):
    instance, prediction = random_instance
    scheduler = PhaseAlgorithm(1.0, expectation=expectation, delta=0.2,
                               rng=np.random.default_rng(3))

    obj = scheduler.run(instance, prediction)

    assert_at_least_optimal(obj, instance)
    assert scheduler.rr_rounds + scheduler.ftp_rounds > 0, "n=60 is above the phase threshold"


def test_phase_is_reproducible(random_instance):
    instance, prediction = random_instance
    first = phase_algorithm(instance, prediction, 1.0, rng=np.random.default_rng(99))
    second = phase_algorithm(instance, prediction, 1.0, rng=np.random.default_rng(99))
    assert first == second


def test_phase_single_job(rng):
    assert phase_algorithm([4.0], [2.0], 1.0, rng=rng) == pytest.approx(4.0)


def test_phase_rejects_bad_parameters():
    with pytest.raises(ConfigurationError):
        PhaseAlgorithm(0.0)
    with pytest.raises(ConfigurationError):
        PhaseAlgorithm(1.0, delta=1.5)
    with pytest.raises(ConfigurationError):
        phase_algorithm([1.0, 2.0], [1.0], 1.0)
