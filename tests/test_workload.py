"""
Tests for instance and prediction generation.
"""
import numpy as np
import pytest

from jobs import PermutationPrediction
from workload import (
    analyse_instances,
    create_mean_instance,
    generate_instance,
    generate_permutation_prediction,
    generate_prediction,
    generate_releases,
    generate_weights,
)


def test_instance_lengths_are_at_least_one(rng):
    instance = generate_instance(500, alpha=1.1, rng=rng)
    assert len(instance) == 500
    assert min(instance) >= 1.0


def test_same_seed_same_instance():
    first = generate_instance(20, rng=np.random.default_rng(5))
    second = generate_instance(20, rng=np.random.default_rng(5))
    assert first == second


@pytest.mark.parametrize("rel_sigma", [False, True])
def test_noisy_prediction_stays_at_least_one(rng, rel_sigma):
    instance = generate_instance(200, rng=rng)
    prediction = generate_prediction(instance, 50.0, rel_sigma=rel_sigma, rng=rng)
    assert len(prediction) == len(instance)
    assert min(prediction) >= 1.0
    assert prediction != instance


def test_zero_noise_is_exact(rng):
    instance = generate_instance(10, rng=rng)
    assert generate_prediction(instance, 0, rng=rng) == instance


def test_permutation_prediction(rng):
    instance = [5.0, 1.0, 3.0]
    exact = generate_permutation_prediction(instance, 0, rng=rng)
    assert isinstance(exact, PermutationPrediction)
    assert exact.permutation == [1, 2, 0]

    noisy = generate_permutation_prediction(generate_instance(30, rng=rng), 10.0, rng=rng)
    assert sorted(noisy) == list(range(30))


def test_weights_and_releases(rng):
    weights = generate_weights(50, rng=rng)
    assert all(1.0 <= w <= 10.0 for w in weights)

    releases = generate_releases(50, horizon=7, rng=rng)
    assert all(isinstance(r, int) and 0 <= r <= 7 for r in releases)
    assert generate_releases(3, rng=rng) == [0, 0, 0]


def test_mean_instance(rng):
    history = [[1.0, 3.0], [3.0, 5.0]]
    assert create_mean_instance(history, 2) == [2.0, 4.0]
    fresh = create_mean_instance([], 4, rng=rng)
    assert len(fresh) == 4


def test_analyse_instances(capsys):
    summary = analyse_instances([[1.0, 3.0], [2.0, 6.0]])
    assert summary['mean'] == pytest.approx(3.0)
    assert summary['max'] == 6.0
    assert "Instance Generation Summary" in capsys.readouterr().out
