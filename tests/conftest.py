"""
Pytest configuration and shared fixtures for scheduler tests.
"""
import numpy as np
import pytest

from workload import generate_instance, generate_prediction


@pytest.fixture
def small_instance():
    """Lengths from the SPT example: completions 2, 6, 12."""
    return [2.0, 4.0, 6.0]


@pytest.fixture
def unit_instance():
    """Three equal unit jobs."""
    return [1.0, 1.0, 1.0]


@pytest.fixture
def mixed_instance():
    return [3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0]


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def random_instance():
    """Pareto instance with a noisy prediction, fixed seed."""
    gen = np.random.default_rng(7)
    instance = generate_instance(60, alpha=1.5, rng=gen)
    prediction = generate_prediction(instance, sigma=2.0, rng=gen)
    return instance, prediction
