"""
Tests for the reference objectives and input validation shared by all schedulers.
"""
import pytest

from errors import ConfigurationError
from jobs import PermutationPrediction
from schedulers.base import bounded_share, round_robin, spt, validate_instance, validate_releases


def test_spt_example():
    """Sorted [2, 4, 6] completes at 2, 6, 12."""
    assert spt([6.0, 2.0, 4.0]) == 20.0


def test_round_robin_equal_jobs_finish_together():
    assert round_robin([1.0, 1.0, 1.0]) == 9.0


def test_round_robin_closed_form(mixed_instance):
    # sorted 1,1,2,3,4,5,6,9 -> 8, 8, 14, 19, 23, 26, 28, 31
    assert round_robin(mixed_instance) == pytest.approx(157.0)


def test_bounded_share_snaps_rounding_only():
    assert bounded_share(1.0 + 1e-15, 1.0) == 1.0
    assert bounded_share(1.0 - 1e-15, 1.0) == 1.0
    assert bounded_share(0.5, 1.0) == 0.5
    assert bounded_share(1.5, 1.0) == 1.5, "Real overruns are left for the substrate to reject"


@pytest.mark.parametrize("instance, prediction", [
    ([], None),
    ([1.0, -2.0], None),
    ([1.0, float("nan")], None),
    ([1.0, 2.0], [1.0]),
    ([1.0, 2.0], [1.0, 0.0]),
])
def test_validate_instance_rejects_malformed_input(instance, prediction):
    with pytest.raises(ConfigurationError):
        validate_instance(instance, prediction)


def test_validate_instance_checks_weights_and_minimum():
    with pytest.raises(ConfigurationError):
        validate_instance([1.0, 2.0], weights=[1.0, 0.0])
    with pytest.raises(ConfigurationError):
        validate_instance([0.5, 2.0], min_length=1.0)
    validate_instance([1.0, 2.0], PermutationPrediction([1, 0]), weights=[1.0, 2.0])


def test_validate_releases():
    validate_releases([0, 3, 3], 3)
    with pytest.raises(ConfigurationError):
        validate_releases([0, -1], 2)
    with pytest.raises(ConfigurationError):
        validate_releases([0, 1.5], 2)
    with pytest.raises(ConfigurationError):
        validate_releases([0], 2)


@pytest.mark.parametrize("release", [float("inf"), float("nan")])
def test_validate_releases_rejects_non_finite(release):
    with pytest.raises(ConfigurationError):
        validate_releases([0, release], 2)


def test_permutation_prediction_must_be_a_permutation():
    with pytest.raises(ConfigurationError):
        PermutationPrediction([0, 0, 1])
    assert PermutationPrediction([2, 0, 1]).positions() == [1, 2, 0]
