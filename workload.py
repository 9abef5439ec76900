"""
Synthetic instances and predictions for the scheduling experiments.

Generates:
- Instances: Pareto distributed job lengths (scale 1, shape alpha), so every length is >= 1
- Length predictions: true length plus Gaussian noise, either with a fixed
  standard deviation sigma or with sigma scaled by sqrt(length); draws below 1
  are resampled
- Permutation predictions: the order of noisy predicted lengths
- Weights and release times for the identical-machines experiments

Every generator takes an explicit numpy Generator so that a whole experiment
can be replayed from one seed.
"""
import numpy as np

from jobs import PermutationPrediction


def generate_instance(length, alpha=1.1, rng=None):
    """Pareto(1, alpha) job lengths."""
    rng = rng or np.random.default_rng()
    # numpy's pareto is the Lomax distribution; shift to the classic Pareto
    return (rng.pareto(alpha, size=length) + 1.0).tolist()


def _noisy_lengths(instance, scales, rng):
    lengths = np.asarray(instance, dtype=float)
    scales = np.broadcast_to(np.asarray(scales, dtype=float), lengths.shape)
    preds = lengths + rng.normal(0.0, scales)
    low = preds < 1.0
    while low.any():
        preds[low] = lengths[low] + rng.normal(0.0, scales[low])
        low = preds < 1.0
    return preds


def generate_prediction(instance, sigma, rel_sigma=False, rng=None):
    """
    Noisy length predictions.

    Args:
        instance: true job lengths
        sigma: standard deviation of the noise (absolute), or its scale factor
            when rel_sigma is set (std = sqrt(length) * sigma)
        rel_sigma: scale the noise with the job length
        rng: numpy Generator
    """
    rng = rng or np.random.default_rng()
    if sigma == 0:
        return [float(p) for p in instance]
    if rel_sigma:
        scales = np.sqrt(np.asarray(instance, dtype=float)) * sigma
    else:
        scales = sigma
    return _noisy_lengths(instance, scales, rng).tolist()


def generate_permutation_prediction(instance, sigma, rng=None):
    """Predicted completion order: jobs sorted by noisy predicted length."""
    rng = rng or np.random.default_rng()
    if sigma == 0:
        preds = np.asarray(instance, dtype=float)
    else:
        preds = _noisy_lengths(instance, sigma, rng)
    return PermutationPrediction(np.argsort(preds, kind="stable").tolist())


def generate_weights(length, low=1.0, high=10.0, rng=None):
    rng = rng or np.random.default_rng()
    return rng.uniform(low, high, size=length).tolist()


def generate_releases(length, horizon=0, rng=None):
    """Integer release times drawn uniformly from [0, horizon]."""
    rng = rng or np.random.default_rng()
    if horizon <= 0:
        return [0] * length
    return rng.integers(0, horizon + 1, size=length).tolist()


def create_mean_instance(instances, instance_length, alpha=1.1, rng=None):
    """
    Prediction built from history: per-job mean of the observed instances,
    or a fresh instance when nothing has been observed yet.
    """
    if not instances:
        return generate_instance(instance_length, alpha, rng)
    return np.mean(np.asarray(instances, dtype=float), axis=0).tolist()


def analyse_instances(instances):
    """Summary statistics over all job lengths of several instances."""
    flat = np.concatenate([np.asarray(instance, dtype=float) for instance in instances])
    summary = {
        "mean": float(np.mean(flat)),
        "std": float(np.std(flat)),
        "max": float(np.max(flat)),
    }
    print("Instance Generation Summary:")
    print(f"  Mean: {summary['mean']:.3f}")
    print(f"  StdDev: {summary['std']:.3f}")
    print(f"  Max: {summary['max']:.3f}")
    return summary
