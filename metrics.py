"""
Error measures and evaluation statistics.

Error measures compare an instance with its prediction and are only reported,
never used for scheduling decisions:
1. simple_error: sum of absolute deviations |p_j - y_j|
2. max_min_error: SPT(max(p, y)) - SPT(min(p, y))
3. inversion_error: for permutation predictions, the total length gap of the
   job pairs the prediction orders the wrong way round

Statistics summarise competitive ratios (algorithm objective / optimum)
across repeated runs.
"""
import numpy as np

from errors import ConfigurationError
from schedulers.base import spt


def _paired(instance, prediction):
    p = np.asarray(instance, dtype=float)
    y = np.asarray(prediction, dtype=float)
    if p.shape != y.shape:
        raise ConfigurationError(
            f"instance and prediction differ in length ({len(p)} vs {len(y)})")
    return p, y


def simple_error(instance, prediction):
    p, y = _paired(instance, prediction)
    return float(np.sum(np.abs(p - y)))


def max_min_error(instance, prediction):
    p, y = _paired(instance, prediction)
    return spt(np.maximum(p, y).tolist()) - spt(np.minimum(p, y).tolist())


def inversion_error(instance, prediction):
    """
    Args:
        instance: true job lengths
        prediction: PermutationPrediction (predicted completion order)

    A pair (i, j) is inverted when job i is shorter than job j (ties broken by
    identity) but predicted to finish after it; it contributes p_j - p_i.
    """
    p = np.asarray(instance, dtype=float)
    if len(prediction) != len(p):
        raise ConfigurationError("prediction does not cover every job")
    pos = np.asarray(prediction.positions())
    ids = np.arange(len(p))
    error = 0.0
    for i in range(len(p)):
        shorter = (p[i] < p) | ((p[i] == p) & (i < ids))
        inverted = shorter & (pos[i] > pos)
        error += float(np.sum(p[inverted] - p[i]))
    return error


def competitive_ratio(alg, opt):
    if opt <= 0:
        return 0.0
    return alg / opt


def summarize(values):
    """
    Mean with a normal-approximation 95% confidence interval, plus median.

    Returns:
        dict with keys mean, std_err, ci_lower, ci_upper, median, n
    """
    vals = np.asarray(values, dtype=float)
    if len(vals) == 0:
        return {'mean': 0.0, 'std_err': 0.0, 'ci_lower': 0.0, 'ci_upper': 0.0, 'median': 0.0, 'n': 0}
    mean = float(np.mean(vals))
    std_err = float(np.std(vals, ddof=1) / np.sqrt(len(vals))) if len(vals) > 1 else 0.0
    return {
        'mean': mean,
        'std_err': std_err,
        'ci_lower': mean - 1.96 * std_err,
        'ci_upper': mean + 1.96 * std_err,
        'median': float(np.median(vals)),
        'n': len(vals),
    }


def bootstrap_ci(data, func=np.median, n_bootstrap=10000, ci=0.95, rng=None):
    """
    Compute bootstrap confidence interval.

    Returns: (point_estimate, lower, upper)
    """
    rng = rng or np.random.default_rng()
    data = np.asarray(data, dtype=float)
    point_est = func(data)

    indices = rng.integers(0, len(data), size=(n_bootstrap, len(data)))
    bootstrap_stats = np.array([func(data[row]) for row in indices])

    alpha = (1 - ci) / 2
    lower = np.percentile(bootstrap_stats, alpha * 100)
    upper = np.percentile(bootstrap_stats, (1 - alpha) * 100)

    return float(point_est), float(lower), float(upper)
