"""
Randomized phase algorithm for non-clairvoyant scheduling with predictions.

Each phase:
1. estimates the median remaining length m of the live jobs by simulating
   weighted round robin on a sample of them
2. estimates the prediction error by running a sample of jobs for at most
   (1 + trust) * m and comparing realized and predicted work
3. runs one round robin round (cap 2m per job) when the error estimate is
   large, or one follow-the-prediction round otherwise

Phases repeat while at least log2(n) / trust^3 jobs are alive; the rest is
finished by round robin, or in predicted order in expectation mode.

All work and clock advances go through the Environment, so objective
accounting stays in one place.
"""
import math

import numpy as np

from errors import ConfigurationError, SimulationError
from .base import Scheduler, bounded_share, validate_instance

DEFAULT_DELTA = 1.0 / 50.0

MEDIAN_HIGH_PROBABILITY = "whp"
MEDIAN_EXPECTATION = "expectation"


def sample_with_replacement(rng, population, sample_size):
    """Draw `sample_size` indices into `population` uniformly with replacement."""
    if population == 0 or sample_size == 0:
        return np.empty(0, dtype=np.int64)
    return rng.integers(0, population, size=sample_size)


def median_sample_size(n, delta, mode=MEDIAN_HIGH_PROBABILITY):
    """
    Size of the median estimation sample.

    MEDIAN_HIGH_PROBABILITY: ceil(ln(2n) / delta^2), correct with high probability
    MEDIAN_EXPECTATION:      ceil(1 / delta^2), correct in expectation
    """
    if mode == MEDIAN_HIGH_PROBABILITY:
        return int(math.ceil(math.log(2 * n) / (delta * delta)))
    if mode == MEDIAN_EXPECTATION:
        return int(math.ceil(1.0 / (delta * delta)))
    raise ConfigurationError(f"unknown median sample mode {mode!r}")


def median_estimate(env, delta, rng, mode=MEDIAN_HIGH_PROBABILITY):
    """
    Estimate the median remaining length of the live jobs.

    Weighted round robin is simulated over the distinct sampled jobs, each
    weighted by how often it was drawn. Jobs then finish in order of
    length / occurrences. The job whose completion pushes the finished weight
    to at least half the sample is the estimate; its length before the
    estimation started is returned.
    """
    sample_size = median_sample_size(env.n, delta, mode)
    draws = sample_with_replacement(rng, len(env.active), sample_size)
    occurrences = {}
    for idx in draws:
        jid = env.active[idx]
        occurrences[jid] = occurrences.get(jid, 0) + 1

    order = sorted(occurrences,
                   key=lambda j: (env.jobs[j].length / occurrences[j], j))
    initial_lengths = {j: env.jobs[j].length for j in order}

    level = 0.0  # work received so far per unit of weight
    finished = 0
    for i, jid in enumerate(order):
        occ = occurrences[jid]
        job = env.jobs[jid]
        if env.process(jid, bounded_share(level * occ, job.length)):
            finished += occ
        else:
            amount = job.length
            env.run_for(amount * (sample_size - finished) / occ)
            env.complete(jid)
            finished += occ
            level += amount / occ

        if 2 * finished >= sample_size:
            # the unfinished sampled jobs were served alongside
            for other in order[i + 1:]:
                share = level * occurrences[other]
                env.process(other, bounded_share(share, env.jobs[other].length))
            env.clear_completed()
            estimate = initial_lengths[jid]
            env.log(f"median estimate {estimate:.3f} from {len(order)} distinct sampled jobs")
            return estimate

    raise SimulationError("median estimation did not reach half of the sampled weight")


def _pair_offsets(n):
    # first flat index of row i in the list of pairs (i, j), i <= j < n
    i = np.arange(n, dtype=np.int64)
    return i * n - i * (i - 1) // 2


def sample_pairs(rng, n, sample_size):
    """
    Sample pairs (i, j) with 0 <= i <= j < n uniformly with replacement.

    Returns:
        (pairs, total) where pairs is a (sample_size, 2) array of positions and
        total = n (n + 1) / 2 is the number of pairs sampled from
    """
    total = n * (n + 1) // 2
    flat = sample_with_replacement(rng, total, sample_size)
    offsets = _pair_offsets(n)
    rows = np.searchsorted(offsets, flat, side="right") - 1
    cols = rows + (flat - offsets[rows])
    return np.stack([rows, cols], axis=1), total


def error_estimate(env, trust, est_median, rng):
    """
    Estimate the total prediction error among pairs of live jobs.

    Every job touched by the sampled pairs is run for at most
    (1 + trust) * est_median; its gap is |run amount - min(pred, cap)|.
    The estimate scales the mean of min(gap_i, gap_j) over the sample to all pairs.
    """
    sample_size = int(math.ceil(math.log2(env.n) / (trust * trust)))
    if sample_size == 0 or not env.active:
        return 0.0
    pairs, total = sample_pairs(rng, len(env.active), sample_size)
    touched = sorted({env.active[p] for p in np.unique(pairs)})

    cap = (1.0 + trust) * est_median
    gaps = {}
    for jid in touched:
        job = env.jobs[jid]
        l = min(job.length, cap)
        gaps[jid] = abs(l - min(job.pred, cap))
        env.run_for(l)
        env.process(jid, l)

    # positions refer to the live set as it was before the clear
    positions = list(env.active)
    env.clear_completed()

    acc = 0.0
    for i, j in pairs:
        acc += min(gaps[positions[i]], gaps[positions[j]])
    estimate = total * acc / sample_size
    env.log(f"error estimate {estimate:.3f} over {sample_size} sampled pairs")
    return estimate


def rr_round(env, cap):
    """One round robin sweep: every live job gets min(length, cap) work."""
    order = sorted(env.active, key=lambda j: (env.jobs[j].length, j))
    level = 0.0
    finished = 0
    for jid in order:
        job = env.jobs[jid]
        if env.process(jid, bounded_share(level, job.length)):
            finished += 1
            continue
        amount = min(job.length, cap - level)
        if amount <= 0.0:
            continue
        env.run_for(amount * (len(order) - finished))
        if env.process(jid, bounded_share(amount, job.length)):
            finished += 1
        level += amount
    env.clear_completed()


def ftp_round(env, trust, est_median):
    """Follow the prediction over jobs predicted to be short."""
    order = sorted(env.active, key=lambda j: (env.jobs[j].pred, j))
    for jid in order:
        job = env.jobs[jid]
        if job.pred <= (1.0 + trust) * est_median:
            l = min(job.length, job.pred + 3.0 * trust * est_median)
            env.run_for(l)
            env.process(jid, l)
    env.clear_completed()


class PhaseAlgorithm(Scheduler):
    """
    Args:
        trust: trust parameter (epsilon > 0); larger values end the phases earlier
        expectation: finish the remaining jobs in predicted order instead of by
            round robin, and size the median sample for correctness in expectation
        delta: precision of the median estimate
        rng: numpy Generator used for all sampling
    """

    name = "Phase"

    def __init__(self, trust=1.0, expectation=False, delta=DEFAULT_DELTA, rng=None, debug=False):
        super().__init__(debug=debug)
        if not trust > 0:
            raise ConfigurationError(f"trust must be positive, got {trust}")
        if not 0 < delta < 1:
            raise ConfigurationError(f"delta must lie in (0, 1), got {delta}")
        self.trust = trust
        self.expectation = expectation
        self.delta = delta
        self.rng = rng or np.random.default_rng()
        self.rr_rounds = 0
        self.ftp_rounds = 0

    @property
    def median_mode(self):
        return MEDIAN_EXPECTATION if self.expectation else MEDIAN_HIGH_PROBABILITY

    def threshold(self, n):
        return math.log2(n) / self.trust ** 3

    def run(self, instance, prediction):
        validate_instance(instance, prediction)
        env = self.build_environment(instance, prediction)
        eps = self.trust
        delta = self.delta
        self.rr_rounds = 0
        self.ftp_rounds = 0

        while env.active and env.nk() >= self.threshold(env.n):
            mk = median_estimate(env, delta, self.rng, self.median_mode)
            error = error_estimate(env, eps, mk, self.rng)
            nk = env.nk()
            if error >= eps * delta * delta * mk * nk * nk / 16.0:
                env.log(f"error {error:.3f} is large: round robin round")
                rr_round(env, 2.0 * mk)
                self.rr_rounds += 1
            else:
                env.log(f"error {error:.3f} is small: follow-the-prediction round")
                ftp_round(env, eps, mk)
                self.ftp_rounds += 1

        if self.expectation:
            order = sorted(env.active, key=lambda j: (env.jobs[j].pred, j))
            for jid in order:
                env.run_for(env.jobs[jid].length)
                env.complete(jid)
        else:
            rr_round(env, float("inf"))
        env.clear_completed()

        if env.active:
            raise SimulationError(f"{len(env.active)} jobs left after the final round")
        return env.obj


def phase_algorithm(instance, prediction, trust, expectation=False, rng=None, debug=False):
    return PhaseAlgorithm(trust, expectation=expectation, rng=rng, debug=debug).run(instance, prediction)
