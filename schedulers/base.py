"""
Shared building blocks for the scheduling algorithms.

Two abstract interfaces:
1. Scheduler: single machine, continuous virtual time, runs on an Environment
2. MachineScheduler: m identical machines, discrete time steps, owns its step loop
   and delegates the per-step machine-time allocation to rate rules

Plus the reference objectives used to evaluate them (SPT optimum and plain
round robin) and input validation done before any run starts.
"""
import math
from abc import ABC, abstractmethod

from environment import Environment
from errors import ConfigurationError, SimulationError
from jobs import DiscreteJob, Job, PermutationPrediction


def spt(lengths):
    """Optimal sum of completion times on one machine (shortest first)."""
    obj = 0.0
    t = 0.0
    for p in sorted(lengths):
        t += p
        obj += t
    return obj


def round_robin(lengths):
    """
    Sum of completion times under prediction-free processor sharing.

    With lengths sorted ascending, the i-th job (0-based) finishes after every
    shorter job is done and the remaining n - i jobs each received p_i:
    C_i = sum_{k<i} p_k + (n - i) * p_i
    """
    ordered = sorted(lengths)
    n = len(ordered)
    obj = 0.0
    done = 0.0
    for i, p in enumerate(ordered):
        obj += done + (n - i) * p
        done += p
    return obj


def create_jobs(instance, prediction, weights=None):
    if weights is None:
        weights = [1.0] * len(instance)
    return [Job(i, float(p), float(y), float(w))
            for i, (p, y, w) in enumerate(zip(instance, prediction, weights))]


def bounded_share(amount, remaining, rel_tol=1e-9):
    """
    Snap a computed service amount to the job's remaining length when the two
    only differ by floating-point rounding; otherwise return it unchanged.
    """
    if amount != remaining and math.isclose(amount, remaining, rel_tol=rel_tol):
        return remaining
    return amount


def _check_lengths(name, values, n=None):
    if n is not None and len(values) != n:
        raise ConfigurationError(
            f"{name} has {len(values)} entries, expected {n}")
    for i, v in enumerate(values):
        if not math.isfinite(v) or v <= 0:
            raise ConfigurationError(
                f"{name}[{i}] must be a positive finite number, got {v}")


def validate_instance(instance, prediction=None, weights=None, min_length=None):
    """Reject malformed input before a run; see ConfigurationError."""
    if len(instance) == 0:
        raise ConfigurationError("instance must contain at least one job")
    _check_lengths("instance", instance)
    if min_length is not None:
        for i, p in enumerate(instance):
            if p < min_length:
                raise ConfigurationError(
                    f"instance[{i}] = {p} is below the minimum length {min_length}")
    if isinstance(prediction, PermutationPrediction):
        if len(prediction) != len(instance):
            raise ConfigurationError(
                f"prediction has {len(prediction)} entries, expected {len(instance)}")
    elif prediction is not None:
        _check_lengths("prediction", prediction, len(instance))
    if weights is not None:
        _check_lengths("weights", weights, len(instance))


def validate_releases(releases, n):
    if len(releases) != n:
        raise ConfigurationError(
            f"releases has {len(releases)} entries, expected {n}")
    for i, r in enumerate(releases):
        if not math.isfinite(r) or int(r) != r or r < 0:
            raise ConfigurationError(
                f"releases[{i}] must be a non-negative integer, got {r}")


def validate_unit_interval(name, value):
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")


class Scheduler(ABC):
    """Single-machine algorithm on the continuous-time substrate."""

    name = None

    def __init__(self, debug=False):
        self.debug = debug

    def build_environment(self, instance, prediction):
        return Environment(create_jobs(instance, prediction), debug=self.debug)

    @abstractmethod
    def run(self, instance, prediction):
        """
        Simulate the algorithm on one instance.

        Args:
            instance: true job lengths indexed by job identity
            prediction: predicted lengths indexed by job identity

        Returns:
            Total (weighted) completion time of the produced schedule
        """
        pass


class MachineScheduler(ABC):
    """
    Identical-machines algorithm simulated in steps of 1/scale time units.

    Subclasses only decide how machine time is split among the active jobs
    (compute_rates). Rates are recomputed only when the active set changed.
    """

    name = None

    def __init__(self, m=1, scale=1, debug=False):
        if int(m) != m or m < 1:
            raise ConfigurationError(f"machine count must be a positive integer, got {m}")
        if int(scale) != scale or scale < 1:
            raise ConfigurationError(f"time scale must be a positive integer, got {scale}")
        self.m = int(m)
        self.scale = int(scale)
        self.debug = debug
        self.t = 0

    def log(self, msg):
        if self.debug:
            print(f"[t={self.t / self.scale:.2f}] {msg}")

    @abstractmethod
    def compute_rates(self, jobs):
        """
        Machine time given to each active job during one step.

        Args:
            jobs: active jobs sorted by weight / predicted length, descending

        Returns:
            List of rates aligned with `jobs`, each in [0, 1]
        """
        pass

    def run(self, instance, weights, releases, prediction=None):
        """
        Args:
            instance: true job lengths
            weights: positive job weights
            releases: integer release times (unscaled)
            prediction: predicted lengths; defaults to the true lengths

        Returns:
            Sum of weighted completion times in unscaled time units
        """
        if prediction is None:
            prediction = instance
        validate_instance(instance, prediction, weights)
        validate_releases(releases, len(instance))

        pending = {}
        for jid, r in enumerate(releases):
            pending.setdefault(int(r) * self.scale, []).append(jid)

        self.t = 0
        obj = 0.0
        remaining = len(instance)
        jobs = []
        rates = []
        dirty = True

        while remaining > 0:
            released = pending.pop(self.t, None)
            if released:
                for jid in released:
                    jobs.append(DiscreteJob(jid, weights[jid],
                                            prediction[jid] * self.scale,
                                            instance[jid] * self.scale))
                jobs.sort(key=lambda j: (-j.weight / j.pred, j.jid))
                self.log(f"released {released}")
                dirty = True

            if dirty:
                rates = self.compute_rates(jobs)
                dirty = False

            for job, rate in zip(jobs, rates):
                job.length -= rate

            self.t += 1

            finished = [j for j in jobs if j.length <= 0.0]
            if finished:
                for job in finished:
                    obj += self.t * job.weight
                remaining -= len(finished)
                jobs = [j for j in jobs if j.length > 0.0]
                self.log(f"completed {[j.jid for j in finished]}")
                dirty = True

            if not jobs and not pending and remaining > 0:
                raise SimulationError(f"{remaining} jobs were never released")

        return obj / self.scale
