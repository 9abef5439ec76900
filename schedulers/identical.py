"""
Identical parallel machines, simulated in discrete steps.

Rate rules (machine time per active job during one step):
- PWSPT: the m jobs with the largest weight / predicted length get a full machine
- WDEQ: weighted water filling, prediction-free
- PTS:  (1 - ρ) * PWSPT + ρ * WDEQ

Note the roles are flipped compared to the single-machine family: here the
prediction-driven rule is PWSPT and the fairness fallback is WDEQ, and ρ is the
weight of the fallback.
"""
import math

from .base import MachineScheduler, validate_unit_interval


def total_weight(jobs, indices):
    return sum(jobs[i].weight for i in indices)


def compute_pwspt_rates(jobs, m):
    """jobs must already be sorted by weight / predicted length, descending."""
    return [1.0 if idx < m else 0.0 for idx in range(len(jobs))]


def compute_wdeq_rates(jobs, m):
    """
    Weighted dynamic equipartition.

    Peel off jobs whose weighted fair share of the remaining machines is at
    least one machine and give them exactly one; split what is left among the
    others proportionally to their weights.
    """
    rates = [0.0] * len(jobs)
    rem_jobs = list(range(len(jobs)))
    rm = m
    while rem_jobs and rm > 0:
        wk = total_weight(jobs, rem_jobs)
        saturated = None
        for j in rem_jobs:
            share = jobs[j].weight * rm / wk
            if share >= 1.0 or math.isclose(share, 1.0):
                saturated = j
                break
        if saturated is None:
            break
        rates[saturated] = 1.0
        rm -= 1
        rem_jobs.remove(saturated)

    if rem_jobs and rm > 0:
        wk = total_weight(jobs, rem_jobs)
        for j in rem_jobs:
            rates[j] = jobs[j].weight * rm / wk
    return rates


class PWSPT(MachineScheduler):
    name = "PWSPT"

    def compute_rates(self, jobs):
        return compute_pwspt_rates(jobs, self.m)


class WDEQ(MachineScheduler):
    name = "WDEQ"

    def compute_rates(self, jobs):
        return compute_wdeq_rates(jobs, self.m)


class PTS(MachineScheduler):
    """
    Args:
        robustification: ρ in [0, 1]; 0 follows PWSPT, 1 is pure WDEQ
    """

    name = "PTS"

    def __init__(self, robustification=0.5, m=1, scale=1, debug=False):
        super().__init__(m=m, scale=scale, debug=debug)
        validate_unit_interval("robustification", robustification)
        self.robustification = robustification

    def compute_rates(self, jobs):
        rho = self.robustification
        pwspt_rates = compute_pwspt_rates(jobs, self.m)
        wdeq_rates = compute_wdeq_rates(jobs, self.m)
        return [(1.0 - rho) * a + rho * b for a, b in zip(pwspt_rates, wdeq_rates)]


def pwspt(instance, weights, releases, m, scale=1, prediction=None, debug=False):
    return PWSPT(m=m, scale=scale, debug=debug).run(instance, weights, releases, prediction)


def wdeq(instance, weights, releases, m, scale=1, debug=False):
    return WDEQ(m=m, scale=scale, debug=debug).run(instance, weights, releases)


def pts(instance, prediction, weights, releases, robustification, m, scale=1, debug=False):
    scheduler = PTS(robustification, m=m, scale=scale, debug=debug)
    return scheduler.run(instance, weights, releases, prediction)
