from math import comb

from .base import Scheduler, bounded_share, spt, validate_instance, validate_unit_interval


class TwoStage(Scheduler):
    """
    Two-stage schedule: round robin for a bounded time, then commit to the
    predicted order until a misprediction is observed.

    Stages:
    1. Round robin until the clock reaches B = λ n OPT(y) / C(n, 2), all jobs
       finish, or a misprediction is detected
    2. Jobs in predicted order, each run to completion; aborted by the first
       misprediction
    3. Round robin over whatever is left

    A misprediction is detected when a job completes and its true length
    differs from its predicted length.
    """

    name = "Two-Stage"

    def __init__(self, robustification=0.5, debug=False):
        super().__init__(debug=debug)
        validate_unit_interval("robustification", robustification)
        self.robustification = robustification
        self.misprediction_time = None

    def budget(self, prediction):
        n = len(prediction)
        if n < 2:
            return 0.0
        return self.robustification * n * spt(prediction) / comb(n, 2)

    def run(self, instance, prediction):
        validate_instance(instance, prediction)
        env = self.build_environment(instance, prediction)
        self.misprediction_time = None
        budget = self.budget(prediction)

        self._round_robin(env, instance, prediction, budget)

        if self.misprediction_time is None:
            for jid in sorted(env.active, key=lambda j: (prediction[j], j)):
                job = env.jobs[jid]
                env.run_for(job.length)
                env.process(jid, job.length)
                if self._mispredicted(env, instance, prediction, jid):
                    break
            env.clear_completed()

        self._round_robin(env, instance, prediction, float("inf"))
        return env.obj

    def _mispredicted(self, env, instance, prediction, jid):
        if self.misprediction_time is None and instance[jid] != prediction[jid]:
            self.misprediction_time = env.time
            env.log(f"misprediction detected on job {jid}")
        return self.misprediction_time is not None

    def _round_robin(self, env, instance, prediction, until):
        """Processor sharing until the clock reaches `until` or a misprediction is seen."""
        while env.active and env.time < until:
            if until != float("inf") and self.misprediction_time is not None:
                return
            n = len(env.active)
            shortest = min(env.jobs[jid].length for jid in env.active)
            share = min(shortest, (until - env.time) / n)
            env.run_for(share * n)
            for jid in env.active:
                job = env.jobs[jid]
                if env.process(jid, bounded_share(share, job.length)):
                    self._mispredicted(env, instance, prediction, jid)
            env.clear_completed()
            if share < shortest:
                # budget exhausted
                return


def two_stage_schedule(instance, prediction, robustification, debug=False):
    return TwoStage(robustification, debug=debug).run(instance, prediction)
