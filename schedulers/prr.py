from jobs import PermutationPrediction
from .base import Scheduler, bounded_share, validate_instance, validate_unit_interval


class PreferentialRoundRobin(Scheduler):
    """
    Preferential Round Robin (PRR).

    Runs round robin with a λ fraction of the machine and dedicates the other
    1 - λ to the job that comes first in the predicted order. λ = 1 is pure
    round robin, λ = 0 follows the prediction (shortest predicted first).

    Two cursors walk the jobs: one over the true-length order (the next job
    round robin will finish) and one over the predicted order (the job that
    currently receives the dedicated share). Between two completions every
    rate is constant, so the clock jumps straight to the next completion:

        l = min(rr.length * n / λ, pred.length * n / (n - (n - 1) λ))

    Precondition: every true length is at least 1.
    """

    name = "PRR"

    def __init__(self, robustification=0.5, debug=False):
        super().__init__(debug=debug)
        validate_unit_interval("robustification", robustification)
        self.robustification = robustification

    def run(self, instance, prediction):
        validate_instance(instance, prediction, min_length=1.0)
        lam = self.robustification

        if isinstance(prediction, PermutationPrediction):
            # only the order is known; the substrate never reads pred here
            env = self.build_environment(instance, [0.0] * len(instance))
            pred_order = list(prediction.permutation)
        else:
            env = self.build_environment(instance, prediction)
            pred_order = sorted(range(env.n), key=lambda j: (prediction[j], j))
        rr_order = sorted(range(env.n), key=lambda j: (env.jobs[j].length, j))

        rr = 0
        pspt = 0
        while env.active:
            while env.jobs[rr_order[rr]].completed:
                rr += 1
            while env.jobs[pred_order[pspt]].completed:
                pspt += 1
            rr_job = env.jobs[rr_order[rr]]
            pred_job = env.jobs[pred_order[pspt]]
            n = len(env.active)

            if 0.0 < lam < 1.0:
                l = min(rr_job.length * n / lam,
                        pred_job.length * n / (n - (n - 1) * lam))
            elif lam == 0.0:
                l = pred_job.length
            else:
                l = rr_job.length * n
            env.run_for(l)

            if lam > 0.0:
                share = l * lam / n
                for jid in env.active:
                    if lam == 1.0 or jid != pred_job.jid:
                        env.process(jid, bounded_share(share, env.jobs[jid].length))

            if lam < 1.0:
                if lam == 0.0:
                    extra = l
                else:
                    extra = l * ((1.0 - lam) + lam / n)
                env.process(pred_job.jid, bounded_share(extra, pred_job.length))

            finished = env.clear_completed()
            env.log(f"{finished} jobs completed, {len(env.active)} alive")

        return env.obj


def preferential_rr(instance, prediction, robustification, debug=False):
    return PreferentialRoundRobin(robustification, debug=debug).run(instance, prediction)
