"""
Continuous-time substrate shared by the single-machine algorithms.

The environment keeps:
- an arena of Job records indexed by job identity (never reordered)
- the ordered list of live job identities, pruned by clear_completed()
- a virtual clock that only moves forward
- the accumulated objective (sum of weighted completion times)

Algorithms mutate the state only through process(), complete(), run_for()
and clear_completed(), so all objective accounting happens here.
"""
from errors import SimulationError


class Environment:
    def __init__(self, jobs, debug=False):
        self.jobs = list(jobs)
        for idx, job in enumerate(self.jobs):
            if job.jid != idx:
                raise SimulationError(
                    f"job identities must match arena positions ({job.jid} at {idx})")
        self.n = len(self.jobs)
        self.time = 0.0
        self.obj = 0.0
        self.active = [job.jid for job in self.jobs]
        self._live = set(self.active)
        self.debug = debug

    def log(self, msg):
        if self.debug:
            print(f"[t={self.time:.2f}] {msg}")

    def nk(self):
        """Number of jobs in the live set (completed jobs count until cleared)."""
        return len(self.active)

    def active_count(self):
        """Number of live jobs that have not completed yet."""
        return sum(1 for jid in self.active if not self.jobs[jid].completed)

    def _get(self, jid):
        if jid not in self._live:
            raise SimulationError(f"job {jid} is not in the active set")
        return self.jobs[jid]

    def process(self, jid, amount):
        """
        Serve a job for `amount` units of work.

        Returns:
            True if the job completed because of this call
        """
        job = self._get(jid)
        job.length -= amount
        job.pred = max(job.pred - amount, 0.0)
        if job.length < 0.0:
            raise SimulationError(
                f"job {jid} length < 0 ({job.length}) after processing {amount}")
        if job.length == 0.0 and not job.completed:
            self._mark_completed(job)
            return True
        return False

    def complete(self, jid):
        """Finish a job at the current instant; completed jobs are never charged twice."""
        job = self._get(jid)
        job.length = 0.0
        job.pred = 0.0
        if not job.completed:
            self._mark_completed(job)

    def _mark_completed(self, job):
        job.completed = True
        job.completion_time = self.time
        self.obj += self.time * job.weight

    def run_for(self, duration):
        if duration < 0.0:
            raise SimulationError(f"cannot run for a negative duration ({duration})")
        self.time += duration

    def clear_completed(self):
        done = [jid for jid in self.active if self.jobs[jid].completed]
        if done:
            self.active = [jid for jid in self.active if not self.jobs[jid].completed]
            self._live.difference_update(done)
        return len(done)
