"""
Job records and prediction containers.

A Job is owned by exactly one Environment for the duration of a run. Its
identity is the index of the job in the original instance and never changes,
even when completed jobs are pruned from the live set.
"""
from errors import ConfigurationError


class Job:
    def __init__(self, jid, length, pred, weight=1.0):
        self.jid = jid
        self.weight = weight
        self.length = length  # remaining true processing requirement
        self.pred = pred      # remaining predicted requirement, floored at 0
        self.completed = False
        self.completion_time = None

    def __repr__(self):
        return f"Job(jid={self.jid}, length={self.length}, pred={self.pred}, completed={self.completed})"


class PermutationPrediction:
    """
    Predicted completion order of the jobs.

    Args:
        permutation: job identities, first element is predicted to finish first
    """

    def __init__(self, permutation):
        permutation = [int(j) for j in permutation]
        if sorted(permutation) != list(range(len(permutation))):
            raise ConfigurationError(
                "permutation prediction must contain every job index exactly once")
        self.permutation = permutation

    def __len__(self):
        return len(self.permutation)

    def __iter__(self):
        return iter(self.permutation)

    def positions(self):
        """Map job identity -> position in the predicted order."""
        pos = [0] * len(self.permutation)
        for i, jid in enumerate(self.permutation):
            pos[jid] = i
        return pos


class DiscreteJob:
    """Job of the identical-machines family; lengths are in scaled time units."""

    def __init__(self, jid, weight, pred, length):
        self.jid = jid
        self.weight = weight
        self.pred = pred
        self.length = length

    def __eq__(self, other):
        return isinstance(other, DiscreteJob) and self.jid == other.jid

    def __hash__(self):
        return hash(self.jid)

    def __repr__(self):
        return f"DiscreteJob(jid={self.jid}, weight={self.weight}, length={self.length})"
