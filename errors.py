"""
Exceptions raised by the scheduling engine.

Two families:
- ConfigurationError: malformed input rejected before a run starts
- SimulationError: an algorithm broke a numeric invariant of the substrate;
  the run is aborted and no objective is reported
"""


class ConfigurationError(ValueError):
    """Instance, prediction or parameters are not usable for a run."""


class SimulationError(RuntimeError):
    """Engine defect detected while a simulation was running."""
