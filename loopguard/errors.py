"""
Error taxonomy

- ConfigurationError: missing or invalid construction-time settings (fail fast)
- JuryEvaluationError: the evaluation backend raised while producing a verdict

Evaluation unavailability (no verdict) is not an error and turn-level faults
are reported through AgentCallback.on_error, so neither has a type here.
"""


class HarnessError(Exception):
    """Base class for all loopguard errors."""


class ConfigurationError(HarnessError, ValueError):
    """A required collaborator or setting is missing or invalid."""


class JuryEvaluationError(HarnessError):
    """The jury failed while evaluating the current loop state."""

    def __init__(self, message: str, jury_name: str = "jury"):
        super().__init__(message)
        self.jury_name = jury_name
