"""Exception hierarchy for the hybrid assistant."""


class NexusError(Exception):
    """Base class for all assistant errors."""


class ToolError(NexusError):
    """An external tool call failed.

    The orchestrator absorbs this error into a synthetic tool-response turn,
    so ``reason`` must be readable by both the user and the model.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SessionError(NexusError):
    """The model session could not produce a reply."""


class StaleSessionError(SessionError):
    """A reply arrived for a session handle that has since been reset."""


class InvariantViolation(NexusError):
    """A caller broke one of the conversation invariants."""


class SubmissionRejectedError(InvariantViolation):
    """A submission was refused before entering the turn flow."""


class LogOrderError(InvariantViolation):
    """A turn would break the append-only ordering of the conversation log."""
