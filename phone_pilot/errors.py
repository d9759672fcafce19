"""Error taxonomy for the task loop.

Parse errors are not exceptions: they travel as ``Error`` actions and fail at
execution time. Execution failures are ``False`` results. Only the fatal kinds
below end a task early.
"""


class PilotError(Exception):
    """Base class for phone_pilot errors."""


class FatalTaskError(PilotError):
    """An error that ends the current task immediately."""


class CaptureError(FatalTaskError):
    """A required screen capture failed or timed out."""


class ModelError(FatalTaskError):
    """The model returned an error sentinel instead of an answer."""


class ExecutorUnavailableError(FatalTaskError):
    """No action executor is wired to the agent."""
