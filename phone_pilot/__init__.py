"""
Phone Pilot - vision-language model driven phone automation.

The agent loop captures the screen, asks the model for the next action,
parses its answer, executes it on the device and repeats until the task
is finished.
"""

from phone_pilot.agent import AgentConfig, PilotAgent, TaskPhase, TaskResult, TaskState
from phone_pilot.cancellation import CancellationToken, TaskCancelled

__version__ = "0.1.0"
__all__ = [
    "PilotAgent",
    "AgentConfig",
    "TaskPhase",
    "TaskResult",
    "TaskState",
    "CancellationToken",
    "TaskCancelled",
]
