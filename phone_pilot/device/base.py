"""Contracts for the collaborators the task loop drives."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from PIL import Image


class AssistantState(str, Enum):
    """Semantic state shown next to a status text."""
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class TaskEndState(str, Enum):
    """How a task ended, as recorded for the user."""
    COMPLETED = "completed"
    USER_STOPPED = "user_stopped"
    MAX_STEPS_REACHED = "max_steps_reached"
    ERROR = "error"


class Capture(ABC):
    """Screen capture source."""

    @abstractmethod
    def capture(self, timeout: float) -> Image.Image | None:
        """
        Take a screenshot.

        Args:
            timeout: Upper bound in seconds; must not block longer.

        Returns:
            The screenshot, or None on failure or timeout.
        """


class Device(ABC):
    """
    Gesture and navigation primitives of the controlled device.

    Every method reports success as a bool; coordinates are absolute pixels.
    """

    @abstractmethod
    def tap(self, x: int, y: int) -> bool:
        ...

    @abstractmethod
    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 500) -> bool:
        ...

    def long_press(self, x: int, y: int, duration_ms: int = 1000) -> bool:
        # a long press is a swipe that does not move
        return self.swipe(x, y, x, y, duration_ms)

    @abstractmethod
    def global_back(self) -> bool:
        ...

    @abstractmethod
    def global_home(self) -> bool:
        ...

    @abstractmethod
    def resolve_and_launch(self, app: str) -> bool:
        """Launch an app by name or package; False if it cannot be resolved."""

    @abstractmethod
    def type_text(self, text: str) -> bool:
        """Deliver text into the focused input field."""

    @abstractmethod
    def screen_width(self) -> int:
        ...

    @abstractmethod
    def screen_height(self) -> int:
        ...

    def current_app(self) -> str:
        return "Unknown"

    def is_host_foreground(self) -> bool:
        """Whether the app controlling the agent is the foreground app."""
        return False


class Model(ABC):
    """Vision-language model answering one step at a time."""

    @abstractmethod
    def infer(self, history: list[dict[str, Any]], image: Image.Image | None) -> str:
        """
        Ask the model for the next action.

        Args:
            history: Conversation so far, ending with the current user turn.
            image: Current screenshot, also embedded in the last user turn.

        Returns:
            Response text. Failures are reported as text starting with "Error".
        """


class ImageStore(ABC):
    """Persistence for step screenshots."""

    @abstractmethod
    def save(self, image: Image.Image) -> str | None:
        """Save an image; returns its path or None on failure."""


class StatusSink(ABC):
    """Receiver of fire-and-forget status updates (UI, console, ...)."""

    @abstractmethod
    def update_status(self, text: str, state: AssistantState) -> None:
        ...

    @abstractmethod
    def set_task_running(self, running: bool, state: AssistantState = AssistantState.IDLE) -> None:
        ...
