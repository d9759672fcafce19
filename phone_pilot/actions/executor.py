"""行动执行器 - turn typed actions into device operations."""

import logging
from dataclasses import dataclass

from phone_pilot.actions.types import (
    Action,
    Back,
    DoubleTap,
    Error,
    Finish,
    Home,
    Launch,
    LongPress,
    Swipe,
    Tap,
    TypeText,
    Unknown,
    Wait,
)
from phone_pilot.cancellation import CancellationToken, TaskCancelled
from phone_pilot.device.base import Device

logger = logging.getLogger(__name__)


@dataclass
class ExecutorTimings:
    """Delays around device operations, in milliseconds."""

    settle_ms: int = 1000  # after a gesture, before the next capture
    double_tap_interval_ms: int = 150
    launch_settle_ms: int = 2000  # target app coming to the foreground
    swipe_duration_ms: int = 500
    long_press_duration_ms: int = 1000


class ActionExecutor:
    """
    Executes one action against a device.

    The executor owns ordering and timing; the device owns the mechanism.
    Failure is reported as ``False``. Cancellation is not a failure: it
    raises :class:`TaskCancelled` out of whichever wait observed it.

    Args:
        device: Device to operate.
        timings: Settle and gesture timings.
    """

    def __init__(self, device: Device, timings: ExecutorTimings | None = None):
        self.device = device
        self.timings = timings or ExecutorTimings()

    def execute(self, action: Action, token: CancellationToken) -> bool:
        """
        Execute an action.

        Args:
            action: Action to execute.
            token: Cancellation token of the running task.

        Returns:
            Whether the action succeeded.

        Raises:
            TaskCancelled: If the task is stopped during the action.
        """
        token.raise_if_cancelled()

        if isinstance(action, Tap):
            logger.debug("Tapping %s, %s", action.x, action.y)
            if not self._in_bounds(action.x, action.y):
                return False
            success = self._call(self.device.tap, action.x, action.y)
            self._settle(token)
            return success

        elif isinstance(action, DoubleTap):
            logger.debug("Double tapping %s, %s", action.x, action.y)
            if not self._in_bounds(action.x, action.y):
                return False
            first = self._call(self.device.tap, action.x, action.y)
            token.sleep(self.timings.double_tap_interval_ms / 1000)
            second = self._call(self.device.tap, action.x, action.y)
            self._settle(token)
            return first and second

        elif isinstance(action, LongPress):
            logger.debug("Long pressing %s, %s", action.x, action.y)
            if not self._in_bounds(action.x, action.y):
                return False
            success = self._call(
                self.device.long_press, action.x, action.y, self.timings.long_press_duration_ms
            )
            self._settle(token)
            return success

        elif isinstance(action, Swipe):
            logger.debug(
                "Swiping %s,%s -> %s,%s",
                action.start_x, action.start_y, action.end_x, action.end_y,
            )
            success = self._call(
                self.device.swipe,
                action.start_x,
                action.start_y,
                action.end_x,
                action.end_y,
                self.timings.swipe_duration_ms,
            )
            self._settle(token)
            return success

        elif isinstance(action, TypeText):
            logger.debug("Typing %r", action.text)
            success = self._call(self.device.type_text, action.text)
            self._settle(token)
            return success

        elif isinstance(action, Launch):
            logger.debug("Launching %s", action.app)
            if not self._call(self.device.resolve_and_launch, action.app):
                logger.error("Could not launch %s", action.app)
                return False
            token.sleep(self.timings.launch_settle_ms / 1000)
            return True

        elif isinstance(action, Back):
            success = self._call(self.device.global_back)
            self._settle(token)
            return success

        elif isinstance(action, Home):
            success = self._call(self.device.global_home)
            self._settle(token)
            return success

        elif isinstance(action, Wait):
            token.sleep(action.duration_ms / 1000)
            return True

        elif isinstance(action, Finish):
            logger.info("Task finished: %s", action.message)
            return True

        elif isinstance(action, Error):
            logger.error("Action error: %s", action.reason)
            return False

        elif isinstance(action, Unknown):
            return False

        raise TypeError(f"not an action: {action!r}")

    def _in_bounds(self, x: int, y: int) -> bool:
        width, height = self.device.screen_width(), self.device.screen_height()
        if 0 <= x <= width and 0 <= y <= height:
            return True
        logger.warning("Coordinates (%s, %s) out of bounds %sx%s", x, y, width, height)
        return False

    def _call(self, operation, *args) -> bool:
        try:
            return bool(operation(*args))
        except TaskCancelled:
            raise
        except Exception:
            logger.exception("Device operation %s failed", getattr(operation, "__name__", operation))
            return False

    def _settle(self, token: CancellationToken) -> None:
        token.sleep(self.timings.settle_ms / 1000)
