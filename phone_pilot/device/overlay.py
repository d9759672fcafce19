"""
Scoped suspension of an on-screen overlay.

Floating windows drawn by the host app must be out of the way while the
screen is captured or a gesture is injected, otherwise they end up in the
screenshot or swallow the touch. :class:`OverlayGuard` hides the overlay for
the duration of a ``with`` block and always shows it again afterwards.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

from PIL import Image

from phone_pilot.cancellation import CancellationToken
from phone_pilot.device.base import Capture, Device

logger = logging.getLogger(__name__)


class Overlay(ABC):
    """A host window that can be hidden and restored."""

    @abstractmethod
    def hide(self) -> None:
        ...

    @abstractmethod
    def wait_hidden(self, timeout: float) -> bool:
        """Block until the hide took effect; False if it did not in time."""

    @abstractmethod
    def show(self) -> None:
        ...


class OverlayGuard:
    """
    Mutual exclusion between the overlay and screen-needing operations.

    Only one operation holds the suspension at a time. Nested use from the
    same thread (a double tap made of two taps) keeps the overlay hidden
    until the outermost block exits.
    """

    def __init__(self, overlay: Overlay, hide_timeout: float = 0.5):
        self.overlay = overlay
        self.hide_timeout = hide_timeout
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def suspended(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                if outermost:
                    self.overlay.hide()
                    if not self.overlay.wait_hidden(self.hide_timeout):
                        logger.warning("Overlay still visible after %.2fs", self.hide_timeout)
                yield
            finally:
                self._depth -= 1
                if outermost:
                    self.overlay.show()


class GuardedDevice(Device):
    """Device wrapper running gestures inside an overlay suspension."""

    def __init__(self, device: Device, guard: OverlayGuard):
        self.device = device
        self.guard = guard

    def tap(self, x: int, y: int) -> bool:
        with self.guard.suspended():
            return self.device.tap(x, y)

    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 500) -> bool:
        with self.guard.suspended():
            return self.device.swipe(x1, y1, x2, y2, duration_ms)

    def long_press(self, x: int, y: int, duration_ms: int = 1000) -> bool:
        with self.guard.suspended():
            return self.device.long_press(x, y, duration_ms)

    def global_back(self) -> bool:
        return self.device.global_back()

    def global_home(self) -> bool:
        return self.device.global_home()

    def resolve_and_launch(self, app: str) -> bool:
        return self.device.resolve_and_launch(app)

    def type_text(self, text: str) -> bool:
        return self.device.type_text(text)

    def screen_width(self) -> int:
        return self.device.screen_width()

    def screen_height(self) -> int:
        return self.device.screen_height()

    def current_app(self) -> str:
        return self.device.current_app()

    def is_host_foreground(self) -> bool:
        return self.device.is_host_foreground()


class GuardedCapture(Capture):
    """Capture wrapper taking screenshots with the overlay hidden."""

    def __init__(self, capture: Capture, guard: OverlayGuard):
        self.capture_source = capture
        self.guard = guard

    def capture(self, timeout: float) -> Image.Image | None:
        with self.guard.suspended():
            return self.capture_source.capture(timeout)

    def capture_within(self, token: CancellationToken, timeout: float) -> Image.Image | None:
        """
        Capture on a helper thread while the suspension stays on this thread.

        A capture abandoned on timeout or cancellation keeps running in the
        background, but the overlay is shown again and the guard released
        before this returns.
        """
        with self.guard.suspended():
            return token.call(self.capture_source.capture, timeout, timeout=timeout)
