"""Cooperative cancellation shared by every suspension point of a task loop."""

import threading
import time
from typing import Any, Callable


class TaskCancelled(Exception):
    """Raised at a suspension point once the owning task was stopped."""


class CancellationToken:
    """
    Cancellation flag threaded through capture, model, executor and delay calls.

    Every wait goes through :meth:`sleep` or :meth:`call`, so a cancelled task
    stops within one poll tick instead of finishing its current delay.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        phone_pilot.cancellation.TaskCancelled: task cancelled
    """

    def __init__(self, poll_interval: float = 0.05):
        self.poll_interval = poll_interval
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TaskCancelled("task cancelled")

    def sleep(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless the token is cancelled first.

        Raises:
            TaskCancelled: If the token is (or becomes) cancelled.
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        if self._event.wait(seconds):
            raise TaskCancelled("task cancelled")

    def call(
        self,
        func: Callable[..., Any],
        *args: Any,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Run a blocking collaborator call while observing cancellation.

        The call runs on a daemon helper thread; the caller polls the token
        until the call returns, the token is cancelled, or ``timeout`` expires.
        An abandoned call keeps running in the background and its result is
        discarded.

        Args:
            func: Callable to run.
            timeout: Optional upper bound in seconds.

        Returns:
            Whatever ``func`` returns.

        Raises:
            TaskCancelled: If the token is cancelled before the call returns.
            TimeoutError: If ``timeout`` expires first.
            Exception: Anything raised by ``func`` itself.
        """
        self.raise_if_cancelled()

        done = threading.Event()
        outcome: dict[str, Any] = {}

        def _target():
            try:
                outcome["result"] = func(*args, **kwargs)
            except BaseException as e:  # re-raised on the calling thread
                outcome["error"] = e
            finally:
                done.set()

        worker = threading.Thread(target=_target, daemon=True)
        worker.start()

        deadline = None if timeout is None else time.monotonic() + timeout
        while not done.wait(self.poll_interval):
            if self._event.is_set():
                raise TaskCancelled("task cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"call did not return within {timeout:.1f}s")
        self.raise_if_cancelled()

        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("result")
