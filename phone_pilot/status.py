"""Status delivery from the task loop to the user-facing side."""

import logging
import queue
import threading
from typing import Optional

from phone_pilot.device.base import AssistantState, StatusSink

logger = logging.getLogger(__name__)

_STOP = object()


class StatusDispatcher:
    """
    Forwards status updates to a sink on a dedicated worker thread.

    The task loop only posts and never waits for the sink, so a slow or
    failing UI cannot stall a step. Updates are delivered in posting order.
    """

    def __init__(self, sink: StatusSink):
        self.sink = sink
        self._queue: queue.Queue = queue.Queue()
        self._worker = threading.Thread(target=self._run, name="status-dispatcher", daemon=True)
        self._worker.start()

    def post(self, text: str, state: AssistantState = AssistantState.PROCESSING) -> None:
        self._queue.put(("update_status", (text, state)))

    def post_running(self, running: bool, state: AssistantState = AssistantState.IDLE) -> None:
        self._queue.put(("set_task_running", (running, state)))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until everything posted so far was delivered."""
        delivered = threading.Event()
        self._queue.put(delivered)
        return delivered.wait(timeout)

    def close(self) -> None:
        self._queue.put(_STOP)
        self._worker.join(timeout=1)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            method, args = item
            try:
                getattr(self.sink, method)(*args)
            except Exception:
                logger.exception("Status sink %s failed", method)


class ConsoleStatus(StatusSink):
    """Prints status updates to stdout."""

    ICONS = {
        AssistantState.IDLE: "  ",
        AssistantState.PROCESSING: "⏳",
        AssistantState.SUCCESS: "✅",
        AssistantState.ERROR: "❌",
    }

    def update_status(self, text: str, state: AssistantState) -> None:
        print(f"{self.ICONS.get(state, '  ')} {text}", flush=True)

    def set_task_running(self, running: bool, state: AssistantState = AssistantState.IDLE) -> None:
        logger.debug("Task running=%s state=%s", running, state.value)
