"""Main PilotAgent class for orchestrating phone automation."""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

from phone_pilot.actions import (
    ActionExecutor,
    ExecutorTimings,
    Finish,
    describe_action,
    parse_action,
    split_response,
    unescape_response,
)
from phone_pilot.cancellation import CancellationToken, TaskCancelled
from phone_pilot.config import build_system_prompt, get_messages, get_system_prompt
from phone_pilot.device.base import (
    AssistantState,
    Capture,
    Device,
    ImageStore,
    Model,
    StatusSink,
    TaskEndState,
)
from phone_pilot.device.overlay import GuardedCapture, GuardedDevice, Overlay, OverlayGuard
from phone_pilot.errors import (
    CaptureError,
    ExecutorUnavailableError,
    FatalTaskError,
    ModelError,
)
from phone_pilot.model import ConversationHistory, MessageBuilder
from phone_pilot.status import StatusDispatcher

logger = logging.getLogger(__name__)


@dataclass
class AgentConfig:
    """Configuration for the PilotAgent."""

    max_steps: int = 20
    step_delay_ms: int = 2000
    capture_timeout_ms: int = 5000
    lang: str = "cn"
    system_prompt: str | None = None
    verbose: bool = True

    def __post_init__(self):
        if self.system_prompt is None:
            self.system_prompt = get_system_prompt(self.lang)


class TaskPhase(str, Enum):
    STARTING = "starting"
    STEPPING = "stepping"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    MAX_STEPS_REACHED = "max_steps_reached"
    FATAL = "fatal"


END_STATES = {
    TaskPhase.FINISHED: TaskEndState.COMPLETED,
    TaskPhase.CANCELLED: TaskEndState.USER_STOPPED,
    TaskPhase.MAX_STEPS_REACHED: TaskEndState.MAX_STEPS_REACHED,
    TaskPhase.FATAL: TaskEndState.ERROR,
}

_FINAL_ASSISTANT_STATES = {
    TaskPhase.FINISHED: AssistantState.SUCCESS,
    TaskPhase.CANCELLED: AssistantState.IDLE,
    TaskPhase.MAX_STEPS_REACHED: AssistantState.ERROR,
    TaskPhase.FATAL: AssistantState.ERROR,
}


@dataclass
class TaskState:
    """Mutable state of one running task, owned by its loop."""

    task: str
    max_steps: int
    token: CancellationToken = field(default_factory=CancellationToken)
    step_index: int = 0
    phase: TaskPhase = TaskPhase.STARTING
    last_error: str | None = None
    is_finished: bool = False
    started_at: float = field(default_factory=time.time)


@dataclass
class TaskResult:
    """Outcome of a task."""

    task: str
    phase: TaskPhase
    message: str
    steps: int
    elapsed_seconds: float

    @property
    def end_state(self) -> TaskEndState | None:
        return END_STATES.get(self.phase)

    @property
    def success(self) -> bool:
        return self.phase is TaskPhase.FINISHED


class PilotAgent:
    """
    AI-powered agent driving a phone one step at a time.

    Each step captures the screen, asks the model for one action, executes it
    and feeds the outcome back into the conversation, until the model
    finishes, the step budget runs out, a fatal error occurs or the task is
    stopped.

    Args:
        device: Device to operate.
        capture: Screenshot source.
        model: Vision-language model.
        status: Optional sink for status updates; updates are delivered on a
            separate thread.
        image_store: Optional store for step screenshots.
        config: Loop configuration.
        executor: Action executor; defaults to one bound to ``device``.
        overlay: Optional host overlay hidden around captures and gestures.
        timings: Executor timings used when ``executor`` is not given.

    Example:
        >>> from phone_pilot import PilotAgent
        >>> from phone_pilot.device import AdbDevice
        >>> from phone_pilot.model import ModelClient, ModelConfig
        >>>
        >>> device = AdbDevice()
        >>> agent = PilotAgent(device, device, ModelClient(ModelConfig()))
        >>> agent.run("Open Settings and turn on Wi-Fi")
    """

    def __init__(
        self,
        device: Device,
        capture: Capture,
        model: Model,
        status: StatusSink | None = None,
        image_store: ImageStore | None = None,
        config: AgentConfig | None = None,
        executor: ActionExecutor | None = None,
        overlay: Overlay | None = None,
        timings: ExecutorTimings | None = None,
    ):
        self.config = config or AgentConfig()

        if overlay is not None:
            guard = OverlayGuard(overlay)
            device = GuardedDevice(device, guard)
            capture = GuardedCapture(capture, guard)

        self.device = device
        self.capture = capture
        self.model = model
        self.image_store = image_store
        self.executor = executor if executor is not None else ActionExecutor(device, timings)
        self.status = StatusDispatcher(status) if status is not None else None
        self.history = ConversationHistory()

        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._state: TaskState | None = None
        self._thread: threading.Thread | None = None
        self._last_result: TaskResult | None = None

    def run(self, task: str) -> TaskResult:
        """
        Run a task to completion on the calling thread.

        Any task still running is stopped first.

        Args:
            task: Natural language description of the task.

        Returns:
            TaskResult describing how the task ended.
        """
        self._stop_running()
        return self._run(self._new_state(task))

    def start(self, task: str) -> None:
        """Stop any running task and run ``task`` on a background thread."""
        self._stop_running()
        state = self._new_state(task)
        thread = threading.Thread(target=self._run, args=(state,), name="pilot-agent", daemon=True)
        with self._lock:
            self._thread = thread
        thread.start()

    def stop(self) -> None:
        """Cancel the running task, if any."""
        with self._lock:
            state = self._state
        if state is not None:
            state.token.cancel()

    def wait(self, timeout: float | None = None) -> TaskResult | None:
        """Wait for the background task started with :meth:`start`."""
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return None
        return self._last_result

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state is not None and self._state.phase in (
                TaskPhase.STARTING,
                TaskPhase.STEPPING,
            )

    @property
    def state(self) -> TaskState | None:
        return self._state

    def _stop_running(self) -> None:
        # only one loop may touch the history at a time
        self.stop()
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _new_state(self, task: str) -> TaskState:
        state = TaskState(task=task, max_steps=self.config.max_steps)
        with self._lock:
            self._state = state
        return state

    def _run(self, state: TaskState) -> TaskResult:
        # a run() on the caller thread can race a start(); one loop at a time
        with self._run_lock:
            return self._run_loop(state)

    def _run_loop(self, state: TaskState) -> TaskResult:
        msgs = get_messages(self.config.lang)
        message = ""
        self.history.reset(build_system_prompt(self.config.system_prompt, self.config.lang))
        self._post_running(True, AssistantState.PROCESSING)

        try:
            host_foreground = self.device.is_host_foreground()
            if host_foreground:
                # the first screenshot would only show the host app
                self.device.global_home()

            state.phase = TaskPhase.STEPPING
            while state.step_index < state.max_steps:
                state.token.raise_if_cancelled()
                message = self._execute_step(state, host_foreground)
                if state.is_finished:
                    break

            if not state.is_finished:
                state.token.raise_if_cancelled()
                state.phase = TaskPhase.MAX_STEPS_REACHED
                message = msgs["error_max_steps"]
                self._post(message, AssistantState.ERROR)

        except TaskCancelled:
            logger.info("Task stopped after %d steps", state.step_index)
            state.phase = TaskPhase.CANCELLED
            message = msgs["task_stopped"]
        except FatalTaskError as e:
            logger.error("Task failed at step %d: %s", state.step_index, e)
            state.phase = TaskPhase.FATAL
            state.last_error = message = str(e)
            self._post(msgs["error"].format(message), AssistantState.ERROR)
        except Exception as e:
            logger.exception("Unexpected error at step %d", state.step_index)
            state.phase = TaskPhase.FATAL
            state.last_error = message = msgs["error_runtime"].format(e)
            self._post(msgs["error"].format(message), AssistantState.ERROR)
        finally:
            self._post_running(False, _FINAL_ASSISTANT_STATES.get(state.phase, AssistantState.IDLE))
            if self.status is not None:
                self.status.flush(timeout=1.0)

        result = TaskResult(
            task=state.task,
            phase=state.phase,
            message=message,
            steps=state.step_index,
            elapsed_seconds=time.time() - state.started_at,
        )
        self._last_result = result
        return result

    def _execute_step(self, state: TaskState, host_foreground: bool) -> str:
        """Execute a single step of the agent loop; returns the step's status text."""
        state.step_index += 1
        step = state.step_index
        token = state.token
        lang = self.config.lang
        msgs = get_messages(lang)

        self._post(msgs["thinking"], AssistantState.PROCESSING)

        # Capture current screen state
        image = None
        if not (step == 1 and host_foreground):
            image = self._capture(token)
            if image is None:
                raise CaptureError(msgs["error_screenshot_failed"])

        # Build the user message
        screen_info = MessageBuilder.build_screen_info(self.device.current_app())
        if step == 1:
            text_content = f"{state.task}\n\n{screen_info}"
        else:
            text_content = f"** Screen Info **\n\n{screen_info}"
        self.history.add_user(text_content, image)

        # Get model response
        response = token.call(self.model.infer, self.history.messages(), image)
        response = unescape_response(response or "")
        if response.startswith("Error"):
            raise ModelError(response)

        reasoning, action_string = split_response(response)
        self.history.add_assistant(reasoning + action_string)

        if image is not None and self.image_store is not None:
            self._save_image(image)

        action = parse_action(action_string, self.device.screen_width(), self.device.screen_height())
        description = describe_action(action, lang)
        self._post(description, AssistantState.PROCESSING)

        if self.config.verbose:
            print("\n" + "=" * 50)
            print(f"💭 {msgs['thinking']} ({step}/{state.max_steps}):")
            print("-" * 50)
            print(reasoning)
            print("-" * 50)
            print(f"🎯 {msgs['action']}: {description}")
            print(action_string)
            print("=" * 50 + "\n")

        # Execute action
        if self.executor is None:
            raise ExecutorUnavailableError(msgs["error_executor_null"])
        token.raise_if_cancelled()
        success = self.executor.execute(action, token)

        if isinstance(action, Finish):
            state.is_finished = True
            state.phase = TaskPhase.FINISHED
            self._post(description, AssistantState.SUCCESS)
            if self.config.verbose:
                print("\n" + "🎉 " + "=" * 48)
                print(f"✅ {msgs['task_completed']}: {action.message or msgs['done']}")
                print("=" * 50 + "\n")
            return action.message

        if not success:
            logger.info("Step %d: action failed: %s", step, description)
            self.history.add_user(msgs["error_last_action_failed"])

        # Remove answered screenshots from context to save space
        self.history.trim_images()

        token.sleep(self.config.step_delay_ms / 1000)
        return description

    def _capture(self, token: CancellationToken):
        timeout = self.config.capture_timeout_ms / 1000
        try:
            if isinstance(self.capture, GuardedCapture):
                # the overlay must come back even if the capture is abandoned
                return self.capture.capture_within(token, timeout)
            return token.call(self.capture.capture, timeout, timeout=timeout)
        except TimeoutError:
            logger.warning("Screenshot timed out after %.1fs", timeout)
            return None

    def _save_image(self, image) -> None:
        try:
            path = self.image_store.save(image)
        except Exception:
            logger.exception("Could not save screenshot")
            return
        logger.debug("Saved screenshot to %s", path)

    def _post(self, text: str, state: AssistantState) -> None:
        if self.status is not None:
            self.status.post(text, state)

    def _post_running(self, running: bool, state: AssistantState) -> None:
        if self.status is not None:
            self.status.post_running(running, state)
