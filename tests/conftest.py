"""测试用的设备、模型和状态替身"""

import threading

import pytest
from PIL import Image

from phone_pilot.actions.executor import ExecutorTimings
from phone_pilot.agent import AgentConfig
from phone_pilot.device.base import Capture, Device, ImageStore, Model, StatusSink
from phone_pilot.device.overlay import Overlay


class FakeDevice(Device):
    """Records every call; results can be switched per operation."""

    def __init__(self, width=1080, height=2400):
        self.width = width
        self.height = height
        self.calls = []
        self.results = {}
        self.errors = {}
        self.host_foreground = False
        self.app = "com.android.launcher"

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]
        return self.results.get(name, True)

    def tap(self, x, y):
        return self._record("tap", x, y)

    def swipe(self, x1, y1, x2, y2, duration_ms=500):
        return self._record("swipe", x1, y1, x2, y2, duration_ms)

    def global_back(self):
        return self._record("back")

    def global_home(self):
        return self._record("home")

    def resolve_and_launch(self, app):
        return self._record("launch", app)

    def type_text(self, text):
        return self._record("type", text)

    def screen_width(self):
        return self.width

    def screen_height(self):
        return self.height

    def current_app(self):
        return self.app

    def is_host_foreground(self):
        return self.host_foreground

    def names(self):
        return [call[0] for call in self.calls]


class FakeCapture(Capture):
    def __init__(self, fail=False):
        self.fail = fail
        self.count = 0

    def capture(self, timeout):
        self.count += 1
        if self.fail:
            return None
        return Image.new("RGB", (108, 240), (255, 255, 255))


class HangingCapture(Capture):
    """Blocks until released, like a screencap that never answers."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def capture(self, timeout):
        self.started.set()
        self.release.wait(10)
        return None


class ScriptedModel(Model):
    """
    Returns the scripted responses in order, repeating the last one.

    ``on_infer`` is called with the 1-based call number before answering.
    """

    def __init__(self, responses, on_infer=None):
        self.responses = list(responses)
        self.on_infer = on_infer
        self.histories = []
        self.images = []

    def infer(self, history, image):
        self.histories.append(history)
        self.images.append(image)
        if self.on_infer is not None:
            self.on_infer(len(self.histories))
        index = min(len(self.histories), len(self.responses)) - 1
        return self.responses[index]


class RecordingStatus(StatusSink):
    def __init__(self):
        self.updates = []
        self.running = []
        self.lock = threading.Lock()

    def update_status(self, text, state):
        with self.lock:
            self.updates.append((text, state))

    def set_task_running(self, running, state=None):
        with self.lock:
            self.running.append((running, state))

    def states(self):
        return [state for _, state in self.updates]


class MemoryImageStore(ImageStore):
    def __init__(self):
        self.images = []

    def save(self, image):
        self.images.append(image)
        return f"memory://{len(self.images)}.png"


class FakeOverlay(Overlay):
    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.visible = True

    def hide(self):
        self.visible = False
        self.events.append("hide")

    def wait_hidden(self, timeout):
        return not self.visible

    def show(self):
        self.visible = True
        self.events.append("show")


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def status():
    return RecordingStatus()


@pytest.fixture
def fast_timings():
    return ExecutorTimings(
        settle_ms=0,
        double_tap_interval_ms=0,
        launch_settle_ms=0,
        swipe_duration_ms=500,
        long_press_duration_ms=1000,
    )


@pytest.fixture
def fast_config():
    return AgentConfig(max_steps=5, step_delay_ms=0, lang="en", verbose=False)
