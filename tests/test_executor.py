"""测试动作执行器"""

import threading
import time

import pytest

from phone_pilot.actions import (
    ActionExecutor,
    Back,
    DoubleTap,
    Error,
    ExecutorTimings,
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


@pytest.fixture
def executor(device, fast_timings):
    return ActionExecutor(device, fast_timings)


def test_tap(executor, device):
    assert executor.execute(Tap(540, 1800), CancellationToken())
    assert device.calls == [("tap", 540, 1800)]


def test_tap_out_of_bounds_makes_no_call(executor, device):
    token = CancellationToken()
    assert not executor.execute(Tap(-1, 10), token)
    assert not executor.execute(DoubleTap(10, 2401), token)
    assert not executor.execute(LongPress(1081, 10), token)
    assert device.calls == []


def test_tap_on_screen_edge_is_allowed(executor, device):
    assert executor.execute(Tap(1080, 2400), CancellationToken())


def test_double_tap(executor, device):
    assert executor.execute(DoubleTap(10, 20), CancellationToken())
    assert device.calls == [("tap", 10, 20), ("tap", 10, 20)]


def test_double_tap_fails_if_a_tap_fails(executor, device):
    device.results["tap"] = False
    assert not executor.execute(DoubleTap(10, 20), CancellationToken())
    assert len(device.calls) == 2


def test_long_press_defaults_to_swipe_in_place(executor, device):
    assert executor.execute(LongPress(100, 200), CancellationToken())
    assert device.calls == [("swipe", 100, 200, 100, 200, 1000)]


def test_swipe(executor, device):
    assert executor.execute(Swipe(1, 2, 3, 4), CancellationToken())
    assert device.calls == [("swipe", 1, 2, 3, 4, 500)]


def test_type_and_navigation(executor, device):
    token = CancellationToken()
    assert executor.execute(TypeText("hello"), token)
    assert executor.execute(Back(), token)
    assert executor.execute(Home(), token)
    assert device.calls == [("type", "hello"), ("back",), ("home",)]


def test_launch(device):
    executor = ActionExecutor(device, ExecutorTimings(settle_ms=0, launch_settle_ms=0))
    assert executor.execute(Launch("Settings"), CancellationToken())
    assert device.calls == [("launch", "Settings")]


def test_unresolvable_launch_skips_settle(device):
    device.results["launch"] = False
    executor = ActionExecutor(device, ExecutorTimings(launch_settle_ms=5000))
    start = time.monotonic()
    assert not executor.execute(Launch("Nowhere"), CancellationToken())
    assert time.monotonic() - start < 1


def test_settle_delay_after_gesture(device):
    executor = ActionExecutor(device, ExecutorTimings(settle_ms=100))
    start = time.monotonic()
    executor.execute(Back(), CancellationToken())
    assert time.monotonic() - start >= 0.09


def test_wait_sleeps_without_device_calls(executor, device):
    start = time.monotonic()
    assert executor.execute(Wait(100), CancellationToken())
    assert time.monotonic() - start >= 0.09
    assert device.calls == []


def test_wait_is_cancellable(executor):
    token = CancellationToken()
    threading.Timer(0.05, token.cancel).start()
    start = time.monotonic()
    with pytest.raises(TaskCancelled):
        executor.execute(Wait(10000), token)
    assert time.monotonic() - start < 2


def test_settle_delay_is_cancellable(device):
    executor = ActionExecutor(device, ExecutorTimings(settle_ms=10000))
    token = CancellationToken()
    threading.Timer(0.05, token.cancel).start()
    start = time.monotonic()
    with pytest.raises(TaskCancelled):
        executor.execute(Back(), token)
    assert time.monotonic() - start < 2
    assert device.calls == [("back",)]


def test_cancelled_token_stops_before_any_call(executor, device):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(TaskCancelled):
        executor.execute(Tap(1, 1), token)
    assert device.calls == []


def test_terminal_and_invalid_actions(executor, device):
    token = CancellationToken()
    assert executor.execute(Finish("done"), token)
    assert not executor.execute(Error("Missing element for Tap"), token)
    assert not executor.execute(Unknown(), token)
    assert device.calls == []


def test_device_exception_is_a_failure(executor, device):
    device.errors["tap"] = RuntimeError("input service died")
    assert not executor.execute(Tap(1, 1), CancellationToken())


def test_not_an_action(executor):
    with pytest.raises(TypeError):
        executor.execute("tap", CancellationToken())
