"""测试任务循环"""

import threading

import pytest

from phone_pilot.agent import AgentConfig, PilotAgent, TaskPhase
from phone_pilot.config import get_message
from phone_pilot.device.base import AssistantState, TaskEndState

from conftest import FakeCapture, FakeOverlay, HangingCapture, MemoryImageStore, ScriptedModel

FINISH = 'All set. finish(message="Done")'
BACK = 'Go back. do(action="Back")'


def _texts(message):
    content = message["content"]
    if isinstance(content, str):
        return [content]
    return [part["text"] for part in content if part["type"] == "text"]


def _images(history):
    return sum(
        1
        for m in history
        if isinstance(m["content"], list) and any(p["type"] == "image_url" for p in m["content"])
    )


@pytest.fixture
def make_agent(device, capture, status, fast_config, fast_timings):
    def factory(model, **kwargs):
        kwargs.setdefault("status", status)
        kwargs.setdefault("config", fast_config)
        kwargs.setdefault("timings", fast_timings)
        return PilotAgent(device, kwargs.pop("capture", capture), model, **kwargs)

    return factory


def test_finish_on_first_step(make_agent, status):
    model = ScriptedModel([FINISH])
    agent = make_agent(model)
    result = agent.run("Open settings")

    assert result.phase is TaskPhase.FINISHED
    assert result.end_state is TaskEndState.COMPLETED
    assert result.success
    assert result.steps == 1
    assert result.message == "Done"
    assert len(model.histories) == 1
    assert AssistantState.SUCCESS in status.states()
    assert status.running[0] == (True, AssistantState.PROCESSING)
    assert status.running[-1] == (False, AssistantState.SUCCESS)


def test_max_steps_reached_exactly(make_agent, device, status):
    model = ScriptedModel([BACK])
    agent = make_agent(model, config=AgentConfig(max_steps=3, step_delay_ms=0, lang="en", verbose=False))
    result = agent.run("Never ends")

    assert result.phase is TaskPhase.MAX_STEPS_REACHED
    assert result.end_state is TaskEndState.MAX_STEPS_REACHED
    assert result.steps == 3
    assert len(model.histories) == 3
    assert device.names().count("back") == 3
    assert result.message == get_message("error_max_steps", "en")
    assert (get_message("error_max_steps", "en"), AssistantState.ERROR) in status.updates


def test_first_and_later_user_messages(make_agent, device):
    model = ScriptedModel([BACK, FINISH])
    agent = make_agent(model)
    agent.run("Open settings")

    first, second = model.histories
    assert first[0]["role"] == "system"
    assert first[0]["content"].startswith(get_message("prompt_date_prefix", "en"))
    assert _texts(first[-1]) == ['Open settings\n\n{"current_app": "com.android.launcher"}']
    assert _texts(second[-1]) == ['** Screen Info **\n\n{"current_app": "com.android.launcher"}']


def test_assistant_turn_is_reasoning_plus_action(make_agent):
    model = ScriptedModel([BACK, FINISH])
    agent = make_agent(model)
    agent.run("task")

    assistant = [m for m in agent.history.messages() if m["role"] == "assistant"]
    assert assistant[0]["content"] == 'Go back.do(action="Back")'
    assert assistant[1]["content"] == 'All set.finish(message="Done")'


def test_response_is_unescaped_before_parsing(make_agent, device):
    model = ScriptedModel(['Type it.\\n do(action=\\"Type\\", text=\\"hi\\")', FINISH])
    agent = make_agent(model)
    result = agent.run("task")

    assert result.phase is TaskPhase.FINISHED
    assert ("type", "hi") in device.calls


def test_failed_action_feeds_back_exactly_once(make_agent, device):
    device.results["launch"] = False
    model = ScriptedModel(['Open it. do(action="Launch", app="Nowhere")', FINISH])
    agent = make_agent(model)
    result = agent.run("task")

    assert result.phase is TaskPhase.FINISHED
    failure = get_message("error_last_action_failed", "en")
    second = model.histories[1]
    assert _texts(second[-2]) == [failure]
    feedback = [m for m in agent.history.messages() if m["role"] == "user" and _texts(m) == [failure]]
    assert len(feedback) == 1


def test_parse_error_is_not_fatal(make_agent):
    model = ScriptedModel(["I am not sure what to do.", FINISH])
    agent = make_agent(model)
    result = agent.run("task")

    assert result.phase is TaskPhase.FINISHED
    assert result.steps == 2
    failure = get_message("error_last_action_failed", "en")
    assert _texts(model.histories[1][-2]) == [failure]


def test_out_of_bounds_tap_is_a_failed_step(make_agent, device):
    model = ScriptedModel(['Tap. do(action="Tap", element=[-10, 500])', FINISH])
    agent = make_agent(model)
    result = agent.run("task")

    assert result.phase is TaskPhase.FINISHED
    assert "tap" not in device.names()


def test_images_trimmed_after_each_step(make_agent):
    model = ScriptedModel([BACK, BACK, FINISH])
    agent = make_agent(model)
    agent.run("task")

    # each request carries only the current screenshot
    assert [_images(h) for h in model.histories] == [1, 1, 1]
    assert model.images[0] is not None


def test_screenshots_saved(make_agent):
    store = MemoryImageStore()
    model = ScriptedModel([BACK, FINISH])
    agent = make_agent(model, image_store=store)
    agent.run("task")
    assert len(store.images) == 2


def test_image_store_errors_are_ignored(make_agent):
    class BrokenStore(MemoryImageStore):
        def save(self, image):
            raise OSError("disk full")

    agent = make_agent(ScriptedModel([FINISH]), image_store=BrokenStore())
    assert agent.run("task").phase is TaskPhase.FINISHED


def test_capture_failure_is_fatal(make_agent, status):
    model = ScriptedModel([FINISH])
    agent = make_agent(model, capture=FakeCapture(fail=True))
    result = agent.run("task")

    assert result.phase is TaskPhase.FATAL
    assert result.end_state is TaskEndState.ERROR
    assert result.message == get_message("error_screenshot_failed", "en")
    assert model.histories == []
    assert status.states()[-1] is AssistantState.ERROR


def test_capture_timeout_is_fatal(make_agent, status):
    capture = HangingCapture()
    model = ScriptedModel([FINISH])
    config = AgentConfig(max_steps=5, step_delay_ms=0, capture_timeout_ms=200, lang="en", verbose=False)
    agent = make_agent(model, capture=capture, config=config)
    try:
        result = agent.run("task")
    finally:
        capture.release.set()

    assert result.phase is TaskPhase.FATAL
    assert result.message == get_message("error_screenshot_failed", "en")
    assert result.elapsed_seconds < 5
    assert model.histories == []
    assert status.running[-1] == (False, AssistantState.ERROR)


def test_model_error_sentinel_is_fatal(make_agent, device):
    model = ScriptedModel(["Error: connection refused"])
    agent = make_agent(model)
    result = agent.run("task")

    assert result.phase is TaskPhase.FATAL
    assert result.message == "Error: connection refused"
    assert agent.state.last_error == "Error: connection refused"
    assert device.calls == []


def test_missing_executor_is_fatal(make_agent):
    agent = make_agent(ScriptedModel([BACK]))
    agent.executor = None
    result = agent.run("task")
    assert result.phase is TaskPhase.FATAL
    assert result.message == get_message("error_executor_null", "en")


def test_unexpected_exception_is_fatal(make_agent, device):
    def broken():
        raise RuntimeError("binder died")

    device.current_app = broken
    result = make_agent(ScriptedModel([FINISH])).run("task")

    assert result.phase is TaskPhase.FATAL
    assert "binder died" in result.message


def test_host_foreground_goes_home_and_skips_first_capture(make_agent, device, capture):
    device.host_foreground = True
    model = ScriptedModel([BACK, FINISH])
    agent = make_agent(model)
    agent.run("task")

    assert device.calls[0] == ("home",)
    assert capture.count == 1
    assert model.images[0] is None
    assert _images(model.histories[0]) == 0
    assert model.images[1] is not None


def test_stop_cancels_silently(make_agent, status):
    agent = None

    def stop_on_second(call):
        if call == 2:
            agent.stop()

    model = ScriptedModel([BACK], on_infer=stop_on_second)
    agent = make_agent(model)
    result = agent.run("task")

    assert result.phase is TaskPhase.CANCELLED
    assert result.end_state is TaskEndState.USER_STOPPED
    assert result.steps == 2
    assert AssistantState.ERROR not in status.states()


def test_start_runs_in_background(make_agent):
    agent = make_agent(ScriptedModel([BACK, FINISH]))
    agent.start("task")
    result = agent.wait(timeout=5)

    assert result is not None
    assert result.phase is TaskPhase.FINISHED
    assert not agent.is_running


def test_new_task_replaces_running_one(make_agent):
    first_started = threading.Event()

    class TaskAwareModel(ScriptedModel):
        def infer(self, history, image):
            super().infer(history, image)
            task_text = history[1]["content"][-1]["text"]
            if task_text.startswith("slow"):
                first_started.set()
                return 'Wait. do(action="Wait", duration="30 seconds")'
            return FINISH

    agent = make_agent(TaskAwareModel([FINISH]))
    agent.start("slow task")
    assert first_started.wait(5)
    first_state = agent.state

    agent.start("quick task")
    result = agent.wait(timeout=5)

    assert first_state.phase is TaskPhase.CANCELLED
    assert result.task == "quick task"
    assert result.phase is TaskPhase.FINISHED
    assert agent.history.messages()[1]["content"][-1]["text"].startswith("quick task")


def test_overlay_hidden_around_capture_and_gestures(device, capture, fast_config, fast_timings):
    overlay = FakeOverlay()
    agent = PilotAgent(
        device,
        capture,
        ScriptedModel(['Tap. do(action="Tap", element=[500, 500])', FINISH]),
        config=fast_config,
        timings=fast_timings,
        overlay=overlay,
    )
    result = agent.run("task")

    assert result.phase is TaskPhase.FINISHED
    # capture, tap, capture
    assert overlay.events == ["hide", "show"] * 3
    assert overlay.visible


def test_run_and_start_never_overlap(make_agent):
    """同步 run() 运行中调用 start()，旧任务先结束再开始新任务"""
    first_started = threading.Event()

    class TaskAwareModel(ScriptedModel):
        def infer(self, history, image):
            super().infer(history, image)
            task_text = history[1]["content"][-1]["text"]
            if task_text.startswith("slow"):
                first_started.set()
                return 'Wait. do(action="Wait", duration="30 seconds")'
            return FINISH

    agent = make_agent(TaskAwareModel([FINISH]))
    results = []
    runner = threading.Thread(target=lambda: results.append(agent.run("slow task")), daemon=True)
    runner.start()
    assert first_started.wait(5)

    agent.start("quick task")
    result = agent.wait(timeout=5)
    runner.join(5)

    assert results[0].task == "slow task"
    assert results[0].phase is TaskPhase.CANCELLED
    assert result.task == "quick task"
    assert result.phase is TaskPhase.FINISHED
    assert agent.history.messages()[1]["content"][-1]["text"].startswith("quick task")


def test_overlay_restored_when_capture_times_out(device, status, fast_timings):
    overlay = FakeOverlay()
    capture = HangingCapture()
    config = AgentConfig(max_steps=5, step_delay_ms=0, capture_timeout_ms=200, lang="en", verbose=False)
    agent = PilotAgent(
        device,
        capture,
        ScriptedModel([FINISH]),
        status=status,
        config=config,
        timings=fast_timings,
        overlay=overlay,
    )
    try:
        result = agent.run("task")
        assert result.phase is TaskPhase.FATAL
        assert result.message == get_message("error_screenshot_failed", "en")
        assert overlay.visible
        assert overlay.events == ["hide", "show"]

        # the abandoned capture must not keep the guard locked
        tapper = threading.Thread(target=agent.device.tap, args=(1, 2), daemon=True)
        tapper.start()
        tapper.join(1)
        assert not tapper.is_alive()
        assert ("tap", 1, 2) in device.calls
    finally:
        capture.release.set()


def test_overlay_restored_when_stopped_during_capture(device, fast_config, fast_timings):
    overlay = FakeOverlay()
    capture = HangingCapture()
    agent = PilotAgent(
        device,
        capture,
        ScriptedModel([FINISH]),
        config=fast_config,
        timings=fast_timings,
        overlay=overlay,
    )
    try:
        agent.start("task")
        assert capture.started.wait(5)
        agent.stop()
        result = agent.wait(timeout=5)
    finally:
        capture.release.set()

    assert result.phase is TaskPhase.CANCELLED
    assert overlay.visible
    assert overlay.events == ["hide", "show"]
