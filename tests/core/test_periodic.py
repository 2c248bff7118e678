import threading
from unittest.mock import MagicMock
from discovery_gateway.core.periodic import PeriodicTask


def test_tick_runs_action_without_starting_thread():
    action = MagicMock()
    task = PeriodicTask(60, action)

    task.tick()
    task.tick()

    assert action.call_count == 2
    assert task.is_alive() is False


def test_run_calls_action_until_stopped():
    ran = threading.Event()
    calls = []

    def action():
        calls.append(1)
        ran.set()

    task = PeriodicTask(60, action, name="test-task")
    task.start()
    assert ran.wait(2)

    task.stop()
    task.join(2)

    assert task.stopped is True
    assert task.is_alive() is False
    assert len(calls) == 1


def test_stop_before_first_tick_when_delayed():
    action = MagicMock()
    task = PeriodicTask(60, action, run_immediately=False)
    task.start()
    task.stop()
    task.join(2)

    assert task.is_alive() is False
    action.assert_not_called()


def test_errors_in_action_do_not_kill_the_loop():
    second_call = threading.Event()
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        second_call.set()

    task = PeriodicTask(0.01, flaky)
    task.start()
    assert second_call.wait(2)
    task.stop()
    task.join(2)

    assert len(calls) >= 2
