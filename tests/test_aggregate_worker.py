import time
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from models import storage
from models.device_stat import DeviceStat
from services.aggregate_worker import AggregateWorker
from services.errors import TransientStoreFailure
from services.live import EVENT_METRIC_AVERAGE
from services.work_queue import WorkQueue


@pytest.fixture
def notifications():
    return MagicMock()


@pytest.fixture
def worker(app, notifications):
    w = AggregateWorker(WorkQueue(), notifications, storage, idle_interval=0.02, error_backoff=0.02)
    yield w
    w.stop(timeout=2)


def _samples(*temperatures):
    for t in temperatures:
        storage.new(DeviceStat(device_name="sensor", temperature=t))
    storage.save()


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_process_publishes_average(worker, notifications):
    _samples(20.0, 22.0, 27.0)
    assert worker.process("Temperature") == pytest.approx(23.0)
    notifications.push_live.assert_called_once_with(
        EVENT_METRIC_AVERAGE, {"column": "temperature", "average": pytest.approx(23.0)}
    )
    notifications.broadcast_to_all_users.assert_called_once_with("Average temperature is 23.00")


def test_process_without_notify(app, notifications):
    _samples(10.0)
    w = AggregateWorker(WorkQueue(), notifications, storage, notify=False)
    assert w.process("temperature") == pytest.approx(10.0)
    notifications.broadcast_to_all_users.assert_not_called()


def test_unknown_metric_is_dropped(worker, notifications, caplog):
    assert worker.process("humidity; DROP TABLE users") is None
    assert "Unknown column" in caplog.text
    notifications.push_live.assert_not_called()


def test_no_samples_is_dropped(worker, notifications):
    assert worker.process("temperature") is None
    notifications.push_live.assert_not_called()
    notifications.broadcast_to_all_users.assert_not_called()


def test_operational_error_becomes_transient(worker, monkeypatch):
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT avg", {}, Exception("database is locked"))
    monkeypatch.setattr(worker.storage, "get_session", lambda: session)
    with pytest.raises(TransientStoreFailure):
        worker.process("temperature")


def test_loop_survives_failures_and_stops_promptly(worker, notifications):
    _samples(30.0)
    notifications.broadcast_to_all_users.side_effect = [RuntimeError("boom"), None]

    worker.start()
    assert worker.is_running
    worker.work_queue.enqueue("temperature")
    worker.work_queue.enqueue("temperature")

    assert _wait_for(lambda: notifications.broadcast_to_all_users.call_count == 2)
    assert worker.is_running

    started = time.monotonic()
    worker.stop(timeout=2)
    assert not worker.is_running
    assert time.monotonic() - started < 1.0


def test_start_is_idempotent(worker):
    first = worker.start()
    assert worker.start() is first


def test_loop_drops_unknown_metric_and_keeps_going(worker, notifications):
    _samples(18.0, 20.0)
    worker.work_queue.enqueue("unknown-metric")
    worker.work_queue.enqueue("temperature")

    worker.start()
    assert _wait_for(lambda: notifications.broadcast_to_all_users.call_count == 1)
    worker.stop(timeout=2)

    notifications.broadcast_to_all_users.assert_called_once_with("Average temperature is 19.00")
    assert len(worker.work_queue) == 0


def test_average_is_pushed_after_the_notification_is_stored(worker, notifications):
    _samples(25.0)
    worker.process("temperature")
    assert [c[0] for c in notifications.method_calls] == ["broadcast_to_all_users", "push_live"]
