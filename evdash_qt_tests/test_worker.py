from queue import Queue
from unittest.mock import MagicMock, patch

import pytest

from evdash_qt.worker import ProviderThread, Work, WorkRelay


@pytest.fixture
def relay(qt_app):
    result = WorkRelay()
    yield result
    result.shutdown()


def run_once(thread: ProviderThread):
    """Run the thread loop in the current thread until one work is done."""
    with patch.object(thread, "workDone") as mock_signal:

        def stop(*args):
            thread.should_stop = True

        mock_signal.emit.side_effect = stop
        thread.run()
    return mock_signal


def test_push_work_starts_thread(relay):
    work = relay.push_work(fn=MagicMock(), callback=MagicMock(), name="list")

    assert relay.pending[work.req_id] is work
    assert work.name == "list"
    assert relay.provider_thread.isRunning()


def test_push_work_keeps_req_id(relay):
    work = relay.push_work(fn=lambda: 1, callback=MagicMock(), req_id="r1")
    assert work.req_id == "r1"


def test_deliver_calls_callback(relay):
    callback = MagicMock()
    work = Work(fn=None, callback=callback, req_id=1, name="remove")
    relay.pending[1] = work

    relay.deliver(1)

    callback.assert_called_once_with(work)
    assert 1 not in relay.pending


def test_deliver_unknown_work(relay, caplog):
    caplog.set_level("DEBUG", logger="evdash_qt.worker")
    relay.deliver(999)
    assert "No pending work with ID 999" in caplog.text


def test_deliver_callback_error_is_logged(relay, caplog):
    callback = MagicMock(side_effect=ValueError("x"))
    relay.pending[2] = Work(fn=None, callback=callback, req_id=2, name="list")

    relay.deliver(2)

    assert "Callback of list (2) failed" in caplog.text


def test_deliver_deleted_receiver(relay, caplog):
    caplog.set_level("DEBUG", logger="evdash_qt.worker")
    callback = MagicMock(
        side_effect=RuntimeError("wrapped C/C++ object has been deleted")
    )
    relay.pending[3] = Work(fn=None, callback=callback, req_id=3)

    relay.deliver(3)

    assert "Receiver of 3 is gone" in caplog.text
    assert "failed" not in caplog.text


def test_thread_performs_work():
    queue = Queue()
    thread = ProviderThread(queue=queue)
    work = Work(fn=lambda: [1, 2, 3], callback=MagicMock(), req_id=1)
    queue.put(work)

    mock_signal = run_once(thread)

    assert work.result == [1, 2, 3]
    assert work.ok
    assert work.duration >= 0
    mock_signal.emit.assert_called_once_with(1)


def test_thread_stores_errors(caplog):
    queue = Queue()
    thread = ProviderThread(queue=queue)
    fn = MagicMock(side_effect=ConnectionError("backend down"))
    work = Work(fn=fn, callback=MagicMock(), req_id=1, name="assign")
    queue.put(work)

    mock_signal = run_once(thread)

    assert isinstance(work.error, ConnectionError)
    assert not work.ok
    assert "assign (1) failed" in caplog.text
    mock_signal.emit.assert_called_once_with(1)


def test_work_complete_calls_callback():
    callback = MagicMock()
    work = Work(fn=None, callback=callback)
    work.complete(result="r")
    assert work.result == "r"
    assert work.error is None
    callback.assert_called_once_with(work)


def test_shutdown_stops_thread(relay):
    relay.provider_thread.start()
    assert relay.provider_thread.isRunning()

    relay.shutdown()
    assert not relay.provider_thread.isRunning()
