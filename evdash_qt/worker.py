"""Background execution of blocking provider calls.

A `WorkRelay` lives in the main thread. Data providers hand it `Work`
objects; a single `ProviderThread` executes them one at a time and tells the
relay when each is finished, through a queued signal, so that callbacks
always run in the main thread where the data sources live.
"""

import logging
import threading
import time
from queue import Empty, Queue
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from attrs import define, field
from PyQt5.QtCore import QObject, QThread, pyqtSignal

logger = logging.getLogger(__name__)

THREAD_NAME = "EvdashProviderThread"

# How long the thread waits for work before checking if it should stop.
POLL_INTERVAL = 0.5


@define
class Work:
    """One provider call and its outcome.

    The same object travels through the data provider callbacks, so a
    provider that does not use a thread simply fills `result` or `error`
    and calls `callback` (see `complete()`).

    Attributes:
        fn: The blocking call. Its return value becomes the result.
        callback: Receives the finished work, in the main thread.
        req_id: Identifies the work inside the relay.
        name: What the call does (`list`, `remove`, ...); used in logs.
        result: What `fn` returned.
        error: The exception raised by `fn`, if any.
        duration: Seconds spent in `fn`.
    """

    fn: Optional[Callable[[], Any]]
    callback: Callable[["Work"], None]
    req_id: Any = None
    name: str = ""
    result: Any = field(default=None)
    error: Any = field(default=None)
    duration: float = field(default=0.0)

    @property
    def ok(self) -> bool:
        return self.error is None

    def perform(self) -> None:
        """Run `fn` on the current thread and record its result.

        Exceptions propagate; the caller decides where they are stored.
        """
        assert self.fn is not None, "Work without a function"
        started = time.monotonic()
        try:
            self.result = self.fn()
        finally:
            self.duration = time.monotonic() - started

    def complete(self, result: Any = None, error: Any = None) -> None:
        """Set the outcome and call the callback on the current thread."""
        self.result = result
        self.error = error
        self.callback(self)


class WorkRelay(QObject):
    """Hands work to the provider thread and delivers the outcome.

    Attributes:
        provider_thread: The thread that executes the calls; started on
            first use.
        pending: The work that was pushed and not yet delivered, by id.
        queue: Shared with the thread.
    """

    provider_thread: "ProviderThread"
    pending: Dict[Any, Work]
    queue: Queue

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.pending = {}
        self.queue = Queue()
        self.provider_thread = ProviderThread(queue=self.queue, parent=self)
        self.provider_thread.workDone.connect(self.deliver)

    def push_work(
        self,
        fn: Callable[[], Any],
        callback: Callable[[Work], None],
        req_id: Optional[Any] = None,
        name: str = "",
    ) -> Work:
        """Schedule a blocking call.

        Args:
            fn: The call to run in the provider thread.
            callback: Receives the finished work in the main thread.
            req_id: Identifies the work; a random one is generated if
                missing.
            name: Label used in logs.
        """
        if not self.provider_thread.isRunning():
            self.provider_thread.start()

        work = Work(
            fn=fn,
            callback=callback,
            req_id=req_id if req_id is not None else uuid4().int,
            name=name,
        )
        self.pending[work.req_id] = work
        self.queue.put(work)
        logger.debug("Queued %s (%s)", work.name or "work", work.req_id)
        return work

    def deliver(self, req_id: Any) -> None:
        """Call the callback of a finished piece of work."""
        work = self.pending.pop(req_id, None)
        if work is None:
            logger.debug("No pending work with ID %s", req_id)
            return

        logger.debug(
            "%s (%s) finished in %.3fs%s",
            work.name or "work",
            req_id,
            work.duration,
            "" if work.ok else " with an error",
        )
        try:
            work.callback(work)
        except Exception as e:
            if isinstance(e, RuntimeError) and "has been deleted" in str(e):
                # The receiver was a Qt object that no longer exists.
                logger.debug("Receiver of %s is gone", req_id)
            else:
                logger.error(
                    "Callback of %s (%s) failed",
                    work.name or "work",
                    req_id,
                    exc_info=True,
                )

    def shutdown(self) -> None:
        """Stop the provider thread and wait for it."""
        if self.provider_thread.isRunning():
            self.provider_thread.should_stop = True
            self.provider_thread.quit()
            self.provider_thread.wait()


class ProviderThread(QThread):
    """Executes queued work one piece at a time.

    Attributes:
        queue: Where the work comes from.
        should_stop: Set by `WorkRelay.shutdown()`.

    Signals:
        workDone: Emitted with the id of each finished piece of work.
    """

    queue: Queue
    should_stop: bool

    workDone = pyqtSignal(object)

    def __init__(self, queue: Queue, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.should_stop = False
        self.queue = queue
        self.setObjectName(THREAD_NAME)

    def run(self) -> None:
        threading.current_thread().name = THREAD_NAME
        while not self.should_stop:
            try:
                work: Work = self.queue.get(timeout=POLL_INTERVAL)
            except Empty:
                continue

            try:
                work.perform()
            except Exception as e:
                logger.error(
                    "%s (%s) failed: %s",
                    work.name or "work",
                    work.req_id,
                    e,
                    exc_info=True,
                )
                work.error = e
            self.workDone.emit(work.req_id)
