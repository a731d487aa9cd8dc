from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

from .errors import IOFailure, StoreError

logger = logging.getLogger(__name__)


class WriteQueue:
    """
    Runs a document's file writes one at a time, strictly in submission order, on a private worker thread.

    - The worker thread is created lazily on the first submit, so read-only handles never start one.
    - A failed write does not stop later writes. It is logged and retained: `last_error` always shows the
      most recent failure, and `flush()` re-raises the first failure since the previous flush.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._guard = threading.Lock()
        # held by submit and by close while it drains, so a new worker never starts early
        self._lifecycle = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._tail: Future | None = None
        self._pending = 0
        self._unreported: StoreError | None = None
        self._last_error: StoreError | None = None

    @property
    def pending(self) -> int:
        with self._guard:
            return self._pending

    @property
    def last_error(self) -> StoreError | None:
        with self._guard:
            return self._last_error

    def submit(self, job: Callable[[], None]) -> Future:
        with self._lifecycle, self._guard:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"dirstore-write-{self._name}")
            self._pending += 1
            fut = self._executor.submit(self._run, job)
            self._tail = fut
            return fut

    def _run(self, job: Callable[[], None]) -> None:
        try:
            job()
        except (StoreError, OSError) as e:
            err = e if isinstance(e, StoreError) else IOFailure(f"Deferred write for {self._name} failed: {e}")
            if err is not e:
                err.__cause__ = e
            logger.error("Deferred write for %s failed: %s", self._name, err)
            with self._guard:
                self._last_error = err
                if self._unreported is None:
                    self._unreported = err
        finally:
            with self._guard:
                self._pending -= 1

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until every write submitted so far has run. Returns False on timeout.
        """
        with self._guard:
            tail = self._tail
        if tail is None:
            return True
        done, _ = wait([tail], timeout=timeout)
        return bool(done)

    def flush(self, timeout: float | None = None) -> None:
        """
        Wait for queued writes, then raise the first write failure since the previous flush (if any).
        """
        if not self.wait(timeout):
            raise TimeoutError(f"Timed out waiting for writes to {self._name}")
        with self._guard:
            err, self._unreported = self._unreported, None
        if err is not None:
            raise err

    def close(self) -> None:
        """
        Drain the queue and stop the worker thread. A later submit starts a fresh worker once
        the drain has finished; submits made meanwhile block until then.
        """
        with self._lifecycle:
            with self._guard:
                executor, self._executor = self._executor, None
            if executor is not None:
                executor.shutdown(wait=True)
