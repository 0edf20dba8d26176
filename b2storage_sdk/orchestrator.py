"""
Bounded worker pool for running many transfers concurrently.
"""

import logging
import queue
import threading
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional

from .models import FileInfo, TransferResult

logger = logging.getLogger(__name__)

_CLOSED = object()


class OrchestratorState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class TransferOrchestrator:
    """
    Fans transfer jobs out to a fixed number of worker threads.

    Items are handed out in FIFO order from a shared queue; results are
    collected in completion order. A failed transfer is recorded and logged
    and the other workers carry on. With ``cancel_on_error`` the first failure
    stops workers from starting new items (those are reported as skipped);
    transfers already in flight always run to completion.

    Args:
        transfer: Callable performing one transfer and returning its FileInfo
        workers: Number of worker threads
        cancel_on_error: Skip items not yet started once any transfer fails
        on_result: Called from the worker thread with each TransferResult
    """

    def __init__(
        self,
        transfer: Callable[[Any], Optional[FileInfo]],
        workers: int = 5,
        cancel_on_error: bool = False,
        on_result: Optional[Callable[[TransferResult], None]] = None,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.transfer = transfer
        self.workers = workers
        self.cancel_on_error = cancel_on_error
        self.on_result = on_result

        self._state = OrchestratorState.IDLE
        self._state_lock = threading.Lock()
        self._results: List[TransferResult] = []
        self._results_lock = threading.Lock()
        self._cancelled = threading.Event()

    @property
    def state(self) -> OrchestratorState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: OrchestratorState):
        with self._state_lock:
            self._state = state
        logger.debug("Orchestrator %s", state.value)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        """Stop workers from starting new items."""
        self._cancelled.set()

    def run(self, items: Iterable[Any]) -> List[TransferResult]:
        """
        Transfer every item and return one TransferResult per item.

        Blocks until all workers have exited. An orchestrator runs once.
        """
        with self._state_lock:
            if self._state != OrchestratorState.IDLE:
                raise RuntimeError(f"Orchestrator already {self._state.value}")
            self._state = OrchestratorState.RUNNING

        tasks = queue.Queue(maxsize=self.workers)
        threads = [
            threading.Thread(target=self._work, args=(tasks,), name=f"transfer-worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in threads:
            thread.start()

        try:
            for item in items:
                tasks.put(item)
        finally:
            self._set_state(OrchestratorState.DRAINING)
            for _ in threads:
                tasks.put(_CLOSED)
            for thread in threads:
                thread.join()
            self._set_state(OrchestratorState.DONE)

        return list(self._results)

    def _work(self, tasks: queue.Queue):
        while True:
            item = tasks.get()
            if item is _CLOSED:
                return

            try:
                self._record(self._transfer_one(item))
            except BaseException as e:
                self._record(TransferResult(item, error=e))
                self._cancelled.set()
                self._drain(tasks)
                raise

    def _transfer_one(self, item: Any) -> TransferResult:
        if self._cancelled.is_set():
            return TransferResult(item, skipped=True)

        try:
            return TransferResult(item, file=self.transfer(item))
        except Exception as e:
            logger.warning("Transfer of %s failed: %s", item, e)
            if self.cancel_on_error:
                self._cancelled.set()
            return TransferResult(item, error=e)

    def _drain(self, tasks: queue.Queue):
        """Mark everything still queued as skipped, up to this worker's close sentinel."""
        while True:
            item = tasks.get()
            if item is _CLOSED:
                return
            self._record(TransferResult(item, skipped=True))

    def _record(self, result: TransferResult):
        with self._results_lock:
            self._results.append(result)
        if self.on_result is not None:
            try:
                self.on_result(result)
            except Exception:
                logger.exception("Result callback failed for %s", result.item)
