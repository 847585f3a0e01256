"""Ordered background persistence of progress changes."""
import logging
import queue
import threading
import time
from collections import OrderedDict
from typing import Optional

from vocabulator import monitoring
from vocabulator.models.vocab_models import WordStat

logger = logging.getLogger(__name__)

_RETRY = object()
_STOP = object()


class BackgroundWriter:
    """Writes stat snapshots through a gateway on a single worker thread.

    One worker consuming one FIFO queue keeps writes for the same word in the
    order they were submitted. Failed writes are parked and retried before the
    next write, so a flaky disk never interrupts a session.
    """

    def __init__(self, gateway, name: str = "progress-writer"):
        self.gateway = gateway
        self._queue: "queue.Queue" = queue.Queue()
        self._parked: "OrderedDict[int, WordStat]" = OrderedDict()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def pending_failures(self) -> int:
        """Number of words whose latest change is not stored yet."""
        with self._lock:
            return len(self._parked)

    def submit(self, word_id: int, stat: WordStat) -> None:
        """Queue a snapshot for writing and return immediately."""
        if self._closed:
            raise RuntimeError("writer is closed")
        self._queue.put((word_id, stat))

    def drain(self) -> None:
        """Block until all submitted writes ran and parked writes were retried."""
        if self._closed:
            return
        self._queue.put(_RETRY)
        self._queue.join()
        if self.pending_failures:
            logger.warning(f"{self.pending_failures} progress write(s) still pending after drain")

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Drain outstanding writes and stop the worker."""
        if self._closed:
            return
        self.drain()
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join(timeout)
        logger.debug("Background writer stopped")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._retry_parked()
                if item is not _RETRY:
                    word_id, stat = item
                    self._write(word_id, stat)
            finally:
                self._queue.task_done()

    def _retry_parked(self) -> None:
        with self._lock:
            parked = list(self._parked.items())
        for word_id, stat in parked:
            logger.info(f"Retrying progress write for word {word_id}")
            self._write(word_id, stat)

    def _write(self, word_id: int, stat: WordStat) -> None:
        started = time.perf_counter()
        try:
            self.gateway.save_stat(word_id, stat)
        except Exception as e:
            monitoring.write_failures.inc()
            logger.error(f"Failed to store progress for word {word_id}: {e}")
            with self._lock:
                # A newer snapshot replaces an older parked one
                self._parked.pop(word_id, None)
                self._parked[word_id] = stat
            return
        monitoring.write_duration.observe(time.perf_counter() - started)
        with self._lock:
            self._parked.pop(word_id, None)
