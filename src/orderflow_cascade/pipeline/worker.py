"""
Coalescing background worker

A single dedicated thread that runs at most one job at a time. While a job is
running, newer submissions replace the waiting one instead of queueing: only
the latest tick is worth analyzing, so superseded jobs are dropped and
counted. Memory stays bounded to one running plus one waiting job.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CoalescingWorker:
    """Latest-only single-thread executor"""

    def __init__(self, name: str = "worker", on_result: Optional[Callable[[Any], None]] = None):
        self.name = name
        self.on_result = on_result

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._running = False
        self._closed = False
        self._waiting: Optional[Tuple[Callable[..., Any], Tuple[Any, ...]]] = None

        self.submitted = 0
        self.completed = 0
        self.failed = 0
        self.superseded = 0

    @property
    def busy(self) -> bool:
        return not self._idle.is_set()

    def submit(self, fn: Callable[..., Any], *args: Any) -> bool:
        """
        Schedule fn(*args)

        Returns:
            True if the job started immediately, False if it is waiting behind
            the running job (replacing any job that was already waiting).
        """
        with self._lock:
            if self._closed:
                raise RuntimeError(f"{self.name} is closed")
            self.submitted += 1
            if self._running:
                if self._waiting is not None:
                    self.superseded += 1
                self._waiting = (fn, args)
                return False
            self._running = True
            self._idle.clear()

        self._executor.submit(self._drain, fn, args)
        return True

    def _drain(self, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        while True:
            try:
                result = fn(*args)
            except Exception as e:
                self.failed += 1
                logger.error(f"{self.name}: job failed: {e}", exc_info=True)
            else:
                self.completed += 1
                if result is not None and self.on_result is not None:
                    self.on_result(result)

            with self._lock:
                if self._waiting is None:
                    self._running = False
                    self._idle.set()
                    return
                fn, args = self._waiting
                self._waiting = None

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is running or waiting"""
        return self._idle.wait(timeout)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
            if not wait:
                self._waiting = None
        self._executor.shutdown(wait=wait)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "superseded": self.superseded,
            "busy": self.busy,
        }


__all__ = ["CoalescingWorker"]
