"""
Serial Dispatcher - Funnel edits from any thread onto the owning thread.

The editor, history and project manager are single-threaded. Background
workers (thumbnail generation, waveform extraction, export progress) post
callables here; the owning thread runs them in FIFO order from drain().
"""
import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Optional, Tuple

logger = logging.getLogger(__name__)


class SerialDispatcher:
    def __init__(self, on_post: Optional[Callable[[], None]] = None):
        self._lock = threading.Lock()
        self._queue: Deque[Tuple[Callable, tuple, dict]] = deque()
        self._owner = threading.get_ident()
        self._draining = False
        # Called after every post, e.g. to wake an event loop
        self.on_post = on_post

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def is_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner

    def post(self, fn: Callable, *args, **kwargs) -> None:
        """Queue *fn* to run on the owning thread. Safe from any thread."""
        with self._lock:
            self._queue.append((fn, args, kwargs))
        if self.on_post is not None:
            self.on_post()

    def call(self, fn: Callable, *args, **kwargs) -> Any:
        """Run *fn* now when on the owning thread and idle, otherwise queue it."""
        if self.is_owner_thread() and not self._draining:
            return fn(*args, **kwargs)
        self.post(fn, *args, **kwargs)
        return None

    def drain(self) -> int:
        """Run queued callables in order; returns how many ran.

        Must be called on the owning thread. Items posted while draining run
        in the same pass. An exception stops the pass and propagates; the
        remaining items stay queued.
        """
        if not self.is_owner_thread():
            raise RuntimeError("drain() called off the owning thread")
        if self._draining:
            return 0

        ran = 0
        self._draining = True
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        break
                    fn, args, kwargs = self._queue.popleft()
                fn(*args, **kwargs)
                ran += 1
        finally:
            self._draining = False
        if ran:
            logger.debug("Drained %d queued call(s)", ran)
        return ran
