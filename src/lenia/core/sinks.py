"""Frame sinks that receive generation snapshots from a run."""

import queue
import threading
from typing import Callable, List, Optional

from .errors import SinkFailure
from .field import FrameRecord

FrameSink = Callable[[FrameRecord], None]

_STOP = object()


class MemoryFrameSink:
    """Keeps every frame it receives in a list."""

    def __init__(self) -> None:
        self.frames: List[FrameRecord] = []

    def __call__(self, frame: FrameRecord) -> None:
        self.frames.append(frame)

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def generations(self) -> List[int]:
        """Generation indices in the order they were received."""
        return [frame.generation for frame in self.frames]


class QueuedFrameSink:
    """Hands frames to another sink on a single background thread.

    Frames are delivered strictly in the order they were queued. If the
    inner sink raises, the error is re-raised as SinkFailure on the next
    call or on close(), and later frames are dropped.

    Use as a context manager so the queue is drained before the run's
    result is used::

        with QueuedFrameSink(writer) as sink:
            result = controller.run(sink)
    """

    def __init__(self, inner: FrameSink, maxsize: int = 0) -> None:
        """Initialize the queue and start the writer thread.

        Args:
            inner: Sink that persists frames
            maxsize: Queue capacity (0 for unbounded)
        """
        self.inner = inner
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._error: Optional[BaseException] = None
        self._closed = False
        self._thread = threading.Thread(target=self._drain, name="frame-sink", daemon=True)
        self._thread.start()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                if self._error is None:
                    self.inner(item)
            except Exception as e:
                self._error = e
            finally:
                self._queue.task_done()

    def _raise_pending(self) -> None:
        if self._error is not None:
            raise SinkFailure(f"Queued frame sink failed: {self._error}") from self._error

    def __call__(self, frame: FrameRecord) -> None:
        if self._closed:
            raise SinkFailure("Frame sink is closed")
        self._raise_pending()
        self._queue.put(frame)

    def flush(self) -> None:
        """Block until every queued frame has been handled."""
        self._queue.join()
        self._raise_pending()

    def close(self) -> None:
        """Flush remaining frames and stop the writer thread."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join()
        self._raise_pending()

    def __enter__(self) -> "QueuedFrameSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return

        # Keep the original exception; just stop the thread
        try:
            self.close()
        except SinkFailure:
            pass
