"""A non-blocking writer that drops data rather than stall log producers."""

from __future__ import annotations

import io
import threading
from datetime import timedelta
from typing import Any, Callable, Optional, Union

from .polling import Poller, Waiter
from .ring import ManyToOne


class DiodeWriter:
    """Wrap a stream so that writes never block.

    Writes go into a ring buffer of ``size`` entries and a background thread
    copies them to ``out``. When the thread cannot keep up, the oldest
    entries are dropped and ``alerter`` is called with the number lost.
    A positive ``poll_interval`` (seconds or a timedelta) reads by polling;
    otherwise the reader sleeps until woken by a write.
    """

    def __init__(
        self,
        out: Any,
        size: int,
        poll_interval: Union[float, timedelta] = 0.0,
        alerter: Optional[Callable[[int], None]] = None,
    ) -> None:
        if isinstance(poll_interval, timedelta):
            poll_interval = poll_interval.total_seconds()
        self._out = out
        self._cancel = threading.Event()
        ring = ManyToOne(size, alerter)
        if poll_interval > 0:
            self._diode: Any = Poller(ring, interval=poll_interval, cancel=self._cancel)
        else:
            self._diode = Waiter(ring, cancel=self._cancel)
        self._thread = threading.Thread(target=self._poll, daemon=True)
        self._thread.start()

    def write(self, data: Any) -> int:
        """Queue a copy of data for writing and return its length."""
        chunk = bytes(data)
        self._diode.set(chunk)
        return len(chunk)

    def close(self) -> None:
        """Flush what is queued, stop the reader and close the wrapped stream."""
        self._cancel.set()
        self._thread.join()
        closer = getattr(self._out, "close", None)
        if callable(closer):
            closer()

    def __enter__(self) -> DiodeWriter:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _poll(self) -> None:
        text = isinstance(self._out, io.TextIOBase)
        while True:
            chunk = self._diode.next()
            if chunk is None:
                return
            try:
                self._out.write(chunk.decode("utf-8") if text else chunk)
            except Exception:  # a failing sink must not stop the reader
                continue