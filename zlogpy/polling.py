"""Blocking readers on top of the ring buffers: by polling or by waiting."""

from __future__ import annotations

import threading
import time
from typing import Any, Optional, Tuple


class Poller:
    """Read a diode by checking it at a fixed interval until data arrives."""

    def __init__(
        self,
        diode: Any,
        interval: float = 0.01,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("polling interval must be positive")
        self.diode = diode
        self.interval = interval
        self.cancel = cancel if cancel is not None else threading.Event()

    def set(self, data: Any) -> None:
        """Store data in the wrapped diode."""
        self.diode.set(data)

    def try_next(self) -> Tuple[Any, bool]:
        """Read from the wrapped diode without blocking."""
        return self.diode.try_next()

    def next(self) -> Any:
        """Return the next value, or None once cancelled and nothing is left."""
        while True:
            data, ok = self.diode.try_next()
            if ok:
                return data
            if self.cancel.is_set():
                return None
            time.sleep(self.interval)


class Waiter:
    """Read a diode by sleeping until a writer signals that data is ready."""

    def __init__(self, diode: Any, cancel: Optional[threading.Event] = None) -> None:
        self.diode = diode
        self.cancel = cancel if cancel is not None else threading.Event()
        self._cond = threading.Condition()
        if cancel is not None:
            threading.Thread(target=self._wake_on_cancel, daemon=True).start()

    def _wake_on_cancel(self) -> None:
        self.cancel.wait()
        with self._cond:
            self._cond.notify_all()

    def set(self, data: Any) -> None:
        """Store data in the wrapped diode and wake any waiting reader."""
        self.diode.set(data)
        with self._cond:
            self._cond.notify_all()

    def try_next(self) -> Tuple[Any, bool]:
        """Read from the wrapped diode without blocking."""
        return self.diode.try_next()

    def next(self) -> Any:
        """Return the next value, or None once cancelled and nothing is left."""
        with self._cond:
            while True:
                data, ok = self.diode.try_next()
                if ok:
                    return data
                if self.cancel.is_set():
                    return None
                self._cond.wait()