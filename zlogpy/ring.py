"""Ring buffers that drop the oldest data instead of blocking writers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

_log = logging.getLogger(__name__)

Alerter = Callable[[int], None]


@dataclass(frozen=True)
class _Bucket:
    data: Any
    seq: int


class _RingBuffer:
    """Shared storage and reader side of the diodes."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        if size <= 0:
            raise ValueError("diode size must be positive")
        self._buffer: List[Optional[_Bucket]] = [None] * size
        self._alerter = alerter
        self._read_index = 0
        self._lock = threading.Lock()

    def _read(self) -> Tuple[Any, bool]:
        idx = self._read_index % len(self._buffer)
        with self._lock:
            result = self._buffer[idx]
            self._buffer[idx] = None

        if result is None:
            return None, False
        # A stale value left behind after a fast-forward: ignore it.
        if result.seq < self._read_index:
            return None, False
        # The writer overwrote unread data: catch up and report the loss.
        if result.seq > self._read_index:
            dropped = result.seq - self._read_index
            self._read_index = result.seq
            if self._alerter is not None:
                self._alerter(dropped)
        self._read_index += 1
        return result.data, True


class OneToOne(_RingBuffer):
    """Diode for a single writer and a single reader."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        super().__init__(size, alerter)
        self._write_index = 0

    def set(self, data: Any) -> None:
        """Store data in the next slot, overwriting whatever was there."""
        idx = self._write_index % len(self._buffer)
        bucket = _Bucket(data, self._write_index)
        self._write_index += 1
        with self._lock:
            self._buffer[idx] = bucket

    def try_next(self) -> Tuple[Any, bool]:
        """Read the next slot; return (data, True) or (None, False) if nothing is ready.

        When the writer has lapped the reader, the alerter is told how many
        values were dropped.
        """
        return self._read()


class ManyToOne(_RingBuffer):
    """Diode safe for many concurrent writers and a single reader."""

    def __init__(self, size: int, alerter: Optional[Alerter] = None) -> None:
        super().__init__(size, alerter)
        # One before zero, so the first write claims sequence 0.
        self._write_index = -1

    def set(self, data: Any) -> None:
        """Store data in the next free slot, overwriting whatever was there."""
        size = len(self._buffer)
        while True:
            with self._lock:
                self._write_index += 1
                seq = self._write_index
                idx = seq % size
                old = self._buffer[idx]
                if old is None or old.seq <= seq - size:
                    self._buffer[idx] = _Bucket(data, seq)
                    return
            _log.warning("Diode set collision: consider using a larger diode")

    def try_next(self) -> Tuple[Any, bool]:
        """Read the next slot; return (data, True) or (None, False) if nothing is ready.

        When writers have lapped the reader, the alerter is told how many
        values were dropped.
        """
        return self._read()