"""A proxy around an HTTP response writer that records status and size."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Optional

_COPY_CHUNK = 32 * 1024


class WriterProxy:
    """Wrap a response writer, recording the status sent and bytes written.

    The wrapped object must offer ``write_header(code)`` and ``write(data)``;
    ``flush`` and ``read_from`` are passed on when it has them. Other
    attributes are looked up on the wrapped object.
    """

    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self._wrote_header = False
        self._code = 0
        self._bytes = 0
        self._tee: Optional[Any] = None

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    def write_header(self, code: int) -> None:
        """Send the status code; only the first call has any effect."""
        if not self._wrote_header:
            self._code = int(code)
            self._wrote_header = True
            self._inner.write_header(code)

    def write(self, data: Any) -> int:
        """Write data, sending a 200 status first if none was sent."""
        self.write_header(HTTPStatus.OK)
        written = self._inner.write(data)
        if written is None:
            written = len(data)
        self._bytes += written
        if self._tee is not None:
            self._tee.write(data[:written])
        return written

    def status(self) -> int:
        """The status sent, or 0 if none has been sent yet."""
        return self._code

    def bytes_written(self) -> int:
        """The number of body bytes sent to the client."""
        return self._bytes

    def tee(self, out: Any) -> None:
        """Also copy the body written from now on to out, replacing any earlier copy."""
        self._tee = out

    def unwrap(self) -> Any:
        """The wrapped writer."""
        return self._inner

    def flush(self) -> None:
        """Flush the wrapped writer."""
        flusher = getattr(self._inner, "flush", None)
        if not callable(flusher):
            raise TypeError("the wrapped writer does not support flushing")
        flusher()

    def read_from(self, reader: Any) -> int:
        """Copy everything from reader into the response; return the byte count."""
        native = getattr(self._inner, "read_from", None)
        if self._tee is None and callable(native):
            self.write_header(HTTPStatus.OK)
            copied = native(reader)
            self._bytes += copied
            return copied
        total = 0
        while True:
            chunk = reader.read(_COPY_CHUNK)
            if not chunk:
                return total
            total += self.write(chunk)


def wrap_writer(inner: Any) -> WriterProxy:
    """Wrap a response writer in a WriterProxy."""
    return WriterProxy(inner)