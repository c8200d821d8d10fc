"""
Byte sinks for the encoder.
"""
from abc import ABC, abstractmethod
from typing import BinaryIO

from .error import BencodeIOError


class Write(ABC):
    """Interface used by the encoder to write bytes."""

    def __init__(self):
        self.bytes_written = 0

    @abstractmethod
    def write_bytes(self, data) -> None:
        """Write all of ``data`` or raise."""

    def write_ascii_digits(self, n: int) -> None:
        """Write ``n`` as minimal decimal ASCII."""
        self.write_bytes(b'%d' % n)


class BufferWrite(Write):
    """Collects output in a growable in-memory buffer."""

    def __init__(self):
        super().__init__()
        self._buf = bytearray()

    def write_bytes(self, data) -> None:
        self._buf += data
        self.bytes_written += len(data)

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class IoWrite(Write):
    """Writes to a binary stream.

    Raw (unbuffered) streams may accept fewer bytes than requested, so writes
    are repeated until everything has been written.
    """

    def __init__(self, stream: BinaryIO):
        super().__init__()
        self._stream = stream

    def write_bytes(self, data) -> None:
        view = memoryview(data).cast('B')
        while view:
            try:
                written = self._stream.write(view)
            except OSError as e:
                raise BencodeIOError(e, self.bytes_written) from e
            if written is None:
                # Buffered streams return None only in non-blocking mode.
                raise BencodeIOError(BlockingIOError("stream would block"), self.bytes_written)
            view = view[written:]
            self.bytes_written += written
