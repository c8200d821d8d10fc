"""
Byte sources for the decoder.

A source hands out single bytes and runs of bytes while keeping track of how
many bytes were consumed. ``SliceRead`` works over an in-memory buffer and
returns views into it without copying. ``IoRead`` pulls from a binary stream
and returns copies.
"""
import logging
from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional, Union

from . import config
from .error import BencodeIOError, UnexpectedEofError

logger = logging.getLogger(__name__)

Span = Union[bytes, memoryview]


class Read(ABC):
    """Interface used by the decoder to read bytes."""

    # True when spans returned by read_exact() point into the caller's buffer.
    can_borrow: bool = False

    @abstractmethod
    def peek(self) -> Optional[int]:
        """Return the next byte without consuming it, or None at end of input."""

    @abstractmethod
    def next(self) -> Optional[int]:
        """Consume and return the next byte, or None at end of input."""

    @abstractmethod
    def read_exact(self, n: int) -> Span:
        """Consume exactly ``n`` bytes.

        Raises:
            UnexpectedEofError: if fewer than ``n`` bytes remain
        """

    @property
    @abstractmethod
    def byte_offset(self) -> int:
        """Number of bytes consumed so far."""

    @abstractmethod
    def start_capture(self) -> None:
        """Start recording consumed bytes. Captures may be nested."""

    @abstractmethod
    def end_capture(self) -> Span:
        """Stop the innermost capture and return the bytes consumed since it started."""

    def eof_error(self) -> UnexpectedEofError:
        return UnexpectedEofError("eof while parsing value", self.byte_offset)


class SliceRead(Read):
    """Reads from a bytes-like object. Returned spans are zero-copy views."""

    can_borrow = True

    def __init__(self, data):
        self._view = memoryview(data).cast('B')
        self._length = len(self._view)
        self._offset = 0
        self._captures: List[int] = []

    @property
    def data(self) -> memoryview:
        return self._view

    def peek(self) -> Optional[int]:
        if self._offset < self._length:
            return self._view[self._offset]
        return None

    def next(self) -> Optional[int]:
        if self._offset < self._length:
            b = self._view[self._offset]
            self._offset += 1
            return b
        return None

    def read_exact(self, n: int) -> memoryview:
        end = self._offset + n
        if end > self._length:
            self._offset = self._length
            raise self.eof_error()
        span = self._view[self._offset:end]
        self._offset = end
        return span

    @property
    def byte_offset(self) -> int:
        return self._offset

    def start_capture(self) -> None:
        self._captures.append(self._offset)

    def end_capture(self) -> memoryview:
        start = self._captures.pop()
        return self._view[start:self._offset]


class IoRead(Read):
    """Reads from a binary stream through a read-ahead buffer.

    Args:
        stream: Any object with a ``read(size)`` method returning bytes
        chunk_size: Read-ahead size, defaults to ``BENCODE_READ_CHUNK_SIZE``
    """

    can_borrow = False

    def __init__(self, stream: BinaryIO, chunk_size: Optional[int] = None):
        self._stream = stream
        self._chunk_size = chunk_size or config.READ_CHUNK_SIZE
        self._buf = bytearray()
        self._pos = 0
        self._offset = 0
        self._eof = False
        self._captured = bytearray()
        self._captures: List[int] = []

    def _available(self) -> int:
        return len(self._buf) - self._pos

    def _fill(self, needed: int) -> bool:
        """Make sure at least ``needed`` unconsumed bytes are buffered."""
        if self._available() >= needed:
            return True
        if self._pos:
            del self._buf[:self._pos]
            self._pos = 0
        while len(self._buf) < needed and not self._eof:
            try:
                chunk = self._stream.read(self._chunk_size)
            except OSError as e:
                raise BencodeIOError(e, self._offset) from e
            if not chunk:
                self._eof = True
                break
            self._buf += chunk
            logger.debug(f"Buffered {len(chunk)} bytes at byte offset {self._offset}")
        return len(self._buf) >= needed

    def _consume(self, n: int) -> None:
        if self._captures:
            self._captured += self._buf[self._pos:self._pos + n]
        self._pos += n
        self._offset += n

    def peek(self) -> Optional[int]:
        if not self._fill(1):
            return None
        return self._buf[self._pos]

    def next(self) -> Optional[int]:
        if not self._fill(1):
            return None
        b = self._buf[self._pos]
        self._consume(1)
        return b

    def read_exact(self, n: int) -> bytes:
        if not self._fill(n):
            self._consume(self._available())
            raise self.eof_error()
        data = bytes(self._buf[self._pos:self._pos + n])
        self._consume(n)
        return data

    @property
    def byte_offset(self) -> int:
        return self._offset

    def start_capture(self) -> None:
        self._captures.append(len(self._captured))

    def end_capture(self) -> bytes:
        start = self._captures.pop()
        data = bytes(self._captured[start:])
        if not self._captures:
            self._captured.clear()
        return data
