"""
Bencode grammar: recursive-descent decoding and encoding of the four token
kinds.

    integer      i<digits>e      i42e, i-7e, i0e
    byte string  <length>:<raw>  4:spam, 0:
    list         l<value>...e    l4:spam4:eggse
    dictionary   d<key><value>...e, keys are byte strings

The kind of the next value is decided by its first byte.
"""
import sys
from enum import Enum
from typing import Optional

from . import config
from .error import (
    BencodeSyntaxError,
    InvalidByteStringLengthError,
    InvalidIntegerError,
    KeyMustBeByteStringError,
    NestingTooDeepError,
)
from .number import Number
from .read import Read, Span
from .visitor import Emitter
from .write import Write

BYTE_I = ord(b'i')
BYTE_L = ord(b'l')
BYTE_D = ord(b'd')
BYTE_E = ord(b'e')
BYTE_0 = ord(b'0')
BYTE_9 = ord(b'9')
BYTE_MINUS = ord(b'-')
BYTE_COLON = ord(b':')

# Longest digit run that can still fit the unsigned 64-bit range.
MAX_INTEGER_DIGITS = 20


def is_digit(b: Optional[int]) -> bool:
    return b is not None and BYTE_0 <= b <= BYTE_9


class Kind(Enum):
    """The four bencode token kinds."""
    INTEGER = 'integer'
    BYTE_STRING = 'byte string'
    LIST = 'list'
    DICT = 'dictionary'

    @classmethod
    def from_lead_byte(cls, b: int) -> Optional['Kind']:
        if b == BYTE_I:
            return cls.INTEGER
        if BYTE_0 <= b <= BYTE_9:
            return cls.BYTE_STRING
        if b == BYTE_L:
            return cls.LIST
        if b == BYTE_D:
            return cls.DICT
        return None


class Decoder:
    """Consumes bencode tokens from a byte source.

    The decoder never looks further ahead than one byte, except for the exact
    number of bytes a byte string declares.

    Args:
        read: Byte source to consume
        max_depth: Maximum list/dictionary nesting, None or 0 for the
            ``BENCODE_MAX_DEPTH`` setting
    """

    def __init__(self, read: Read, max_depth: Optional[int] = None):
        self.read = read
        self.max_depth = config.resolve_max_depth(max_depth)
        self.depth = 0

    @property
    def byte_offset(self) -> int:
        return self.read.byte_offset

    def _peek_byte(self) -> int:
        b = self.read.peek()
        if b is None:
            raise self.read.eof_error()
        return b

    def _next_byte(self) -> int:
        b = self.read.next()
        if b is None:
            raise self.read.eof_error()
        return b

    def _expect(self, expected: int, what: str) -> None:
        b = self._next_byte()
        if b != expected:
            raise BencodeSyntaxError(
                f"expected {chr(expected)!r} {what}, found {bytes([b])!r}",
                self.byte_offset,
            )

    def peek_kind(self) -> Kind:
        b = self._peek_byte()
        kind = Kind.from_lead_byte(b)
        if kind is None:
            raise BencodeSyntaxError(f"expected some value, found {bytes([b])!r}", self.byte_offset)
        return kind

    def enter(self) -> None:
        self.depth += 1
        if self.max_depth and self.depth > self.max_depth:
            raise NestingTooDeepError(
                f"nesting depth exceeds the limit of {self.max_depth}", self.byte_offset
            )

    def leave(self) -> None:
        self.depth -= 1

    # ---------- integer: i<digits>e ----------

    def parse_integer(self) -> Number:
        self._expect(BYTE_I, 'at start of integer')
        digits = bytearray()
        if self._peek_byte() == BYTE_MINUS:
            digits.append(self._next_byte())
        if not is_digit(self._peek_byte()):
            raise InvalidIntegerError('invalid integer', self.byte_offset)

        first = self._next_byte()
        if first == BYTE_0:
            # "0" is the only integer allowed to start with a zero, so "-0"
            # and "01" are both rejected here.
            if digits or self._next_byte() != BYTE_E:
                raise InvalidIntegerError('invalid integer', self.byte_offset)
            return Number(0)

        digits.append(first)
        while True:
            b = self._next_byte()
            if b == BYTE_E:
                break
            if not is_digit(b) or len(digits) > MAX_INTEGER_DIGITS:
                raise InvalidIntegerError('invalid integer', self.byte_offset)
            digits.append(b)
        return Number.parse(digits, self.byte_offset)

    # ---------- byte string: <len>:<data> ----------

    def parse_byte_string(self) -> Span:
        """Return the raw bytes of a byte string.

        The result is a view into the input for slice sources and a copy for
        stream sources.
        """
        first = self._next_byte()
        if not is_digit(first):
            raise InvalidByteStringLengthError('invalid byte string length', self.byte_offset)
        length = first - BYTE_0
        if length == 0:
            if self._next_byte() != BYTE_COLON:
                raise InvalidByteStringLengthError('invalid byte string length', self.byte_offset)
        else:
            while True:
                b = self._next_byte()
                if b == BYTE_COLON:
                    break
                if not is_digit(b):
                    raise InvalidByteStringLengthError('invalid byte string length', self.byte_offset)
                length = length * 10 + (b - BYTE_0)
                if length > sys.maxsize:
                    raise InvalidByteStringLengthError('byte string length too large', self.byte_offset)
        return self.read.read_exact(length)

    def parse_dict_key(self) -> Span:
        b = self._peek_byte()
        if not is_digit(b):
            raise KeyMustBeByteStringError('key must be a byte string', self.byte_offset)
        return self.parse_byte_string()

    # ---------- list: l<value>...e / dict: d<key><value>...e ----------

    def begin_list(self) -> None:
        self._expect(BYTE_L, 'at start of list')
        self.enter()

    def begin_dict(self) -> None:
        self._expect(BYTE_D, 'at start of dictionary')
        self.enter()

    def at_end(self) -> bool:
        """True when the next byte terminates the current list or dictionary."""
        return self._peek_byte() == BYTE_E

    def end_list(self) -> None:
        if self._peek_byte() != BYTE_E:
            raise BencodeSyntaxError('invalid list', self.byte_offset)
        self.read.next()
        self.leave()

    def end_dict(self) -> None:
        if self._peek_byte() != BYTE_E:
            raise BencodeSyntaxError('invalid dictionary', self.byte_offset)
        self.read.next()
        self.leave()

    # ---------- whole values ----------

    def skip_value(self) -> None:
        kind = self.peek_kind()
        if kind is Kind.INTEGER:
            self.parse_integer()
        elif kind is Kind.BYTE_STRING:
            self.parse_byte_string()
        elif kind is Kind.LIST:
            self.begin_list()
            while not self.at_end():
                self.skip_value()
            self.end_list()
        else:
            self.begin_dict()
            while not self.at_end():
                self.parse_dict_key()
                self.skip_value()
            self.end_dict()

    def parse_raw(self) -> Span:
        """Consume the next value and return its complete encoding."""
        self.read.start_capture()
        try:
            self.skip_value()
        finally:
            raw = self.read.end_capture()
        return raw

    def parse_value(self):
        """Decode the next value into an owned ``Value`` tree."""
        from .value import Value

        kind = self.peek_kind()
        if kind is Kind.INTEGER:
            return Value.integer(self.parse_integer())
        if kind is Kind.BYTE_STRING:
            return Value.byte_string(bytes(self.parse_byte_string()))
        if kind is Kind.LIST:
            self.begin_list()
            items = []
            while not self.at_end():
                items.append(self.parse_value())
            self.end_list()
            return Value.list(items)

        self.begin_dict()
        entries = {}
        while not self.at_end():
            key = bytes(self.parse_dict_key())
            # Duplicate keys are accepted; the last occurrence wins.
            entries[key] = self.parse_value()
        self.end_dict()
        return Value.dict(entries)


class Encoder(Emitter):
    """Writes bencode tokens to a byte sink.

    Args:
        write: Byte sink receiving the output
        sort_keys: Sort dictionary keys when writing ``Value`` trees, None for
            the ``BENCODE_SORT_KEYS`` setting
    """

    def __init__(self, write: Write, sort_keys: Optional[bool] = None):
        self.write = write
        self.sort_keys = config.resolve_sort_keys(sort_keys)

    def emit_integer(self, n: int) -> None:
        self.write.write_bytes(b'i')
        self.write.write_ascii_digits(int(n))
        self.write.write_bytes(b'e')

    def emit_byte_string(self, data) -> None:
        if isinstance(data, memoryview):
            data = data.cast('B')
        self.write.write_ascii_digits(len(data))
        self.write.write_bytes(b':')
        self.write.write_bytes(data)

    def begin_list(self, length: Optional[int] = None) -> None:
        self.write.write_bytes(b'l')

    def end_list(self) -> None:
        self.write.write_bytes(b'e')

    def begin_dict(self, length: Optional[int] = None) -> None:
        self.write.write_bytes(b'd')

    def emit_key(self, key: bytes) -> None:
        self.emit_byte_string(key)

    def end_dict(self) -> None:
        self.write.write_bytes(b'e')

    def write_value(self, value) -> None:
        """Write a ``Value`` tree."""
        kind = value.kind
        if kind is Kind.INTEGER:
            self.emit_integer(value.data)
        elif kind is Kind.BYTE_STRING:
            self.emit_byte_string(value.data)
        elif kind is Kind.LIST:
            self.begin_list(len(value.data))
            for item in value.data:
                self.write_value(item)
            self.end_list()
        else:
            items = value.data.items()
            if self.sort_keys:
                items = sorted(items, key=lambda kv: kv[0])
            self.begin_dict(len(value.data))
            for key, item in items:
                self.emit_key(key)
                self.write_value(item)
            self.end_dict()
