"""
Integer representation shared by the decoder, the encoder and the Value model.

Bencode integers have no declared width. Decoded integers are kept as a
``Number`` which holds either a value in the unsigned 64-bit range or one in the
signed 64-bit range, and can be narrowed to fixed-width types without ever
truncating.
"""
from functools import total_ordering
from typing import NewType, Optional

from .error import InvalidIntegerError, NumberOutOfRangeError

I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1
U64_MAX = (1 << 64) - 1

# Width markers for typed decoding, e.g. ``from_slice(b"i300e", U8)``.
I8 = NewType('I8', int)
I16 = NewType('I16', int)
I32 = NewType('I32', int)
I64 = NewType('I64', int)
U8 = NewType('U8', int)
U16 = NewType('U16', int)
U32 = NewType('U32', int)
U64 = NewType('U64', int)

WIDTHS = {
    I8: (8, True),
    I16: (16, True),
    I32: (32, True),
    I64: (64, True),
    U8: (8, False),
    U16: (16, False),
    U32: (32, False),
    U64: (64, False),
}


def int_range(bits: int, signed: bool):
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


@total_ordering
class Number:
    """A bencode integer.

    Args:
        value: The integer value
        signed: Representation to record. Defaults to signed for negative
            values and unsigned otherwise.

    Raises:
        NumberOutOfRangeError: if the value fits neither 64-bit range
    """

    __slots__ = ('_value', '_signed')

    def __init__(self, value: int, signed: Optional[bool] = None):
        if isinstance(value, Number):
            value = value._value
        elif isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Number expects an int, got {type(value).__name__}")
        if signed is None:
            signed = value < 0
        if signed:
            if not I64_MIN <= value <= I64_MAX:
                raise NumberOutOfRangeError(f"{value} does not fit a signed 64-bit integer")
        elif not 0 <= value <= U64_MAX:
            raise NumberOutOfRangeError(f"{value} does not fit an unsigned 64-bit integer")
        self._value = value
        self._signed = signed

    @classmethod
    def parse(cls, digits: bytes, byte_offset: int = 0) -> 'Number':
        """Parse an ASCII decimal run with an optional leading ``-``.

        The run is expected to have been checked for leading zeros by the
        grammar already; anything that is not a digit is still rejected.
        """
        digits = bytes(digits)
        negative = digits[:1] == b'-'
        body = digits[1:] if negative else digits
        if not body or not body.isdigit():
            raise InvalidIntegerError(f"invalid integer {digits!r}", byte_offset)
        value = int(body)
        if negative:
            value = -value
        try:
            return cls(value)
        except NumberOutOfRangeError as e:
            raise InvalidIntegerError(e.message, byte_offset) from e

    @property
    def is_signed(self) -> bool:
        return self._signed

    @property
    def value(self) -> int:
        return self._value

    def to_ascii(self) -> bytes:
        return b'%d' % self._value

    def __bytes__(self) -> bytes:
        return self.to_ascii()

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def narrow(self, bits: int, signed: bool) -> int:
        """Return the value as a fixed-width integer.

        Raises:
            NumberOutOfRangeError: if the value does not fit
        """
        low, high = int_range(bits, signed)
        if not low <= self._value <= high:
            kind = 'i' if signed else 'u'
            raise NumberOutOfRangeError(f"{self._value} does not fit {kind}{bits}")
        return self._value

    def try_narrow(self, bits: int, signed: bool) -> Optional[int]:
        low, high = int_range(bits, signed)
        if low <= self._value <= high:
            return self._value
        return None

    def to_i8(self) -> int:
        return self.narrow(8, True)

    def to_i16(self) -> int:
        return self.narrow(16, True)

    def to_i32(self) -> int:
        return self.narrow(32, True)

    def to_i64(self) -> int:
        return self.narrow(64, True)

    def to_u8(self) -> int:
        return self.narrow(8, False)

    def to_u16(self) -> int:
        return self.narrow(16, False)

    def to_u32(self) -> int:
        return self.narrow(32, False)

    def to_u64(self) -> int:
        return self.narrow(64, False)

    def __eq__(self, other) -> bool:
        if isinstance(other, Number):
            return self._value == other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == other
        return NotImplemented

    def __lt__(self, other) -> bool:
        if isinstance(other, Number):
            return self._value < other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        kind = 'Signed' if self._signed else 'Unsigned'
        return f"Number.{kind}({self._value})"

    def __str__(self) -> str:
        return str(self._value)
