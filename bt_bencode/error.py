"""
Exceptions raised while encoding and decoding bencode data.

Every error carries the byte offset where the problem was detected. An offset
of 0 means the offset is unknown or not relevant (for example, errors raised
while encoding).
"""
from typing import Optional


class BencodeError(ValueError):
    """Base class for all bencode errors."""

    def __init__(self, message: str, byte_offset: int = 0):
        super().__init__(message)
        self.message = message
        self.byte_offset = byte_offset

    def __str__(self) -> str:
        if self.byte_offset:
            return f"{self.message} at byte offset {self.byte_offset}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, byte_offset={self.byte_offset})"


class BencodeSyntaxError(BencodeError):
    """Malformed token: bad digits, wrong separator, missing terminator."""
    pass


class InvalidIntegerError(BencodeSyntaxError):
    """Integer token contained invalid digits or did not fit the number range."""
    pass


class InvalidByteStringLengthError(BencodeSyntaxError):
    """Byte string length was not a valid number."""
    pass


class KeyMustBeByteStringError(BencodeSyntaxError):
    """A dictionary key was found which was not a byte string."""
    pass


class NestingTooDeepError(BencodeSyntaxError):
    """Lists and dictionaries were nested deeper than allowed."""
    pass


class UnexpectedEofError(BencodeError):
    """End of input was reached while parsing a value."""
    pass


class TypeMismatchError(BencodeError):
    """The decoded value does not match what the target type expects."""
    pass


class MissingFieldError(TypeMismatchError):
    """A required struct field was not present in the dictionary."""

    def __init__(self, field_name: str, byte_offset: int = 0):
        super().__init__(f"missing field {field_name!r}", byte_offset)
        self.field_name = field_name


class UnknownFieldError(TypeMismatchError):
    """A struct which denies unknown fields found an unexpected key."""

    def __init__(self, key: bytes, byte_offset: int = 0):
        super().__init__(f"unknown field {key!r}", byte_offset)
        self.key = key


class InvalidLengthError(TypeMismatchError):
    """A list did not have the number of elements a tuple requires."""

    def __init__(self, expected: int, actual: int, byte_offset: int = 0):
        super().__init__(f"invalid length {actual}, expected {expected} elements", byte_offset)
        self.expected = expected
        self.actual = actual


class NumberOutOfRangeError(BencodeError):
    """An integer does not fit the requested numeric width."""
    pass


class UnsupportedTypeError(BencodeError):
    """The value has a shape which cannot be represented in bencode."""
    pass


class BencodeIOError(BencodeError):
    """An I/O error from the underlying stream."""

    def __init__(self, error: OSError, byte_offset: int = 0):
        super().__init__(f"I/O error: {error}", byte_offset)
        self.error = error


class TrailingDataError(BencodeError):
    """Unparsed data was found after a complete value."""
    pass


def with_offset(error: BencodeError, byte_offset: Optional[int]) -> BencodeError:
    """Fill in the byte offset of an error raised without one."""
    if not error.byte_offset and byte_offset:
        error.byte_offset = byte_offset
    return error
