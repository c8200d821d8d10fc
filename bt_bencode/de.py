"""
Decoding bencode data into Python values.

A ``Deserializer`` reads tokens through the grammar ``Decoder`` and hands them
to a ``Visitor`` built for the requested target type. A ``ValueDeserializer``
drives the same visitors from an already decoded ``Value`` tree.

Usage:
    >>> from_slice(b"d3:cow3:mooe")
    Value.DICT({b'cow': Value.BYTE_STRING(b'moo')})
    >>> from_slice(b"li1ei2ee", List[int])
    [1, 2]
"""
import logging
from typing import Any, BinaryIO, Iterator, Optional, Tuple

from .error import (
    BencodeError,
    NestingTooDeepError,
    TrailingDataError,
    TypeMismatchError,
    with_offset,
)
from .grammar import Decoder, Kind
from .read import IoRead, Read, SliceRead, Span
from .value import Value
from .visitor import END, MapAccess, SeqAccess, Visitor

logger = logging.getLogger(__name__)


def _target_name(target) -> str:
    if isinstance(target, Visitor):
        return type(target).__name__
    return getattr(target, '__name__', None) or repr(target)


class Deserializer:
    """Decodes values from a byte source.

    Args:
        read: Byte source
        max_depth: Nesting limit, None for the ``BENCODE_MAX_DEPTH`` setting
    """

    def __init__(self, read: Read, max_depth: Optional[int] = None):
        self.read = read
        self.decoder = Decoder(read, max_depth)

    @classmethod
    def from_slice(cls, data, max_depth: Optional[int] = None) -> 'Deserializer':
        """Decode from a bytes-like object. ``str`` input is encoded as UTF-8 first."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        return cls(SliceRead(data), max_depth)

    @classmethod
    def from_reader(cls, stream: BinaryIO, chunk_size: Optional[int] = None,
                    max_depth: Optional[int] = None) -> 'Deserializer':
        return cls(IoRead(stream, chunk_size), max_depth)

    @property
    def byte_offset(self) -> int:
        """Offset of the first byte not consumed yet."""
        return self.read.byte_offset

    def end(self) -> None:
        """Check that the input has been fully consumed.

        Raises:
            TrailingDataError: if any byte remains after the decoded value
        """
        if self.read.peek() is not None:
            logger.debug(f"Trailing data after byte offset {self.byte_offset}")
            raise TrailingDataError('trailing data', self.byte_offset)

    def deserialize(self, target=Value) -> Any:
        """Decode the next value into ``target``, a type hint or a ``Visitor``."""
        from .typed import visitor_for

        visitor = target if isinstance(target, Visitor) else visitor_for(target)
        try:
            result = visitor.deserialize(self)
        except RecursionError as e:
            raise NestingTooDeepError(
                'nesting too deep for the interpreter stack', self.byte_offset
            ) from e
        logger.debug(f"Decoded {_target_name(target)} ending at byte offset {self.byte_offset}")
        return result

    def deserialize_with_raw(self, visitor: Visitor) -> Tuple[Any, bytes]:
        """Decode the next value with ``visitor`` and also return its complete encoding."""
        self.read.start_capture()
        try:
            result = visitor.deserialize(self)
        finally:
            raw = self.read.end_capture()
        return result, bytes(raw)

    # ---------- visitor dispatch ----------

    def _visit(self, method, *args) -> Any:
        try:
            return method(*args)
        except BencodeError as e:
            with_offset(e, self.byte_offset)
            raise

    def _mismatch(self, visitor: Visitor, kind: Kind) -> TypeMismatchError:
        return with_offset(visitor.invalid_type(kind.value), self.byte_offset)

    def _visit_byte_string(self, visitor: Visitor, span: Span) -> Any:
        borrowed = self.read.can_borrow and visitor.accepts_borrowed
        if not borrowed and not isinstance(span, bytes):
            span = bytes(span)
        return self._visit(visitor.visit_byte_string, span, borrowed)

    def _visit_list(self, visitor: Visitor) -> Any:
        self.decoder.begin_list()
        result = self._visit(visitor.visit_list, _SeqAccess(self))
        self.decoder.end_list()
        return result

    def _visit_dict(self, visitor: Visitor) -> Any:
        self.decoder.begin_dict()
        result = self._visit(visitor.visit_dict, _MapAccess(self))
        self.decoder.end_dict()
        return result

    # ---------- entry points for visitors ----------

    def deserialize_any(self, visitor: Visitor) -> Any:
        kind = self.decoder.peek_kind()
        if kind is Kind.INTEGER:
            return self._visit(visitor.visit_integer, self.decoder.parse_integer())
        if kind is Kind.BYTE_STRING:
            return self._visit_byte_string(visitor, self.decoder.parse_byte_string())
        if kind is Kind.LIST:
            return self._visit_list(visitor)
        return self._visit_dict(visitor)

    def deserialize_integer(self, visitor: Visitor) -> Any:
        kind = self.decoder.peek_kind()
        if kind is not Kind.INTEGER:
            raise self._mismatch(visitor, kind)
        return self._visit(visitor.visit_integer, self.decoder.parse_integer())

    def deserialize_byte_string(self, visitor: Visitor) -> Any:
        kind = self.decoder.peek_kind()
        if kind is not Kind.BYTE_STRING:
            raise self._mismatch(visitor, kind)
        return self._visit_byte_string(visitor, self.decoder.parse_byte_string())

    def deserialize_raw(self, visitor: Visitor) -> Any:
        """Hand the complete encoding of the next value to ``visitor`` as a byte string."""
        return self._visit_byte_string(visitor, self.decoder.parse_raw())

    def deserialize_list(self, visitor: Visitor) -> Any:
        kind = self.decoder.peek_kind()
        if kind is not Kind.LIST:
            raise self._mismatch(visitor, kind)
        return self._visit_list(visitor)

    def deserialize_dict(self, visitor: Visitor) -> Any:
        kind = self.decoder.peek_kind()
        if kind is not Kind.DICT:
            raise self._mismatch(visitor, kind)
        return self._visit_dict(visitor)

    def deserialize_value(self, visitor: Visitor) -> Value:
        return self.decoder.parse_value()

    def deserialize_ignored(self, visitor: Visitor) -> None:
        self.decoder.skip_value()


class _SeqAccess(SeqAccess):

    def __init__(self, de: Deserializer):
        self.de = de

    def next_element(self, visitor: Visitor) -> Any:
        if self.de.decoder.at_end():
            return END
        return visitor.deserialize(self.de)


class _MapAccess(MapAccess):

    def __init__(self, de: Deserializer):
        self.de = de

    def next_key(self, visitor: Visitor) -> Any:
        if self.de.decoder.at_end():
            return END
        return self.de._visit_byte_string(visitor, self.de.decoder.parse_dict_key())

    def next_value(self, visitor: Visitor) -> Any:
        return visitor.deserialize(self.de)

    def skip_value(self) -> None:
        self.de.decoder.skip_value()


class ValueDeserializer:
    """Feeds a ``Value`` tree to a visitor, converting it to a typed object."""

    byte_offset = 0

    def __init__(self, value: Value):
        self.value = value

    def deserialize(self, target=Value) -> Any:
        from .typed import visitor_for

        visitor = target if isinstance(target, Visitor) else visitor_for(target)
        return visitor.deserialize(self)

    def deserialize_with_raw(self, visitor: Visitor) -> Tuple[Any, bytes]:
        from .ser import encode_value

        return visitor.deserialize(self), encode_value(self.value)

    def _mismatch(self, visitor: Visitor) -> TypeMismatchError:
        return visitor.invalid_type(self.value.kind.value)

    def deserialize_any(self, visitor: Visitor) -> Any:
        value = self.value
        if value.kind is Kind.INTEGER:
            return visitor.visit_integer(value.data)
        if value.kind is Kind.BYTE_STRING:
            return visitor.visit_byte_string(value.data, False)
        if value.kind is Kind.LIST:
            return visitor.visit_list(_ValueSeqAccess(value.data))
        return visitor.visit_dict(_ValueMapAccess(value.data))

    def deserialize_integer(self, visitor: Visitor) -> Any:
        if self.value.kind is not Kind.INTEGER:
            raise self._mismatch(visitor)
        return visitor.visit_integer(self.value.data)

    def deserialize_byte_string(self, visitor: Visitor) -> Any:
        if self.value.kind is not Kind.BYTE_STRING:
            raise self._mismatch(visitor)
        return visitor.visit_byte_string(self.value.data, False)

    def deserialize_raw(self, visitor: Visitor) -> Any:
        from .ser import encode_value

        return visitor.visit_byte_string(encode_value(self.value), False)

    def deserialize_list(self, visitor: Visitor) -> Any:
        if self.value.kind is not Kind.LIST:
            raise self._mismatch(visitor)
        return visitor.visit_list(_ValueSeqAccess(self.value.data))

    def deserialize_dict(self, visitor: Visitor) -> Any:
        if self.value.kind is not Kind.DICT:
            raise self._mismatch(visitor)
        return visitor.visit_dict(_ValueMapAccess(self.value.data))

    def deserialize_value(self, visitor: Visitor) -> Value:
        return self.value

    def deserialize_ignored(self, visitor: Visitor) -> None:
        return None


class _ValueSeqAccess(SeqAccess):

    def __init__(self, items):
        self._items: Iterator[Value] = iter(items)
        self._remaining = len(items)

    def next_element(self, visitor: Visitor) -> Any:
        item = next(self._items, None)
        if item is None:
            return END
        self._remaining -= 1
        return visitor.deserialize(ValueDeserializer(item))

    def size_hint(self) -> Optional[int]:
        return self._remaining


class _ValueMapAccess(MapAccess):

    def __init__(self, entries):
        self._entries = iter(entries.items())
        self._remaining = len(entries)
        self._pending: Optional[Value] = None

    def next_key(self, visitor: Visitor) -> Any:
        entry = next(self._entries, None)
        if entry is None:
            return END
        key, self._pending = entry
        self._remaining -= 1
        return visitor.visit_byte_string(key, False)

    def next_value(self, visitor: Visitor) -> Any:
        if self._pending is None:
            raise TypeMismatchError('dictionary value requested before its key')
        value, self._pending = self._pending, None
        return visitor.deserialize(ValueDeserializer(value))

    def skip_value(self) -> None:
        self._pending = None

    def size_hint(self) -> Optional[int]:
        return self._remaining


# ===== Entry points =====

def from_slice(data, target=Value, *, allow_trailing: bool = True,
               max_depth: Optional[int] = None) -> Any:
    """Decode one value from a bytes-like object.

    Args:
        data: Bencoded input, a bytes-like object or a ``str`` (encoded as UTF-8)
        target: Type hint describing the result, ``Value`` by default
        allow_trailing: When False, bytes after the value raise ``TrailingDataError``
        max_depth: Nesting limit, None for the configured default

    Returns:
        The decoded value
    """
    de = Deserializer.from_slice(data, max_depth=max_depth)
    result = de.deserialize(target)
    if not allow_trailing:
        de.end()
    elif de.read.peek() is not None:
        logger.debug(f"Ignoring trailing data after byte offset {de.byte_offset}")
    return result


def from_reader(stream: BinaryIO, target=Value, *, allow_trailing: bool = True,
                chunk_size: Optional[int] = None, max_depth: Optional[int] = None) -> Any:
    """Decode one value from a binary stream.

    The stream is read in chunks, so it may be positioned past the end of the
    value afterwards.
    """
    de = Deserializer.from_reader(stream, chunk_size=chunk_size, max_depth=max_depth)
    result = de.deserialize(target)
    if not allow_trailing:
        de.end()
    return result


def decode_prefix(data, target=Value, *, max_depth: Optional[int] = None) -> Tuple[Any, int]:
    """Decode the value at the start of ``data``.

    Returns:
        Tuple of (value, offset of the first byte after it)
    """
    de = Deserializer.from_slice(data, max_depth=max_depth)
    result = de.deserialize(target)
    return result, de.byte_offset


def decode_value(data) -> Value:
    return from_slice(data, Value)


def from_value(value: Value, target=Value) -> Any:
    """Convert a ``Value`` tree into ``target``."""
    return ValueDeserializer(value).deserialize(target)


def bdecode(data) -> Any:
    """
    Decode bencoded data into plain ``int``, ``bytes``, ``list`` and ``dict`` objects.

    Args:
        data: Bencoded bytes (str input is encoded as UTF-8 first)

    Returns:
        The decoded object
    """
    return from_slice(data, Value).to_python()
