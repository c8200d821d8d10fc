"""
Encoding Python values as bencode.

A ``Serializer`` walks an object, guided by an optional type hint, and
reports every integer, byte string, list and dictionary it finds to an
``Emitter``. The ``Encoder`` emitter writes bencode bytes; ``ValueBuilder``
collects a ``Value`` tree instead.

Usage:
    >>> to_bytes({'cow': 'moo', 'spam': [1, 2]})
    b'd3:cow3:moo4:spamli1ei2eee'
"""
import dataclasses
import logging
from enum import Enum
from typing import Any, BinaryIO, List, Mapping, Optional, Tuple, get_args, get_origin, get_type_hints

from . import config
from .error import UnsupportedTypeError
from .grammar import Encoder, Kind
from .number import Number
from .typed import field_key, is_enum, is_struct, is_union, optional_inner
from .value import Value
from .visitor import Emitter
from .write import BufferWrite, IoWrite

logger = logging.getLogger(__name__)


def _key_bytes(key) -> bytes:
    if isinstance(key, str):
        return key.encode('utf-8')
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    raise UnsupportedTypeError(f"key must be a byte string, got {type(key).__name__}")


def _is_tagged_union(hint) -> bool:
    args = get_args(hint)
    return is_union(hint) and bool(args) and all(is_struct(a) or is_enum(a) for a in args)


class Serializer:
    """Emits the primitive events of Python objects.

    Args:
        emitter: Receiver of the events
        sort_keys: Write the entries of ``Value`` dictionaries sorted by key,
            None for the ``BENCODE_SORT_KEYS`` setting. Mappings and
            dataclasses are always written sorted.
    """

    def __init__(self, emitter: Emitter, sort_keys: Optional[bool] = None):
        self.emitter = emitter
        self.sort_keys = config.resolve_sort_keys(sort_keys)

    def serialize(self, obj: Any, hint: Any = None) -> None:
        """Emit ``obj``. ``hint`` selects the encoding of tagged unions nested in it."""
        inner = optional_inner(hint)
        if inner is not None:
            hint = inner

        if isinstance(obj, Value):
            self._value(obj)
        elif isinstance(obj, Number):
            self.emitter.emit_integer(int(obj))
        elif isinstance(obj, Enum):
            self.emitter.emit_byte_string(obj.name.encode('utf-8'))
        elif isinstance(obj, bool):
            self.emitter.emit_integer(1 if obj else 0)
        elif isinstance(obj, int):
            self.emitter.emit_integer(int(Number(obj)))
        elif isinstance(obj, (bytes, bytearray, memoryview)):
            self.emitter.emit_byte_string(obj)
        elif isinstance(obj, str):
            self.emitter.emit_byte_string(obj.encode('utf-8'))
        elif obj is None:
            raise UnsupportedTypeError('None cannot be represented in bencode')
        elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            if _is_tagged_union(hint):
                self._variant(obj)
            else:
                self._struct(obj)
        elif isinstance(obj, (list, tuple)):
            self._sequence(obj, hint)
        elif isinstance(obj, Mapping):
            self._mapping(obj, hint)
        else:
            raise UnsupportedTypeError(f"cannot encode object of type {type(obj).__name__}")

    def _value(self, value: Value) -> None:
        if isinstance(self.emitter, Encoder) and self.emitter.sort_keys == self.sort_keys:
            self.emitter.write_value(value)
            return
        kind = value.kind
        if kind is Kind.INTEGER:
            self.emitter.emit_integer(int(value.data))
        elif kind is Kind.BYTE_STRING:
            self.emitter.emit_byte_string(value.data)
        elif kind is Kind.LIST:
            self.emitter.begin_list(len(value.data))
            for item in value.data:
                self._value(item)
            self.emitter.end_list()
        else:
            items = value.data.items()
            if self.sort_keys:
                items = sorted(items, key=lambda kv: kv[0])
            self.emitter.begin_dict(len(value.data))
            for key, item in items:
                self.emitter.emit_key(key)
                self._value(item)
            self.emitter.end_dict()

    def _sequence(self, items, hint) -> None:
        origin, args = get_origin(hint), get_args(hint)
        self.emitter.begin_list(len(items))
        for i, item in enumerate(items):
            element_hint = None
            if origin is tuple and args:
                if len(args) == 2 and args[1] is Ellipsis:
                    element_hint = args[0]
                elif i < len(args):
                    element_hint = args[i]
            elif args:
                element_hint = args[0]
            self.serialize(item, element_hint)
        self.emitter.end_list()

    def _mapping(self, mapping: Mapping, hint) -> None:
        args = get_args(hint)
        value_hint = args[1] if len(args) == 2 else None
        entries: List[Tuple[bytes, Any]] = []
        seen = set()
        for key, item in mapping.items():
            key = _key_bytes(key)
            if key in seen:
                raise UnsupportedTypeError(f"duplicate dictionary key {key!r}")
            seen.add(key)
            entries.append((key, item))
        self._entries(entries, lambda key: value_hint)

    def _struct(self, obj) -> None:
        hints = get_type_hints(type(obj))
        entries = []
        names = {}
        for field in dataclasses.fields(obj):
            if not field.init:
                continue
            value = getattr(obj, field.name)
            if value is None:
                if optional_inner(hints.get(field.name)) is None:
                    raise UnsupportedTypeError(
                        f"field {field.name!r} of {type(obj).__name__} is None but not Optional"
                    )
                continue
            key = field_key(field)
            names[key] = field.name
            entries.append((key, value))
        self._entries(entries, lambda key: hints.get(names[key]))

    def _entries(self, entries: List[Tuple[bytes, Any]], hint_for) -> None:
        entries.sort(key=lambda kv: kv[0])
        self.emitter.begin_dict(len(entries))
        for key, value in entries:
            self.emitter.emit_key(key)
            self.serialize(value, hint_for(key))
        self.emitter.end_dict()

    def _variant(self, obj) -> None:
        name = type(obj).__name__.encode('utf-8')
        if not dataclasses.fields(obj):
            self.emitter.emit_byte_string(name)
            return
        self.emitter.begin_dict(1)
        self.emitter.emit_key(name)
        self._struct(obj)
        self.emitter.end_dict()


class ValueBuilder(Emitter):
    """Collects emitted events into a ``Value`` tree."""

    def __init__(self):
        self.result: Optional[Value] = None
        # Open containers, each with the key waiting for its value.
        self._stack: List[list] = []

    def _add(self, value: Value) -> None:
        if not self._stack:
            self.result = value
            return
        frame = self._stack[-1]
        container = frame[0]
        if container.kind is Kind.LIST:
            container.data.append(value)
        else:
            container.data[frame[1]] = value
            frame[1] = None

    def emit_integer(self, n: int) -> None:
        self._add(Value.integer(n))

    def emit_byte_string(self, data) -> None:
        self._add(Value.byte_string(bytes(data)))

    def begin_list(self, length: Optional[int] = None) -> None:
        container = Value.list()
        self._add(container)
        self._stack.append([container, None])

    def end_list(self) -> None:
        self._stack.pop()

    def begin_dict(self, length: Optional[int] = None) -> None:
        container = Value.dict()
        self._add(container)
        self._stack.append([container, None])

    def emit_key(self, key: bytes) -> None:
        self._stack[-1][1] = bytes(key)

    def end_dict(self) -> None:
        self._stack.pop()


def _serialize(emitter: Emitter, obj: Any, hint: Any, sort_keys: Optional[bool]) -> None:
    try:
        Serializer(emitter, sort_keys).serialize(obj, hint)
    except RecursionError as e:
        raise UnsupportedTypeError('value is nested too deeply or contains a reference cycle') from e


# ===== Entry points =====

def to_bytes(obj: Any, hint: Any = None, *, sort_keys: Optional[bool] = None) -> bytes:
    """
    Encode an object as bencode.

    Args:
        obj: Object to encode
        hint: Type hint of ``obj``, needed only for tagged unions
        sort_keys: Sort the keys of ``Value`` dictionaries, None for the
            configured default. Other mappings are always sorted.

    Returns:
        Bencoded bytes
    """
    write = BufferWrite()
    _serialize(Encoder(write, sort_keys), obj, hint, sort_keys)
    logger.debug(f"Encoded {type(obj).__name__} into {write.bytes_written} bytes")
    return write.getvalue()


def to_writer(stream: BinaryIO, obj: Any, hint: Any = None, *,
              sort_keys: Optional[bool] = None) -> int:
    """Encode an object to a binary stream and return the number of bytes written."""
    write = IoWrite(stream)
    _serialize(Encoder(write, sort_keys), obj, hint, sort_keys)
    logger.debug(f"Wrote {type(obj).__name__} as {write.bytes_written} bytes")
    return write.bytes_written


def to_value(obj: Any, hint: Any = None, *, sort_keys: Optional[bool] = None) -> Value:
    """Convert an object into a ``Value`` tree."""
    builder = ValueBuilder()
    _serialize(builder, obj, hint, sort_keys)
    return builder.result


def encode_value(value: Value, *, sort_keys: Optional[bool] = None) -> bytes:
    return to_bytes(value, sort_keys=sort_keys)


def bencode(obj: Any) -> bytes:
    """
    Encode a Python object as bencode.

    Args:
        obj: Object to encode (int, bytes, str, list, dict, dataclass, ...)

    Returns:
        Bencoded bytes
    """
    return to_bytes(obj)
