"""
Visitors for decoding into Python types.

``visitor_for`` turns a type hint into a ``Visitor``:

    int, bool, Number, I8 .. U64       integers
    bytes, bytearray, memoryview, str  byte strings
    Raw                                the complete encoding of any value
    List[T], Tuple[...], NamedTuple    lists
    Dict[K, V], dataclasses            dictionaries
    Enum, Union of dataclasses/enums   externally tagged enums
    Value, Any                         the dynamic Value model

Dataclass fields are matched by name, or by the key given in the field's
``bencode`` metadata:

    @dataclass
    class Info:
        name: str
        piece_length: int = field(metadata={'bencode': 'piece length'})

Fields declared with ``init=False`` are not part of the encoding.
"""
import collections.abc
import dataclasses
import types
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, NewType, Optional, Tuple, Union, get_args, get_origin, get_type_hints

from .error import (
    InvalidLengthError,
    MissingFieldError,
    TypeMismatchError,
    UnknownFieldError,
    UnsupportedTypeError,
)
from .grammar import Kind
from .number import WIDTHS, Number
from .value import Value
from .visitor import END, MapAccess, SeqAccess, Visitor

# Complete bencoded form of a value, e.g. the ``info`` dictionary of a torrent.
Raw = NewType('Raw', bytes)

# Attribute a dataclass sets to reject keys it has no field for.
DENY_UNKNOWN_FIELDS = '__bencode_deny_unknown_fields__'
# Field metadata key holding the dictionary key of a renamed field.
FIELD_KEY = 'bencode'

_UnionType = getattr(types, 'UnionType', None)

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence,
                     collections.abc.Iterable)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def is_union(hint) -> bool:
    origin = get_origin(hint)
    return origin is Union or (_UnionType is not None and origin is _UnionType)


def optional_inner(hint):
    """Return ``T`` for ``Optional[T]``, or None if ``hint`` is not optional."""
    if not is_union(hint):
        return None
    args = get_args(hint)
    if type(None) not in args:
        return None
    rest = tuple(arg for arg in args if arg is not type(None))
    if len(rest) == 1:
        return rest[0]
    return Union[rest]


def is_namedtuple(hint) -> bool:
    return isinstance(hint, type) and issubclass(hint, tuple) and hasattr(hint, '_fields')


def is_struct(hint) -> bool:
    return isinstance(hint, type) and dataclasses.is_dataclass(hint)


def is_enum(hint) -> bool:
    return isinstance(hint, type) and issubclass(hint, Enum)


def field_key(field: dataclasses.Field) -> bytes:
    """Dictionary key used for a dataclass field."""
    return field.metadata.get(FIELD_KEY, field.name).encode('utf-8')


# ---------- primitives ----------

class ValueVisitor(Visitor):
    expecting = 'any valid bencode value'

    def deserialize(self, de) -> Value:
        return de.deserialize_value(self)

    def visit_integer(self, number) -> Value:
        return Value.integer(number)

    def visit_byte_string(self, data, borrowed: bool) -> Value:
        return Value.byte_string(bytes(data))

    def visit_list(self, seq: SeqAccess) -> Value:
        items = []
        while True:
            item = seq.next_element(self)
            if item is END:
                return Value.list(items)
            items.append(item)

    def visit_dict(self, dct: MapAccess) -> Value:
        entries = {}
        while True:
            key = dct.next_key(BYTES)
            if key is END:
                return Value(Kind.DICT, entries)
            entries[key] = dct.next_value(self)


class IgnoredVisitor(Visitor):
    """Consumes a value without building anything."""

    def deserialize(self, de) -> None:
        return de.deserialize_ignored(self)


class NumberVisitor(Visitor):
    expecting = 'an integer'

    def deserialize(self, de) -> Number:
        return de.deserialize_integer(self)

    def visit_integer(self, number) -> Number:
        return number


class IntVisitor(Visitor):
    """Decodes an integer, optionally narrowed to a fixed width."""

    expecting = 'an integer'

    def __init__(self, bits: Optional[int] = None, signed: bool = True):
        self.bits = bits
        self.signed = signed

    def deserialize(self, de) -> int:
        return de.deserialize_integer(self)

    def visit_integer(self, number) -> int:
        if self.bits is None:
            return int(number)
        return number.narrow(self.bits, self.signed)


class BoolVisitor(Visitor):
    expecting = 'a boolean (integer 0 or 1)'

    def deserialize(self, de) -> bool:
        return de.deserialize_integer(self)

    def visit_integer(self, number) -> bool:
        if number == 0:
            return False
        if number == 1:
            return True
        raise TypeMismatchError(f"invalid value: integer {number}, expected {self.expecting}")


class BytesVisitor(Visitor):
    expecting = 'a byte string'

    def __init__(self, factory=bytes):
        self.factory = factory

    def deserialize(self, de):
        return de.deserialize_byte_string(self)

    def visit_byte_string(self, data, borrowed: bool):
        if type(data) is self.factory:
            return data
        return self.factory(data)


class MemoryViewVisitor(Visitor):
    """Decodes a byte string as a view into the input when the input allows it."""

    expecting = 'a byte string'
    accepts_borrowed = True

    def deserialize(self, de) -> memoryview:
        return de.deserialize_byte_string(self)

    def visit_byte_string(self, data, borrowed: bool) -> memoryview:
        return data if borrowed else memoryview(data)


class StrVisitor(Visitor):
    expecting = 'a UTF-8 string'

    def deserialize(self, de) -> str:
        return de.deserialize_byte_string(self)

    def visit_byte_string(self, data, borrowed: bool) -> str:
        try:
            return bytes(data).decode('utf-8')
        except UnicodeDecodeError as e:
            raise TypeMismatchError(f"invalid value: byte string is not valid UTF-8 ({e.reason})") from e


class RawVisitor(Visitor):
    expecting = 'any valid bencode value'

    def deserialize(self, de) -> bytes:
        return de.deserialize_raw(self)

    def visit_byte_string(self, data, borrowed: bool) -> bytes:
        return bytes(data)


class WithRawVisitor(Visitor):
    """Decodes with ``inner`` and returns ``(value, raw)``, where ``raw`` is
    the complete encoding the value was decoded from."""

    def __init__(self, inner: Visitor):
        self.inner = inner
        self.expecting = inner.expecting

    def deserialize(self, de):
        return de.deserialize_with_raw(self.inner)


BYTES = BytesVisitor()
IGNORED = IgnoredVisitor()


# ---------- containers ----------

class ListVisitor(Visitor):
    expecting = 'a list'

    def __init__(self, element: Visitor, factory=None):
        self.element = element
        self.factory = factory

    def deserialize(self, de):
        return de.deserialize_list(self)

    def visit_list(self, seq: SeqAccess):
        items = []
        while True:
            item = seq.next_element(self.element)
            if item is END:
                break
            items.append(item)
        return self.factory(items) if self.factory else items


class TupleVisitor(Visitor):
    """Decodes a list with an exact number of elements."""

    def __init__(self, elements: List[Visitor], factory=tuple):
        self.elements = elements
        self.factory = factory
        self.expecting = f"a list of {len(elements)} elements"

    def deserialize(self, de):
        return de.deserialize_list(self)

    def visit_list(self, seq: SeqAccess):
        expected = len(self.elements)
        items = []
        for i, element in enumerate(self.elements):
            item = seq.next_element(element)
            if item is END:
                raise InvalidLengthError(expected, i)
            items.append(item)

        actual = expected
        while seq.next_element(IGNORED) is not END:
            actual += 1
        if actual != expected:
            raise InvalidLengthError(expected, actual)
        return self.factory(items)


class DictVisitor(Visitor):
    expecting = 'a dictionary'

    def __init__(self, key: Visitor, value: Visitor):
        self.key = key
        self.value = value

    def deserialize(self, de) -> dict:
        return de.deserialize_dict(self)

    def visit_dict(self, dct: MapAccess) -> dict:
        result = {}
        while True:
            key = dct.next_key(self.key)
            if key is END:
                return result
            result[key] = dct.next_value(self.value)


class _Field:
    __slots__ = ('name', 'key', 'hint', 'has_default', 'required', 'optional', '_visitor')

    def __init__(self, field: dataclasses.Field, hint):
        self.name = field.name
        self.key = field_key(field)
        self.hint = hint
        self.optional = optional_inner(hint) is not None
        self.has_default = (
            field.default is not dataclasses.MISSING
            or field.default_factory is not dataclasses.MISSING
        )
        self.required = not self.has_default and not self.optional
        self._visitor = None

    @property
    def visitor(self) -> Visitor:
        # Resolved on first use so self-referencing dataclasses work.
        if self._visitor is None:
            self._visitor = visitor_for(self.hint)
        return self._visitor


class StructVisitor(Visitor):
    """Decodes a dictionary into a dataclass."""

    def __init__(self, cls: type):
        self.cls = cls
        self.expecting = f"struct {cls.__name__}"
        self.deny_unknown = getattr(cls, DENY_UNKNOWN_FIELDS, False)
        self._fields: Optional[List[_Field]] = None
        self._by_key: Dict[bytes, _Field] = {}

    @property
    def fields(self) -> List[_Field]:
        if self._fields is None:
            hints = get_type_hints(self.cls)
            self._fields = [
                _Field(f, hints.get(f.name, Any))
                for f in dataclasses.fields(self.cls) if f.init
            ]
            self._by_key = {f.key: f for f in self._fields}
        return self._fields

    def deserialize(self, de):
        return de.deserialize_dict(self)

    def visit_dict(self, dct: MapAccess):
        fields = self.fields
        values = {}
        while True:
            key = dct.next_key(BYTES)
            if key is END:
                break
            field = self._by_key.get(key)
            if field is None:
                if self.deny_unknown:
                    raise UnknownFieldError(key)
                dct.skip_value()
                continue
            values[field.name] = dct.next_value(self.field_visitor(field))

        for field in fields:
            if field.name in values:
                continue
            if field.required:
                raise MissingFieldError(field.key.decode('utf-8'))
            if not field.has_default:
                values[field.name] = None
        return self.build(values)

    def field_visitor(self, field: _Field) -> Visitor:
        return field.visitor

    def build(self, values: Dict[str, Any]):
        return self.cls(**values)


class EnumVisitor(Visitor):
    """Decodes a unit variant, written as the member name."""

    def __init__(self, cls: type):
        self.cls = cls
        self.expecting = f"enum {cls.__name__}"

    def deserialize(self, de):
        return de.deserialize_byte_string(self)

    def visit_byte_string(self, data, borrowed: bool):
        name = bytes(data).decode('utf-8', 'replace')
        try:
            return self.cls[name]
        except KeyError:
            variants = ', '.join(self.cls.__members__)
            raise TypeMismatchError(
                f"unknown variant {name!r}, expected one of {variants}"
            ) from None


class TaggedUnionVisitor(Visitor):
    """Decodes an externally tagged union of dataclasses and enums.

    Unit variants (enum members and dataclasses without fields) are written
    as a bare byte string holding their name. Other variants are written as a
    dictionary with a single key, the class name, mapping to the fields.
    """

    def __init__(self, members: Tuple[type, ...]):
        self.units: Dict[bytes, Any] = {}
        self.payloads: Dict[bytes, type] = {}
        for member in members:
            if is_enum(member):
                for name, value in member.__members__.items():
                    self.units[name.encode('utf-8')] = value
            elif dataclasses.fields(member):
                self.payloads[member.__name__.encode('utf-8')] = member
            else:
                self.units[member.__name__.encode('utf-8')] = member
        names = [n.decode('utf-8') for n in list(self.units) + list(self.payloads)]
        self.expecting = f"one of the variants {', '.join(names)}"

    def deserialize(self, de):
        return de.deserialize_any(self)

    def visit_byte_string(self, data, borrowed: bool):
        name = bytes(data)
        if name in self.units:
            unit = self.units[name]
            return unit() if isinstance(unit, type) else unit
        if name in self.payloads:
            raise TypeMismatchError(f"invalid type: unit variant, expected struct variant {name.decode('utf-8', 'replace')}")
        raise TypeMismatchError(f"unknown variant {name!r}, expected {self.expecting}")

    def visit_dict(self, dct: MapAccess):
        name = dct.next_key(BYTES)
        if name is END:
            raise TypeMismatchError('invalid length 0, expected a dictionary with a single variant key')
        cls = self.payloads.get(name)
        if cls is None:
            if name in self.units:
                raise TypeMismatchError(f"invalid type: struct variant, expected unit variant {name.decode('utf-8', 'replace')}")
            raise TypeMismatchError(f"unknown variant {name!r}, expected {self.expecting}")
        result = dct.next_value(visitor_for(cls))
        if dct.next_key(BYTES) is not END:
            raise TypeMismatchError('expected a dictionary with a single variant key')
        return result


class OptionalVisitor(Visitor):
    """Bencode has no null; an optional value that is present is decoded as the inner type."""

    def __init__(self, inner: Visitor):
        self.inner = inner
        self.expecting = inner.expecting
        self.accepts_borrowed = inner.accepts_borrowed

    def deserialize(self, de):
        return self.inner.deserialize(de)


# ---------- type hint lookup ----------

@lru_cache(maxsize=None)
def visitor_for(hint) -> Visitor:
    """Return the visitor which decodes values of type ``hint``.

    Raises:
        UnsupportedTypeError: if the type cannot be decoded from bencode
    """
    if hint is Value or hint is Any or hint is object:
        return ValueVisitor()
    if hint is Number:
        return NumberVisitor()
    if hint in WIDTHS:
        return IntVisitor(*WIDTHS[hint])
    if hint is Raw:
        return RawVisitor()
    if hint is bool:
        return BoolVisitor()
    if hint is int:
        return IntVisitor()
    if hint is bytes:
        return BYTES
    if hint is bytearray:
        return BytesVisitor(bytearray)
    if hint is memoryview:
        return MemoryViewVisitor()
    if hint is str:
        return StrVisitor()
    if hint is list:
        return ListVisitor(ValueVisitor())
    if hint is tuple:
        return ListVisitor(ValueVisitor(), tuple)
    if hint is dict:
        return DictVisitor(BYTES, ValueVisitor())

    supertype = getattr(hint, '__supertype__', None)
    if supertype is not None:
        return visitor_for(supertype)

    origin = get_origin(hint)
    args = get_args(hint)

    if is_union(hint):
        inner = optional_inner(hint)
        if inner is not None:
            return OptionalVisitor(visitor_for(inner))
        if all(is_struct(arg) or is_enum(arg) for arg in args):
            return TaggedUnionVisitor(args)
        raise UnsupportedTypeError(f"cannot decode into {hint!r}: only unions of dataclasses and enums are supported")

    if origin is tuple:
        if hint is Tuple:
            return ListVisitor(ValueVisitor(), tuple)
        if len(args) == 2 and args[1] is Ellipsis:
            return ListVisitor(visitor_for(args[0]), tuple)
        if args == ((),):
            args = ()
        return TupleVisitor([visitor_for(arg) for arg in args])

    if origin in _SEQUENCE_ORIGINS:
        element = args[0] if args else Any
        return ListVisitor(visitor_for(element))

    if origin in _MAPPING_ORIGINS:
        key, value = args if args else (bytes, Any)
        if key not in (bytes, str):
            raise UnsupportedTypeError(f"cannot decode into {hint!r}: dictionary keys must be bytes or str")
        return DictVisitor(visitor_for(key), visitor_for(value))

    if is_namedtuple(hint):
        hints = get_type_hints(hint)
        elements = [visitor_for(hints.get(name, Any)) for name in hint._fields]
        return TupleVisitor(elements, lambda items: hint(*items))

    if is_struct(hint):
        return StructVisitor(hint)

    if is_enum(hint):
        return EnumVisitor(hint)

    raise UnsupportedTypeError(f"cannot decode into {hint!r}")
