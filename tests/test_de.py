import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

import pytest

from bt_bencode import (
    I8,
    I64,
    U8,
    U64,
    Deserializer,
    InvalidLengthError,
    MissingFieldError,
    Number,
    NumberOutOfRangeError,
    Raw,
    TrailingDataError,
    TypeMismatchError,
    UnknownFieldError,
    UnsupportedTypeError,
    Value,
    ValueDeserializer,
    bdecode,
    decode_prefix,
    decode_value,
    from_reader,
    from_slice,
    from_value,
    visitor_for,
)


@dataclass
class Pair:
    a: int
    b: bytes


@dataclass
class Peer:
    ip: str
    port: int
    peer_id: Optional[bytes] = field(default=None, metadata={'bencode': 'peer id'})
    seeding: bool = False


@dataclass
class Strict:
    __bencode_deny_unknown_fields__ = True
    a: int


@dataclass
class Node:
    name: str
    children: Optional[List['Node']] = None


class Color(Enum):
    RED = 1
    GREEN = 2


@dataclass
class Circle:
    radius: int


@dataclass
class Empty:
    pass


Shape = Union[Circle, Empty, Color]


class Point(NamedTuple):
    x: int
    y: int


# ---------- primitives ----------

def test_decode_into_bool():
    assert from_slice(b'i1e', bool) is True
    assert from_slice(b'i0e', bool) is False


def test_decode_invalid_bool():
    with pytest.raises(TypeMismatchError) as excinfo:
        from_slice(b'i2e', bool)
    assert excinfo.value.byte_offset == 3


def test_decode_int_and_number():
    assert from_slice(b'i-3e', int) == -3
    number = from_slice(b'i18446744073709551615e', Number)
    assert isinstance(number, Number)
    assert number.to_u64() == 18446744073709551615


def test_decode_fixed_width():
    assert from_slice(b'i9223372036854775807e', I64) == 9223372036854775807
    assert from_slice(b'i255e', U8) == 255
    assert from_slice(b'i18446744073709551615e', U64) == 18446744073709551615
    with pytest.raises(NumberOutOfRangeError):
        from_slice(b'i9223372036854775808e', I64)
    with pytest.raises(NumberOutOfRangeError):
        from_slice(b'i128e', I8)
    with pytest.raises(NumberOutOfRangeError):
        from_slice(b'i-1e', U8)


def test_decode_integer_as_string_is_mismatch():
    with pytest.raises(TypeMismatchError):
        from_slice(b'i1e', str)
    with pytest.raises(TypeMismatchError):
        from_slice(b'4:spam', int)


def test_decode_strings():
    assert from_slice(b'4:spam', bytes) == b'spam'
    assert from_slice(b'4:spam', bytearray) == bytearray(b'spam')
    assert from_slice(b'6:' + 'héllo'.encode('utf-8'), str) == 'héllo'
    with pytest.raises(TypeMismatchError):
        from_slice(b'1:\xff', str)


def test_decode_memoryview_borrows_from_slice():
    data = bytearray(b'l4:spame')
    items = from_slice(data, List[memoryview])
    data[3] = ord('S')
    assert bytes(items[0]) == b'Spam'


def test_decode_memoryview_from_stream_is_owned():
    view = from_reader(io.BytesIO(b'4:spam'), memoryview)
    assert isinstance(view, memoryview)
    assert bytes(view) == b'spam'


def test_decode_raw():
    result = from_slice(b'd4:infod1:ai1ee1:xi2ee', Dict[str, Raw])
    assert result == {'info': b'd1:ai1ee', 'x': b'i2e'}


def test_decode_raw_from_stream():
    result = from_reader(io.BytesIO(b'd4:infod1:ali1eee1:xi2ee'), Dict[str, Raw], chunk_size=2)
    assert result == {'info': b'd1:ali1eee', 'x': b'i2e'}


# ---------- containers ----------

def test_decode_list_and_dict():
    assert from_slice(b'li1ei2ee', List[int]) == [1, 2]
    assert from_slice(b'd1:ai1e1:bi2ee', Dict[str, int]) == {'a': 1, 'b': 2}
    assert from_slice(b'd1:ai1ee', Dict[bytes, int]) == {b'a': 1}
    assert from_slice(b'li1ee', list) == [Value.integer(1)]


def test_decode_tuple():
    assert from_slice(b'li1e1:xe', Tuple[int, str]) == (1, 'x')
    assert from_slice(b'li1ei2ei3ee', Tuple[int, ...]) == (1, 2, 3)
    assert from_slice(b'li1ei2ee', Point) == Point(1, 2)


@pytest.mark.parametrize('data, actual', [(b'li1ee', 1), (b'li1ei2ei3ee', 3)])
def test_decode_tuple_wrong_arity(data, actual):
    with pytest.raises(InvalidLengthError) as excinfo:
        from_slice(data, Tuple[int, int])
    assert excinfo.value.expected == 2
    assert excinfo.value.actual == actual


def test_decode_optional_is_present():
    assert from_slice(b'i5e', Optional[int]) == 5


# ---------- structs ----------

def test_decode_struct_any_key_order():
    assert from_slice(b'd1:bi2e1:ai1ee', Dict[str, int]) == {'b': 2, 'a': 1}
    assert from_slice(b'd1:b2:hi1:ai5ee', Pair) == Pair(a=5, b=b'hi')


def test_decode_struct_missing_field():
    with pytest.raises(MissingFieldError) as excinfo:
        from_slice(b'd1:ai1ee', Pair)
    assert excinfo.value.field_name == 'b'


def test_decode_struct_renamed_and_defaults():
    peer = from_slice(b'd2:ip9:127.0.0.17:peer id3:abc4:porti6881ee', Peer)
    assert peer == Peer(ip='127.0.0.1', port=6881, peer_id=b'abc', seeding=False)
    peer = from_slice(b'd2:ip9:127.0.0.14:porti1e7:seedingi1ee', Peer)
    assert peer.peer_id is None
    assert peer.seeding is True


def test_decode_struct_skips_unknown_fields():
    assert from_slice(b'd1:ai1e1:b0:5:extrald1:xi1eeee', Pair) == Pair(a=1, b=b'')


def test_decode_struct_denies_unknown_fields():
    with pytest.raises(UnknownFieldError) as excinfo:
        from_slice(b'd1:ai1e1:zi0ee', Strict)
    assert excinfo.value.key == b'z'


def test_decode_recursive_struct():
    node = from_slice(b'd8:childrenld4:name1:bee4:name1:ae', Node)
    assert node == Node(name='a', children=[Node(name='b')])


def test_decode_struct_from_list_is_mismatch():
    with pytest.raises(TypeMismatchError):
        from_slice(b'le', Pair)


# ---------- enums ----------

def test_decode_enum():
    assert from_slice(b'3:RED', Color) is Color.RED
    with pytest.raises(TypeMismatchError):
        from_slice(b'4:BLUE', Color)


def test_decode_tagged_union():
    assert from_slice(b'd6:Circled6:radiusi3eee', Shape) == Circle(radius=3)
    assert from_slice(b'5:Empty', Shape) == Empty()
    assert from_slice(b'5:GREEN', Shape) is Color.GREEN


@pytest.mark.parametrize('data', [
    b'6:Circle',
    b'de',
    b'd5:Emptyi1ee',
    b'd6:Circled6:radiusi3ee1:xi1ee',
    b'4:Oval',
    b'i1e',
])
def test_decode_invalid_tagged_union(data):
    with pytest.raises(TypeMismatchError):
        from_slice(data, Shape)


def test_decode_unsupported_target():
    with pytest.raises(UnsupportedTypeError):
        from_slice(b'i1e', float)
    with pytest.raises(UnsupportedTypeError):
        from_slice(b'de', Dict[int, int])
    with pytest.raises(UnsupportedTypeError):
        from_slice(b'i1e', Union[int, str])


# ---------- adapters and entry points ----------

def test_deserializer_offsets():
    de = Deserializer.from_slice(b'i1e4:spam')
    assert de.deserialize(int) == 1
    assert de.byte_offset == 3
    with pytest.raises(TrailingDataError):
        de.end()
    assert de.deserialize(bytes) == b'spam'
    assert de.byte_offset == 9
    de.end()


def test_deserialize_with_raw():
    visitor = visitor_for(List[int])
    for de in (Deserializer.from_slice(b'li1ei2eei3e'),
               Deserializer.from_reader(io.BytesIO(b'li1ei2eei3e'), chunk_size=2)):
        assert de.deserialize_with_raw(visitor) == ([1, 2], b'li1ei2ee')
        assert de.deserialize(int) == 3
    value_de = ValueDeserializer(decode_value(b'li1ee'))
    assert value_de.deserialize_with_raw(visitor) == ([1], b'li1ee')


def test_stream_and_slice_agree():
    data = b'd4:listli1ei-2e3:abce3:numi7ee'
    for chunk_size in (1, 4, 8192):
        assert from_reader(io.BytesIO(data), Any, chunk_size=chunk_size) == from_slice(data)


def test_stream_stops_after_value():
    stream = io.BytesIO(b'i1ei2e')
    assert from_reader(stream, int, chunk_size=1) == 1


def test_decode_value_and_convert():
    value = decode_value(b'd1:ai1e1:b2:hie')
    assert from_value(value, Pair) == Pair(a=1, b=b'hi')
    assert from_value(value, Dict[str, Raw]) == {'a': b'i1e', 'b': b'2:hi'}
    assert from_value(value) is value
    with pytest.raises(TypeMismatchError):
        from_value(Value.integer(2), bool)


def test_bdecode_returns_plain_objects():
    assert bdecode(b'd3:cow3:moo4:spamli1ei2eee') == {b'cow': b'moo', b'spam': [1, 2]}
    assert bdecode('i-5e') == -5


def test_decode_from_str():
    assert from_slice('d3:cow3:mooe', Dict[str, str]) == {'cow': 'moo'}
    assert from_slice('6:h\xe9llo', str) == 'h\xe9llo'
    assert decode_prefix('i1ei2e', int) == (1, 3)
    de = Deserializer.from_slice('le')
    assert de.deserialize(list) == []
    de.end()
