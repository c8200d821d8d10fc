"""
Bencode encoding and decoding.

Bencode is the encoding used by BitTorrent for .torrent files and tracker and
DHT messages. Values are decoded either into a dynamic ``Value`` or straight
into Python types described by a type hint:

    >>> from_slice(b"d3:cow3:mooe", Dict[str, str])
    {'cow': 'moo'}
    >>> to_bytes({'cow': 'moo'})
    b'd3:cow3:mooe'
"""
from .de import (
    Deserializer,
    ValueDeserializer,
    bdecode,
    decode_prefix,
    decode_value,
    from_reader,
    from_slice,
    from_value,
)
from .error import (
    BencodeError,
    BencodeIOError,
    BencodeSyntaxError,
    InvalidByteStringLengthError,
    InvalidIntegerError,
    InvalidLengthError,
    KeyMustBeByteStringError,
    MissingFieldError,
    NestingTooDeepError,
    NumberOutOfRangeError,
    TrailingDataError,
    TypeMismatchError,
    UnexpectedEofError,
    UnknownFieldError,
    UnsupportedTypeError,
)
from .grammar import Kind
from .metainfo import FileInfo, MetaInfo, TorrentInfo
from .number import I8, I16, I32, I64, U8, U16, U32, U64, Number
from .read import IoRead, SliceRead
from .ser import Serializer, ValueBuilder, bencode, encode_value, to_bytes, to_value, to_writer
from .typed import Raw, WithRawVisitor, visitor_for
from .value import Value
from .write import BufferWrite, IoWrite

__version__ = '0.4.0'
