"""
Dynamic representation of any bencode document.

A ``Value`` is useful when it is unknown what the data may contain (e.g. when
different kinds of messages can be received in a network packet).
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .grammar import Kind
from .number import Number

Index = Union[int, bytes, str]


def _key_bytes(key: Union[bytes, str]) -> bytes:
    if isinstance(key, str):
        return key.encode('utf-8')
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    raise TypeError(f"dictionary keys must be bytes or str, got {type(key).__name__}")


class Value:
    """A bencode value: an integer, a byte string, a list or a dictionary.

    The payload depends on ``kind``:

    * ``Kind.INTEGER``: a ``Number``
    * ``Kind.BYTE_STRING``: ``bytes``
    * ``Kind.LIST``: a list of ``Value``
    * ``Kind.DICT``: a dict from ``bytes`` keys to ``Value``, in decoded order

    A value owns its children; decoding always copies out of the input.
    """

    __slots__ = ('kind', 'data')

    def __init__(self, kind: Kind, data: Any):
        self.kind = kind
        self.data = data

    # ---------- constructors ----------

    @classmethod
    def integer(cls, n: Union[int, Number]) -> 'Value':
        return cls(Kind.INTEGER, n if isinstance(n, Number) else Number(n))

    @classmethod
    def byte_string(cls, data: Union[bytes, str]) -> 'Value':
        if isinstance(data, str):
            data = data.encode('utf-8')
        return cls(Kind.BYTE_STRING, bytes(data))

    @classmethod
    def list(cls, items: Iterable['Value'] = ()) -> 'Value':
        return cls(Kind.LIST, list(items))

    @classmethod
    def dict(cls, entries: Optional[Mapping[Union[bytes, str], 'Value']] = None) -> 'Value':
        return cls(Kind.DICT, {_key_bytes(k): v for k, v in (entries or {}).items()})

    @classmethod
    def from_python(cls, obj: Any) -> 'Value':
        """Build a value from nested ``int``, ``bytes``, ``str``, ``list`` and ``dict`` data."""
        if isinstance(obj, Value):
            return obj
        if isinstance(obj, bool):
            return cls.integer(int(obj))
        if isinstance(obj, (int, Number)):
            return cls.integer(obj)
        if isinstance(obj, (bytes, bytearray, memoryview, str)):
            return cls.byte_string(obj)
        if isinstance(obj, (list, tuple)):
            return cls.list(cls.from_python(item) for item in obj)
        if isinstance(obj, Mapping):
            return cls(Kind.DICT, {_key_bytes(k): cls.from_python(v) for k, v in obj.items()})
        raise TypeError(f"Cannot convert object of type {type(obj).__name__} to a bencode value")

    def to_python(self) -> Any:
        """Return the value as plain ``int``, ``bytes``, ``list`` and ``dict`` objects."""
        if self.kind is Kind.INTEGER:
            return int(self.data)
        if self.kind is Kind.BYTE_STRING:
            return self.data
        if self.kind is Kind.LIST:
            return [item.to_python() for item in self.data]
        return {k: v.to_python() for k, v in self.data.items()}

    # ---------- accessors ----------

    def as_integer(self) -> Optional[Number]:
        return self.data if self.kind is Kind.INTEGER else None

    def as_int(self) -> Optional[int]:
        return int(self.data) if self.kind is Kind.INTEGER else None

    def as_i64(self) -> Optional[int]:
        """The integer if it fits a signed 64-bit range."""
        if self.kind is Kind.INTEGER:
            return self.data.try_narrow(64, True)
        return None

    def as_u64(self) -> Optional[int]:
        """The integer if it fits an unsigned 64-bit range."""
        if self.kind is Kind.INTEGER:
            return self.data.try_narrow(64, False)
        return None

    def as_byte_string(self) -> Optional[bytes]:
        return self.data if self.kind is Kind.BYTE_STRING else None

    def as_str(self) -> Optional[str]:
        """The byte string decoded as UTF-8, or None if it is not valid UTF-8."""
        if self.kind is not Kind.BYTE_STRING:
            return None
        try:
            return self.data.decode('utf-8')
        except UnicodeDecodeError:
            return None

    def as_list(self) -> Optional[List['Value']]:
        return self.data if self.kind is Kind.LIST else None

    def as_dict(self) -> Optional[Dict[bytes, 'Value']]:
        return self.data if self.kind is Kind.DICT else None

    def is_integer(self) -> bool:
        return self.kind is Kind.INTEGER

    def is_byte_string(self) -> bool:
        return self.kind is Kind.BYTE_STRING

    def is_string(self) -> bool:
        """True if the value is a byte string holding valid UTF-8."""
        return self.as_str() is not None

    def is_list(self) -> bool:
        return self.kind is Kind.LIST

    def is_dict(self) -> bool:
        return self.kind is Kind.DICT

    # ---------- indexing ----------

    def get(self, index: Index) -> Optional['Value']:
        """Look up a dictionary key or list position.

        Returns None when the key is absent, the position is out of range or
        the index does not apply to this kind of value.
        """
        if self.kind is Kind.DICT and isinstance(index, (bytes, str)):
            return self.data.get(_key_bytes(index))
        if self.kind is Kind.LIST and isinstance(index, int) and not isinstance(index, bool):
            if 0 <= index < len(self.data):
                return self.data[index]
        return None

    def __getitem__(self, index: Index) -> 'Value':
        if self.kind is Kind.DICT:
            if not isinstance(index, (bytes, str)):
                raise TypeError(f"dictionary keys are bytes or str, not {type(index).__name__}")
            return self.data[_key_bytes(index)]
        if self.kind is Kind.LIST:
            return self.data[index]
        raise TypeError(f"{self.kind.value} value is not indexable")

    def __contains__(self, key) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        if self.kind in (Kind.LIST, Kind.DICT, Kind.BYTE_STRING):
            return len(self.data)
        raise TypeError(f"{self.kind.value} value has no len()")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.kind is other.kind and self.data == other.data

    __hash__ = None

    def __repr__(self) -> str:
        return f"Value.{self.kind.name}({self.data!r})"
