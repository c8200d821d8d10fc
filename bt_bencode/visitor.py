"""
Format-agnostic visitor protocol.

Decoding: a ``Visitor`` describes how to build one target value. It picks the
entry point it wants on a deserializer (``deserialize``), and the deserializer
calls back with the primitive it found: an integer, a byte string, a list
(through ``SeqAccess``) or a dictionary (through ``MapAccess``).

Encoding: an ``Emitter`` receives the same vocabulary of primitive events in
the order a value presents them.

Nothing here knows about the bencode wire format, so the typed visitors can
be driven by the byte-level deserializer as well as by a ``Value`` tree.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from .error import TypeMismatchError


class _End:
    """Marks the end of a list or dictionary."""

    def __repr__(self) -> str:
        return 'END'

    def __bool__(self) -> bool:
        return False


END = _End()


class Visitor:
    """Builds a target value from primitive events.

    Subclasses override the ``visit_*`` methods for the shapes they accept.
    The defaults reject the shape with a ``TypeMismatchError``; the
    deserializer fills in the byte offset.
    """

    # Human readable description of what the visitor accepts.
    expecting = 'any value'
    # True when the visitor can keep a view into the input instead of a copy.
    accepts_borrowed = False

    def deserialize(self, de) -> Any:
        """Ask ``de`` for the next value using the most fitting entry point."""
        return de.deserialize_any(self)

    def invalid_type(self, found: str) -> TypeMismatchError:
        return TypeMismatchError(f"invalid type: {found}, expected {self.expecting}")

    def visit_integer(self, number) -> Any:
        raise self.invalid_type(f"integer {number}")

    def visit_byte_string(self, data, borrowed: bool) -> Any:
        raise self.invalid_type('byte string')

    def visit_list(self, seq: 'SeqAccess') -> Any:
        raise self.invalid_type('list')

    def visit_dict(self, dct: 'MapAccess') -> Any:
        raise self.invalid_type('dictionary')


class SeqAccess(ABC):
    """Hands out the elements of a list one at a time."""

    @abstractmethod
    def next_element(self, visitor: Visitor) -> Any:
        """Decode the next element with ``visitor``, or return ``END``."""

    def size_hint(self) -> Optional[int]:
        return None


class MapAccess(ABC):
    """Hands out the entries of a dictionary one at a time.

    Keys are always byte strings; they are passed to the key visitor through
    ``visit_byte_string``.
    """

    @abstractmethod
    def next_key(self, visitor: Visitor) -> Any:
        """Decode the next key with ``visitor``, or return ``END``."""

    @abstractmethod
    def next_value(self, visitor: Visitor) -> Any:
        """Decode the value belonging to the last key."""

    @abstractmethod
    def skip_value(self) -> None:
        """Discard the value belonging to the last key."""

    def size_hint(self) -> Optional[int]:
        return None


class Emitter(ABC):
    """Receives primitive events while a value is encoded."""

    @abstractmethod
    def emit_integer(self, n: int) -> None:
        pass

    @abstractmethod
    def emit_byte_string(self, data) -> None:
        pass

    @abstractmethod
    def begin_list(self, length: Optional[int] = None) -> None:
        pass

    @abstractmethod
    def end_list(self) -> None:
        pass

    @abstractmethod
    def begin_dict(self, length: Optional[int] = None) -> None:
        pass

    @abstractmethod
    def emit_key(self, key: bytes) -> None:
        pass

    @abstractmethod
    def end_dict(self) -> None:
        pass
