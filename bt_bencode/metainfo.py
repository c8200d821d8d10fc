"""
Module for handling .torrent files and their metadata.
"""
import hashlib
import logging
import os
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from .de import from_reader, from_slice
from .error import TypeMismatchError
from .typed import StructVisitor, WithRawVisitor

logger = logging.getLogger(__name__)

PIECE_HASH_LENGTH = 20


@dataclass
class FileInfo:
    """Represents a file within a multi-file torrent."""
    length: int
    path: List[str]
    md5sum: Optional[str] = None

    @property
    def joined_path(self) -> str:
        return os.path.join(*self.path)


@dataclass
class TorrentInfo:
    """Represents the 'info' dictionary in a .torrent file."""
    name: str
    piece_length: int = field(metadata={'bencode': 'piece length'})
    pieces: bytes = field(repr=False)  # Concatenated 20-byte SHA-1 hashes
    private: Optional[bool] = None
    files: Optional[List[FileInfo]] = None  # For multi-file torrents
    length: Optional[int] = None  # For single-file torrents
    md5sum: Optional[str] = None  # For single-file torrents


@dataclass
class MetaInfo:
    """Represents a decoded .torrent file.

    ``info_hash`` is the SHA-1 digest of the ``info`` dictionary exactly as it
    appears in the file; it is filled in while decoding and never encoded.
    """
    info: TorrentInfo
    announce: Optional[str] = None
    announce_list: Optional[List[List[str]]] = field(default=None, metadata={'bencode': 'announce-list'})
    creation_date: Optional[int] = field(default=None, metadata={'bencode': 'creation date'})
    comment: Optional[str] = None
    created_by: Optional[str] = field(default=None, metadata={'bencode': 'created by'})
    encoding: Optional[str] = None
    info_hash: bytes = field(default=b'', init=False, repr=False, compare=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'MetaInfo':
        """
        Decode a .torrent file's contents.

        Args:
            data: Bencoded metainfo

        Returns:
            MetaInfo: The decoded metainfo with ``info_hash`` set

        Raises:
            BencodeError: if the data is not valid bencode or not valid metainfo
        """
        metainfo = from_slice(data, _MetaInfoVisitor(cls), allow_trailing=False)
        logger.debug(f"Decoded metainfo for {metainfo.info.name!r}, info hash {metainfo.info_hash.hex()}")
        return metainfo

    @classmethod
    def from_reader(cls, stream: BinaryIO) -> 'MetaInfo':
        """Decode metainfo from a binary stream, which must hold nothing else."""
        metainfo = from_reader(stream, _MetaInfoVisitor(cls), allow_trailing=False)
        logger.debug(f"Read metainfo for {metainfo.info.name!r}, info hash {metainfo.info_hash.hex()}")
        return metainfo

    @classmethod
    def from_file(cls, torrent_path: str) -> 'MetaInfo':
        """
        Load and parse a .torrent file.

        Args:
            torrent_path: Path to the .torrent file
        """
        torrent_path = os.path.abspath(torrent_path)
        if not os.path.exists(torrent_path):
            raise FileNotFoundError(f"Torrent file not found: {torrent_path}")

        with open(torrent_path, 'rb') as f:
            return cls.from_reader(f)

    def _validate(self) -> None:
        if len(self.info.pieces) % PIECE_HASH_LENGTH:
            raise TypeMismatchError(
                f"invalid value: pieces length {len(self.info.pieces)} "
                f"is not a multiple of {PIECE_HASH_LENGTH}"
            )
        if self.info.files is None and self.info.length is None:
            raise TypeMismatchError("invalid value: info needs either 'length' or 'files'")

    @property
    def pieces(self) -> List[bytes]:
        """The SHA-1 hash of every piece."""
        blob = self.info.pieces
        return [blob[i:i + PIECE_HASH_LENGTH] for i in range(0, len(blob), PIECE_HASH_LENGTH)]

    @property
    def total_length(self) -> int:
        """Get the total size of all files in the torrent in bytes."""
        if self.info.files:
            return sum(f.length for f in self.info.files)
        return self.info.length or 0

    @property
    def file_list(self) -> List[str]:
        """Get a list of all files in the torrent."""
        if self.info.files:
            return [os.path.join(self.info.name, f.joined_path) for f in self.info.files]
        return [self.info.name]

    def __str__(self) -> str:
        """String representation of the torrent."""
        return (f"Torrent: {self.info.name}\n"
                f"Size: {self.total_length / (1024*1024):.2f} MB\n"
                f"Files: {len(self.file_list)}\n"
                f"Pieces: {len(self.pieces)}")


class _MetaInfoVisitor(StructVisitor):
    """Decodes a ``MetaInfo`` and hashes the ``info`` dictionary on the way."""

    def field_visitor(self, field):
        if field.name == 'info':
            return WithRawVisitor(field.visitor)
        return field.visitor

    def build(self, values):
        values['info'], raw_info = values['info']
        metainfo = super().build(values)
        metainfo._validate()
        metainfo.info_hash = hashlib.sha1(raw_info).digest()
        return metainfo
