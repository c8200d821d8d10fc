import hashlib
import io
import os

import pytest

from bt_bencode import MetaInfo, MissingFieldError, TypeMismatchError, to_bytes
from bt_bencode.metainfo import FileInfo

PIECES = b'\x01' * 20 + b'\x02' * 20


def single_file_info():
    return {
        'length': 40000,
        'name': 'ubuntu.iso',
        'piece length': 32768,
        'pieces': PIECES,
    }


def multi_file_info():
    return {
        'files': [
            {'length': 3, 'path': ['docs', 'readme.txt']},
            {'length': 5, 'path': ['data.bin'], 'md5sum': 'abc'},
        ],
        'name': 'bundle',
        'piece length': 16384,
        'pieces': PIECES[:20],
        'private': 1,
    }


def test_single_file_torrent():
    info = single_file_info()
    data = to_bytes({
        'announce': 'http://tracker.example/announce',
        'announce-list': [['http://tracker.example/announce'], ['udp://backup.example:80']],
        'comment': 'test torrent',
        'created by': 'bt_bencode',
        'creation date': 1700000000,
        'info': info,
    })
    metainfo = MetaInfo.from_bytes(data)

    assert metainfo.announce == 'http://tracker.example/announce'
    assert metainfo.announce_list == [['http://tracker.example/announce'], ['udp://backup.example:80']]
    assert metainfo.creation_date == 1700000000
    assert metainfo.created_by == 'bt_bencode'
    assert metainfo.encoding is None
    assert metainfo.info.name == 'ubuntu.iso'
    assert metainfo.info.piece_length == 32768
    assert metainfo.info.private is None
    assert metainfo.info_hash == hashlib.sha1(to_bytes(info)).digest()
    assert metainfo.pieces == [b'\x01' * 20, b'\x02' * 20]
    assert metainfo.total_length == 40000
    assert metainfo.file_list == ['ubuntu.iso']


def test_multi_file_torrent():
    metainfo = MetaInfo.from_bytes(to_bytes({'info': multi_file_info()}))

    assert metainfo.announce is None
    assert metainfo.info.private is True
    assert metainfo.info.files == [
        FileInfo(length=3, path=['docs', 'readme.txt']),
        FileInfo(length=5, path=['data.bin'], md5sum='abc'),
    ]
    assert metainfo.total_length == 8
    assert metainfo.file_list == [
        os.path.join('bundle', 'docs', 'readme.txt'),
        os.path.join('bundle', 'data.bin'),
    ]
    assert 'Files: 2' in str(metainfo)


def test_info_hash_uses_encoding_as_written():
    # Unsorted keys must be hashed exactly as they appear in the file.
    raw_info = b'd4:name1:x6:lengthi1e12:piece lengthi1e6:pieces20:' + b'\x00' * 20 + b'e'
    data = b'd4:info' + raw_info + b'e'
    metainfo = MetaInfo.from_bytes(data)
    assert metainfo.info_hash == hashlib.sha1(raw_info).digest()


def test_metainfo_round_trip():
    data = to_bytes({'announce': 'http://t/a', 'info': multi_file_info()})
    metainfo = MetaInfo.from_bytes(data)
    assert to_bytes(metainfo) == data


def test_canonical_metainfo_round_trip():
    data = b'd8:announce3:url4:infod6:lengthi1e4:name1:a12:piece lengthi1e6:pieces0:ee'
    assert to_bytes(MetaInfo.from_bytes(data)) == data


def test_from_reader():
    raw_info = b'd4:name1:x6:lengthi1e12:piece lengthi1e6:pieces20:' + b'\x00' * 20 + b'e'
    data = b'd7:comment2:hi4:info' + raw_info + b'e'
    metainfo = MetaInfo.from_reader(io.BytesIO(data))
    assert metainfo.comment == 'hi'
    assert metainfo.info_hash == hashlib.sha1(raw_info).digest()
    assert metainfo == MetaInfo.from_bytes(data)


def test_missing_info():
    with pytest.raises(MissingFieldError):
        MetaInfo.from_bytes(b'd8:announce3:urle')


def test_invalid_pieces_length():
    info = single_file_info()
    info['pieces'] = b'\x00' * 19
    with pytest.raises(TypeMismatchError):
        MetaInfo.from_bytes(to_bytes({'info': info}))


def test_info_without_length_or_files():
    info = single_file_info()
    del info['length']
    with pytest.raises(TypeMismatchError):
        MetaInfo.from_bytes(to_bytes({'info': info}))


def test_from_file(tmp_path):
    path = tmp_path / 'test.torrent'
    path.write_bytes(to_bytes({'info': single_file_info()}))
    metainfo = MetaInfo.from_file(str(path))
    assert metainfo.info.name == 'ubuntu.iso'


def test_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        MetaInfo.from_file(str(tmp_path / 'missing.torrent'))
