import importlib
import io
import logging
import os

import pytest

from bt_bencode import NestingTooDeepError, config, encode_value, from_reader, from_slice, to_bytes

SETTINGS = (
    'BENCODE_READ_CHUNK_SIZE',
    'BENCODE_MAX_DEPTH',
    'BENCODE_SORT_KEYS',
    'BENCODE_DEBUG',
    'BENCODE_LOG_LEVEL',
    'DEBUG',
    'LOG_LEVEL',
)


@pytest.fixture
def reload_config(monkeypatch):
    for name in SETTINGS:
        monkeypatch.delenv(name, raising=False)
    logging.getLogger('bt_bencode').setLevel(logging.NOTSET)

    def reload(**settings):
        for name, value in settings.items():
            monkeypatch.setenv(name, value)
        return importlib.reload(config)

    yield reload
    # Restores the environment and working directory before reloading.
    monkeypatch.undo()
    importlib.reload(config)
    logging.getLogger('bt_bencode').setLevel(logging.NOTSET)


def test_defaults(reload_config):
    reload_config()
    assert config.READ_CHUNK_SIZE == 8192
    assert config.MAX_DEPTH == 0
    assert config.SORT_KEYS is False
    assert config.DEBUG is False
    assert config.LOG_LEVEL is None
    assert config.resolve_max_depth() is None
    assert config.resolve_max_depth(5) == 5
    assert config.resolve_sort_keys(True) is True


def test_max_depth_setting(reload_config):
    reload_config(BENCODE_MAX_DEPTH='2')
    assert from_slice(b'llee').is_list()
    with pytest.raises(NestingTooDeepError):
        from_slice(b'llleee')
    assert from_slice(b'llleee', max_depth=3).is_list()


def test_sort_keys_setting(reload_config):
    reload_config(BENCODE_SORT_KEYS='true')
    value = from_slice(b'd1:bi1e1:ai2ee')
    assert encode_value(value) == b'd1:ai2e1:bi1ee'
    assert encode_value(value, sort_keys=False) == b'd1:bi1e1:ai2ee'
    # Mappings are sorted either way.
    assert to_bytes({'b': 1, 'a': 2}, sort_keys=False) == b'd1:ai2e1:bi1ee'


def test_chunk_size_setting(reload_config):
    reload_config(BENCODE_READ_CHUNK_SIZE='1')
    assert from_reader(io.BytesIO(b'4:spam'), bytes) == b'spam'


def test_dotenv_file_is_read_without_touching_environment(reload_config, monkeypatch, tmp_path):
    (tmp_path / '.env').write_text('BENCODE_MAX_DEPTH=7\nDEBUG=1\n')
    monkeypatch.chdir(tmp_path)
    reload_config()
    assert config.MAX_DEPTH == 7
    assert 'BENCODE_MAX_DEPTH' not in os.environ
    assert 'DEBUG' not in os.environ


def test_environment_overrides_dotenv_file(reload_config, monkeypatch, tmp_path):
    (tmp_path / '.env').write_text('BENCODE_MAX_DEPTH=7\n')
    monkeypatch.chdir(tmp_path)
    reload_config(BENCODE_MAX_DEPTH='3')
    assert config.MAX_DEPTH == 3


def test_generic_logging_variables_are_ignored(reload_config):
    logger = logging.getLogger('bt_bencode')
    handlers = list(logger.handlers)
    reload_config(DEBUG='1', LOG_LEVEL='verbose')
    assert config.DEBUG is False
    assert config.LOG_LEVEL is None
    assert logger.level == logging.NOTSET
    assert logger.handlers == handlers


def test_debug_setting(reload_config):
    logger = logging.getLogger('bt_bencode')
    handlers = list(logger.handlers)
    reload_config(BENCODE_DEBUG='true')
    assert config.LOG_LEVEL == 'DEBUG'
    assert logger.level == logging.DEBUG
    assert logger.handlers == handlers


def test_log_level_setting(reload_config):
    reload_config(BENCODE_LOG_LEVEL='warning')
    assert config.LOG_LEVEL == 'WARNING'
    assert logging.getLogger('bt_bencode').level == logging.WARNING


@pytest.mark.parametrize('name, value', [
    ('BENCODE_READ_CHUNK_SIZE', '0'),
    ('BENCODE_MAX_DEPTH', '-1'),
    ('BENCODE_MAX_DEPTH', 'deep'),
    ('BENCODE_LOG_LEVEL', 'verbose'),
])
def test_invalid_settings(reload_config, name, value):
    with pytest.raises(ValueError):
        reload_config(**{name: value})
