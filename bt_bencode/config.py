"""
Configuration settings for the bencode codec.
Reads BENCODE_* settings from the environment, then from a .env file, with
fallback to defaults. The .env file is read without being loaded into
os.environ, and no logging handler is installed.
"""
import os
import logging
from dotenv import dotenv_values, find_dotenv

# Values from .env; variables already set in the environment take precedence
_dotenv = dotenv_values(find_dotenv(usecwd=True))

LOG_LEVELS = ('CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG')


def _getenv(name, default=None):
    value = os.getenv(name)
    if value is None:
        value = _dotenv.get(name)
    return default if value is None else value


# ===== Decoding =====
READ_CHUNK_SIZE = int(_getenv('BENCODE_READ_CHUNK_SIZE', '8192'))  # bytes
MAX_DEPTH = int(_getenv('BENCODE_MAX_DEPTH', '0'))  # 0 = unlimited

# ===== Encoding =====
SORT_KEYS = _getenv('BENCODE_SORT_KEYS', 'False').lower() in ('true', '1', 't')

# ===== Logging =====
DEBUG = _getenv('BENCODE_DEBUG', 'False').lower() in ('true', '1', 't')
LOG_LEVEL = _getenv('BENCODE_LOG_LEVEL', 'DEBUG' if DEBUG else None)  # None = leave the logger alone

if READ_CHUNK_SIZE <= 0:
    raise ValueError(f"BENCODE_READ_CHUNK_SIZE must be positive, got {READ_CHUNK_SIZE}")
if MAX_DEPTH < 0:
    raise ValueError(f"BENCODE_MAX_DEPTH must not be negative, got {MAX_DEPTH}")
if LOG_LEVEL is not None:
    LOG_LEVEL = LOG_LEVEL.upper()
    if LOG_LEVEL not in LOG_LEVELS:
        raise ValueError(f"BENCODE_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {LOG_LEVEL!r}")
    logging.getLogger('bt_bencode').setLevel(LOG_LEVEL)


def resolve_max_depth(max_depth=None):
    """Return the nesting limit for a call, or None when unlimited."""
    if max_depth is None:
        max_depth = MAX_DEPTH
    return max_depth or None


def resolve_sort_keys(sort_keys=None) -> bool:
    return SORT_KEYS if sort_keys is None else sort_keys


# ===== Print Configuration (for debugging) =====
if DEBUG:
    logging.getLogger(__name__).debug(
        f"Configuration: read_chunk_size={READ_CHUNK_SIZE} "
        f"max_depth={MAX_DEPTH or 'unlimited'} sort_keys={SORT_KEYS} log_level={LOG_LEVEL}"
    )
