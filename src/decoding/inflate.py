"""
Deflate decompression for secure-format payloads.

zlib is an optional CPython build component, so its presence is probed
rather than assumed. ``load_inflater()`` returns None when it is missing.
"""

from __future__ import annotations

import importlib
import logging
from typing import Callable, Optional

GZIP_MAGIC = b"\x1f\x8b"

# wbits values understood by zlib.decompressobj
RAW_DEFLATE_WBITS = -15
GZIP_WBITS = 31

Inflater = Callable[[bytes], bytes]


class InflateError(ValueError):
    """The byte sequence is not a valid deflate stream."""


def load_inflater() -> Optional[Inflater]:
    """Return an inflate function backed by zlib, or None if zlib is unavailable."""
    try:
        zlib = importlib.import_module("zlib")
    except ImportError:
        logging.warning("zlib is not available; secure-format payloads cannot be decoded")
        return None

    def inflate(data: bytes) -> bytes:
        wbits = GZIP_WBITS if data[:2] == GZIP_MAGIC else RAW_DEFLATE_WBITS
        try:
            decompressor = zlib.decompressobj(wbits)
            return decompressor.decompress(data) + decompressor.flush()
        except zlib.error as e:
            raise InflateError(str(e)) from e

    return inflate
