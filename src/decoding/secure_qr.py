"""
Secure-format grammar.

The payload is a long decimal number. Its big-endian bytes are a deflate
stream; the inflated bytes hold 0xFF-delimited Latin-1 text fields:

    0  format indicator      8  house
    1  reference id          9  location
    2  name                 10  postal code
    3  date of birth        11  post office
    4  gender               12  state
    5  care of              13  street
    6  district             14  sub-district
    7  landmark             15  village/town/city

Anything after the sixteenth delimiter (photo, signature) is ignored.
"""

from __future__ import annotations

import re
from typing import List, Optional

from models.record import Record, clean_text, join_address
from scanner.errors import DecodeCapabilityMissing
from .base import DecodeContext, GrammarResult
from .inflate import InflateError

SOURCE = "secure_qr"

MIN_DIGITS = 50
FIELD_DELIMITER = 0xFF
FIELD_COUNT = 16

FIELD_NAMES = (
    "indicator",
    "reference_id",
    "name",
    "dob",
    "gender",
    "care_of",
    "district",
    "landmark",
    "house",
    "location",
    "postal_code",
    "post_office",
    "state",
    "street",
    "sub_district",
    "vtc",
)

ADDRESS_ORDER = (
    "care_of",
    "house",
    "street",
    "landmark",
    "location",
    "vtc",
    "sub_district",
    "district",
    "state",
    "postal_code",
    "post_office",
)

_WS_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"[0-9]+")


def is_secure_payload(raw: str) -> bool:
    """Whitespace-stripped, all decimal digits, at least MIN_DIGITS long."""
    digits = _WS_RE.sub("", raw)
    return len(digits) >= MIN_DIGITS and _DIGITS_RE.fullmatch(digits) is not None


# int(str) refuses very long digit strings (sys.int_info.default_max_str_digits),
# so parse in bounded chunks.
_DIGIT_CHUNK = 1000


def digits_to_int(digits: str) -> int:
    value = 0
    for start in range(0, len(digits), _DIGIT_CHUNK):
        chunk = digits[start:start + _DIGIT_CHUNK]
        value = value * 10 ** len(chunk) + int(chunk)
    return value


def int_to_bytes(value: int) -> bytes:
    """Minimal big-endian byte sequence for a non-negative integer; 0 -> b'\\x00'."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return b"\x00"
    out = bytearray()
    while value > 0:
        out.append(value & 0xFF)
        value >>= 8
    out.reverse()
    return bytes(out)


def bytes_to_int(data: bytes) -> int:
    value = 0
    for byte in data:
        value = (value << 8) | byte
    return value


def split_fields(data: bytes, count: int = FIELD_COUNT) -> Optional[List[str]]:
    """
    Split on 0xFF, stopping once ``count`` delimiters were seen.

    Returns None when fewer than ``count`` delimited fields are present.
    """
    fields: List[str] = []
    start = 0
    for index, byte in enumerate(data):
        if byte != FIELD_DELIMITER:
            continue
        fields.append(clean_text(data[start:index].decode("latin-1")))
        start = index + 1
        if len(fields) == count:
            return fields
    return None


def parse_secure_qr(raw: str, context: DecodeContext) -> GrammarResult:
    if not is_secure_payload(raw):
        return GrammarResult.failure("not a secure-format digit string")

    if context.inflater is None:
        raise DecodeCapabilityMissing(
            "Secure-format payload detected but decompression is not available in this runtime"
        )

    compressed = int_to_bytes(digits_to_int(_WS_RE.sub("", raw)))
    try:
        data = context.inflater(compressed)
    except InflateError as e:
        return GrammarResult.failure(f"inflate failed: {e}")

    values = split_fields(data)
    if values is None:
        return GrammarResult.failure("fewer than 16 delimited fields")

    parsed = dict(zip(FIELD_NAMES, values))
    if not parsed["indicator"] or not parsed["reference_id"]:
        return GrammarResult.failure("missing indicator or reference id")

    record = Record.from_fields(
        {
            "uid": parsed["reference_id"],
            "username": parsed["name"],
            "dob": parsed["dob"],
            "gender": parsed["gender"],
            "address": join_address(parsed[name] for name in ADDRESS_ORDER),
        },
        source=SOURCE,
    )
    return GrammarResult.success(record)
