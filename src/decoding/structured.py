"""
Generic structured-text grammars.

Used by deployments that encode contact details rather than a government
identity payload:
- JSON object with aliased keys
- key=value / key:value pairs
- fixed-position delimited fields
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from models.record import Record, clean_text
from .base import DecodeContext, GrammarResult

FIELD_ALIASES: Dict[str, tuple] = {
    "username": ("username", "user", "name", "fullname", "full_name"),
    "dob": ("dob", "dateofbirth", "date_of_birth", "birth", "birthdate"),
    "age": ("age",),
    "gender": ("gender", "sex"),
    "mobile": ("mobile", "phone", "phone_number", "tel", "contact"),
    "email": ("email", "mail", "e-mail"),
    "uid": ("uid", "id", "aadhaar", "reference_id"),
    "address": ("address", "addr"),
}

ALIAS_TO_FIELD: Dict[str, str] = {
    alias: field_name for field_name, aliases in FIELD_ALIASES.items() for alias in aliases
}

PAIR_SEPARATORS_RE = re.compile(r"[;\n|,]")
KEY_VALUE_RE = re.compile(r"^\s*([^=:]+?)\s*[=:]\s*(.*)$", re.DOTALL)

# Delimiters in priority order; the first one present in the payload wins.
DELIMITERS = ("|", ",", ";")
DELIMITED_FIELDS = ("username", "dob", "age", "gender", "mobile", "email")


def _map_aliases(pairs: Dict[str, Any]) -> Dict[str, str]:
    """Map aliased keys onto record fields. First non-empty value per field wins."""
    mapped: Dict[str, str] = {}
    for key, value in pairs.items():
        field_name = ALIAS_TO_FIELD.get(clean_text(key).lower())
        if field_name is None or isinstance(value, (dict, list)):
            continue
        text = clean_text(value)
        if text and not mapped.get(field_name):
            mapped[field_name] = text
    return mapped


def parse_json(raw: str, context: DecodeContext) -> GrammarResult:
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        return GrammarResult.failure("not valid JSON")

    if not isinstance(data, dict):
        return GrammarResult.failure("JSON payload is not an object")

    mapped = _map_aliases(data)
    if not mapped:
        return GrammarResult.failure("no recognized JSON keys")
    return GrammarResult.success(Record.from_fields(mapped, source="json"))


def parse_key_value(raw: str, context: DecodeContext) -> GrammarResult:
    if "=" not in raw and ":" not in raw:
        return GrammarResult.failure("no key/value separator")

    pairs: Dict[str, str] = {}
    for chunk in PAIR_SEPARATORS_RE.split(raw):
        match = KEY_VALUE_RE.match(chunk)
        if match is None:
            continue
        key = match.group(1).lower()
        pairs.setdefault(key, match.group(2))

    mapped = _map_aliases(pairs)
    if not mapped:
        return GrammarResult.failure("no recognized keys")
    return GrammarResult.success(Record.from_fields(mapped, source="key_value"))


def _pick_delimiter(raw: str) -> Optional[str]:
    for delimiter in DELIMITERS:
        if delimiter in raw:
            return delimiter
    return None


def parse_delimited(raw: str, context: DecodeContext) -> GrammarResult:
    # No escaping: a field containing the delimiter shifts every later field.
    delimiter = _pick_delimiter(raw)
    if delimiter is None:
        return GrammarResult.failure("no field delimiter")

    parts: List[str] = [clean_text(p) for p in raw.split(delimiter)]
    parts = [p for p in parts if p]
    if len(parts) < len(DELIMITED_FIELDS):
        return GrammarResult.failure(f"fewer than {len(DELIMITED_FIELDS)} delimited fields")

    mapped = dict(zip(DELIMITED_FIELDS, parts))
    return GrammarResult.success(Record.from_fields(mapped, source="delimited"))
