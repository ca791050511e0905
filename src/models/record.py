"""
Record model for decoded identity/contact payloads.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

# Attribute fields every record carries, in display order.
RECORD_FIELDS = (
    "uid",
    "username",
    "dob",
    "age",
    "gender",
    "mobile",
    "email",
    "address",
)

ADDRESS_SEPARATOR = ", "

_WHITESPACE_RE = re.compile(r"\s+")

_GENDER_PREFIXES = (
    ("m", "Male"),
    ("f", "Female"),
    ("t", "Transgender"),
)


def clean_text(value: Any) -> str:
    """Collapse whitespace runs to single spaces and trim. None becomes ''."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def normalize_gender(value: Any) -> str:
    """
    Map a gender marker onto a canonical label.

    Case-insensitive prefix match: m* -> Male, f* -> Female, t* -> Transgender.
    Anything else passes through cleaned.
    """
    cleaned = clean_text(value)
    lowered = cleaned.lower()
    for prefix, label in _GENDER_PREFIXES:
        if lowered.startswith(prefix):
            return label
    return cleaned


def join_address(parts: Iterable[Any]) -> str:
    """Clean each locality part, drop empties and join with a uniform separator."""
    cleaned = (clean_text(p) for p in parts)
    return ADDRESS_SEPARATOR.join(p for p in cleaned if p)


@dataclass
class Record:
    """
    A decoded identity/contact record.

    Attributes:
        uid: Unique identity number or reference id.
        username: Person name.
        dob: Date (or year) of birth, as printed in the payload.
        age: Age, when the payload carries it.
        gender: Normalized gender label.
        mobile: Mobile/phone number.
        email: E-mail address.
        address: Assembled address line.
        source: Name of the grammar that produced the record.
        last_seen: Unix timestamp of the most recent scan.
    """
    uid: str = ""
    username: str = ""
    dob: str = ""
    age: str = ""
    gender: str = ""
    mobile: str = ""
    email: str = ""
    address: str = ""
    source: str = ""
    last_seen: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        for name in RECORD_FIELDS:
            setattr(self, name, clean_text(getattr(self, name)))
        self.gender = normalize_gender(self.gender)
        self.source = clean_text(self.source)

    @classmethod
    def from_fields(cls, values: Dict[str, Any], source: str, last_seen: Optional[float] = None) -> "Record":
        """Build a record from a partial field mapping; unknown keys are ignored."""
        kwargs = {name: values.get(name, "") for name in RECORD_FIELDS}
        if last_seen is None:
            last_seen = time.time()
        return cls(source=source, last_seen=last_seen, **kwargs)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Record":
        """Adapter: create from a snapshot dictionary."""
        last_seen = d.get("last_seen")
        try:
            last_seen = float(last_seen) if last_seen is not None else 0.0
        except (TypeError, ValueError):
            last_seen = 0.0
        return cls.from_fields(d, source=d.get("source", ""), last_seen=last_seen)

    def field_values(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in RECORD_FIELDS}

    def is_blank(self) -> bool:
        return not any(self.field_values().values())

    def merged_with(self, incoming: "Record", now: float) -> "Record":
        """
        Merge an incoming record over this one.

        Incoming values win unless they are empty; an empty value never
        overwrites a known one. The result is stamped with ``now``.
        """
        merged = {}
        for name in RECORD_FIELDS:
            new_value = getattr(incoming, name)
            merged[name] = new_value if new_value else getattr(self, name)
        source = incoming.source or self.source
        return Record.from_fields(merged, source=source, last_seen=now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d: Dict[str, Any] = self.field_values()
        d["source"] = self.source
        d["last_seen"] = self.last_seen
        return d

