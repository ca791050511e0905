"""
Grammar contract for the payload decoder cascade.

A grammar is a plain function ``(raw, context) -> GrammarResult``. It either
matches and yields a Record, or reports no match. Only a capability gap is
raised as an exception; everything else is a definite result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from models.record import Record
from .inflate import Inflater


@dataclass(frozen=True)
class DecodeContext:
    """Environment handed to every grammar."""
    inflater: Optional[Inflater] = None


@dataclass(frozen=True)
class GrammarResult:
    record: Optional[Record] = None
    reason: str = ""

    @property
    def matched(self) -> bool:
        return self.record is not None

    @classmethod
    def success(cls, record: Record) -> "GrammarResult":
        return cls(record=record)

    @classmethod
    def failure(cls, reason: str) -> "GrammarResult":
        return cls(record=None, reason=reason)


Grammar = Callable[[str, DecodeContext], GrammarResult]
