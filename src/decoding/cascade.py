"""
Payload decoder cascade.

Grammars are tried in a fixed priority order and the first match wins;
later grammars are never consulted once one succeeds.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from models.record import Record
from .base import DecodeContext, Grammar, GrammarResult
from .inflate import Inflater, load_inflater
from .markup import parse_markup
from .secure_qr import parse_secure_qr
from .structured import parse_delimited, parse_json, parse_key_value

DEFAULT_GRAMMARS: Tuple[Tuple[str, Grammar], ...] = (
    ("markup", parse_markup),
    ("secure_qr", parse_secure_qr),
    ("json", parse_json),
    ("key_value", parse_key_value),
    ("delimited", parse_delimited),
)


class PayloadDecoder:
    """
    Classifies and parses a raw scanned string into a Record.

    Example:
        decoder = PayloadDecoder(inflater=load_inflater())
        record = decoder.decode("name=Jane Doe; email=jane@x.com")
    """

    def __init__(
        self,
        inflater: Optional[Inflater] = None,
        grammars: Sequence[Tuple[str, Grammar]] = DEFAULT_GRAMMARS,
    ):
        self.context = DecodeContext(inflater=inflater)
        self.grammars: List[Tuple[str, Grammar]] = list(grammars)

    @classmethod
    def with_default_inflater(cls) -> "PayloadDecoder":
        return cls(inflater=load_inflater())

    @property
    def inflate_available(self) -> bool:
        return self.context.inflater is not None

    def decode(self, raw: str) -> Optional[Record]:
        """
        Run the cascade.

        Returns None when no grammar matches. Raises DecodeCapabilityMissing
        when a secure-format payload arrives without decompression support.
        """
        if raw is None:
            return None
        for name, grammar in self.grammars:
            result: GrammarResult = grammar(raw, self.context)
            if result.matched:
                logging.debug(f"Payload matched grammar '{name}'")
                return result.record
            logging.debug(f"Grammar '{name}' rejected payload: {result.reason}")
        return None
