"""
Payload decoding: turns a raw scanned string into a canonical Record.
"""

from .base import DecodeContext, GrammarResult
from .cascade import PayloadDecoder, DEFAULT_GRAMMARS
from .inflate import load_inflater

__all__ = [
    "DecodeContext",
    "GrammarResult",
    "PayloadDecoder",
    "DEFAULT_GRAMMARS",
    "load_inflater",
]
