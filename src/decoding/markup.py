"""
Structured-markup grammar (XML identity payloads).

Recognized root elements:
- PrintLetterBarcodeData: printed-letter QR, one element with flat attributes.
- QPDB: compact printed-letter QR with single-letter attributes.
- OfflinePaperlessKyc: offline e-KYC document with Poi/Poa child elements.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Callable, Dict, Optional

from models.record import Record, clean_text, join_address
from .base import DecodeContext, GrammarResult

SOURCE = "markup"

# Attribute names in the order they build the address line
_LETTER_ADDRESS_ATTRS = ("co", "house", "street", "lm", "loc", "vtc", "subdist", "dist", "state", "pc", "po")
_POA_ADDRESS_ATTRS = ("careof", "house", "street", "landmark", "loc", "vtc", "subdist", "dist", "state", "pc", "po")


def _strip_local(tag: str) -> str:
    """Drop any ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _find_child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element.iter():
        if _strip_local(child.tag) == name:
            return child
    return None


def _print_letter(root: ET.Element) -> Dict[str, str]:
    attrs = root.attrib
    return {
        "uid": attrs.get("uid", ""),
        "username": attrs.get("name", ""),
        "gender": attrs.get("gender", ""),
        "dob": attrs.get("dob") or attrs.get("yob", ""),
        "address": join_address(attrs.get(a, "") for a in _LETTER_ADDRESS_ATTRS),
    }


def _qpdb(root: ET.Element) -> Dict[str, str]:
    attrs = root.attrib
    return {
        "uid": attrs.get("u", ""),
        "username": attrs.get("n", ""),
        "gender": attrs.get("g", ""),
        "dob": attrs.get("d", ""),
        "address": join_address([attrs.get("a", "")]),
    }


def _paperless_kyc(root: ET.Element) -> Dict[str, str]:
    poi = _find_child(root, "Poi")
    poa = _find_child(root, "Poa")
    poi_attrs = poi.attrib if poi is not None else {}
    poa_attrs = poa.attrib if poa is not None else {}
    return {
        "uid": root.attrib.get("referenceId", ""),
        "username": poi_attrs.get("name", ""),
        "gender": poi_attrs.get("gender", ""),
        "dob": poi_attrs.get("dob", ""),
        "address": join_address(poa_attrs.get(a, "") for a in _POA_ADDRESS_ATTRS),
    }


ROOT_EXTRACTORS: Dict[str, Callable[[ET.Element], Dict[str, str]]] = {
    "PrintLetterBarcodeData": _print_letter,
    "QPDB": _qpdb,
    "OfflinePaperlessKyc": _paperless_kyc,
}


def parse_markup(raw: str, context: DecodeContext) -> GrammarResult:
    start = raw.find("<")
    if start < 0:
        return GrammarResult.failure("no markup delimiter")

    try:
        root = ET.fromstring(raw[start:])
    except ET.ParseError as e:
        return GrammarResult.failure(f"malformed markup: {e}")

    extractor = ROOT_EXTRACTORS.get(_strip_local(root.tag))
    if extractor is None:
        return GrammarResult.failure(f"unknown root element {clean_text(root.tag)!r}")

    return GrammarResult.success(Record.from_fields(extractor(root), source=SOURCE))
