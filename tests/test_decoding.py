"""
Tests for the payload decoder cascade and its grammars.
"""

import zlib

import pytest

from decoding import DecodeContext, PayloadDecoder, load_inflater
from decoding.markup import parse_markup
from decoding.secure_qr import (
    bytes_to_int,
    digits_to_int,
    int_to_bytes,
    is_secure_payload,
    parse_secure_qr,
    split_fields,
)
from decoding.structured import parse_delimited, parse_json, parse_key_value
from scanner.errors import DecodeCapabilityMissing

SECURE_FIELDS = [
    "V2",            # indicator
    "123456789012",  # reference id
    "Jane  Doe",
    "01-01-1990",
    "F",
    "W/O John Doe",  # care of
    "Pune",          # district
    "Near Park",     # landmark
    "Flat 4",        # house
    "Kothrud",       # location
    "411038",        # postal code
    "Kothrud PO",    # post office
    "Maharashtra",   # state
    "MG Road",       # street
    "Haveli",        # sub-district
    "Pune City",     # village/town/city
]


def _secure_payload(fields=SECURE_FIELDS, trailer=b"\x89PNG-photo-bytes", gzip=False) -> str:
    body = b"".join(f.encode("latin-1") + b"\xff" for f in fields) + trailer
    compressor = zlib.compressobj(9, zlib.DEFLATED, 31 if gzip else -15)
    compressed = compressor.compress(body) + compressor.flush()
    return str(bytes_to_int(compressed))


@pytest.fixture
def context():
    return DecodeContext(inflater=load_inflater())


class TestMarkupGrammar:
    def test_print_letter_root(self, context):
        raw = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<PrintLetterBarcodeData uid="999988887777" name="A" gender="M" yob="1985" '
            'co="S/O B" house="12" street="" loc="Camp" vtc="Pune" dist="Pune" state="MH" pc="411001"/>'
        )

        result = parse_markup(raw, context)

        assert result.matched
        record = result.record
        assert record.uid == "999988887777"
        assert record.username == "A"
        assert record.gender == "Male"
        assert record.dob == "1985"
        assert record.address == "S/O B, 12, Camp, Pune, Pune, MH, 411001"
        assert record.source == "markup"

    def test_markup_slice_must_be_well_formed(self, context):
        result = parse_markup('junk</x> <QPDB u="1234" n="Ravi" g="male" d="02-02-1992" a="Main  Road"/>', context)

        # "</x>" starts the markup slice, which is not well formed
        assert not result.matched

    def test_qpdb_root(self, context):
        result = parse_markup('scan: <QPDB u="1234" n="Ravi" g="male" d="02-02-1992" a="Main  Road"/>', context)

        assert result.matched
        assert result.record.uid == "1234"
        assert result.record.address == "Main Road"

    def test_paperless_kyc_root(self, context):
        raw = (
            '<OfflinePaperlessKyc referenceId="5678">'
            '<UidData><Poi name="Asha" dob="03-03-1993" gender="F"/>'
            '<Poa careof="D/O K" house="7" vtc="Nashik" pc="422001" state="MH"/></UidData>'
            '</OfflinePaperlessKyc>'
        )

        result = parse_markup(raw, context)

        assert result.matched
        assert result.record.uid == "5678"
        assert result.record.gender == "Female"
        assert result.record.address == "D/O K, 7, Nashik, MH, 422001"

    def test_unknown_root_fails(self, context):
        result = parse_markup('<Contact name="A"/>', context)

        assert not result.matched
        assert "unknown root" in result.reason

    def test_malformed_markup_fails(self, context):
        assert not parse_markup("<PrintLetterBarcodeData name='A'", context).matched

    def test_no_delimiter_fails(self, context):
        assert not parse_markup("name=A", context).matched


class TestSecureQrHelpers:
    def test_int_to_bytes_zero(self):
        assert int_to_bytes(0) == b"\x00"

    def test_int_to_bytes_is_minimal_big_endian(self):
        assert int_to_bytes(0x01FF) == b"\x01\xff"
        assert bytes_to_int(b"\x01\xff") == 0x01FF

    @pytest.mark.parametrize("value", [0, 1, 255, 256, 2 ** 64 + 5, 10 ** 200])
    def test_int_bytes_round_trip(self, value):
        assert bytes_to_int(int_to_bytes(value)) == value

    def test_digits_to_int_handles_long_strings(self):
        # 777...7 with n digits is 7 * (10**n - 1) / 9
        assert digits_to_int("7" * 5000) == 7 * (10 ** 5000 - 1) // 9

    def test_is_secure_payload_ignores_whitespace(self):
        assert is_secure_payload("1234567890 " * 5)
        assert not is_secure_payload("1" * 49)
        assert not is_secure_payload("1" * 49 + "a")

    def test_split_fields_stops_after_sixteen(self):
        data = b"\xff".join([b"f"] * 16) + b"\xff" + b"\xffextra"

        fields = split_fields(data)

        assert fields == ["f"] * 16

    def test_split_fields_too_few(self):
        assert split_fields(b"a\xffb\xff") is None


class TestSecureQrGrammar:
    def test_decodes_raw_deflate_payload(self, context):
        result = parse_secure_qr(_secure_payload(), context)

        assert result.matched
        record = result.record
        assert record.uid == "123456789012"
        assert record.username == "Jane Doe"
        assert record.dob == "01-01-1990"
        assert record.gender == "Female"
        assert record.address == (
            "W/O John Doe, Flat 4, MG Road, Near Park, Kothrud, Pune City, "
            "Haveli, Pune, Maharashtra, 411038, Kothrud PO"
        )
        assert record.source == "secure_qr"

    def test_decodes_gzip_payload(self, context):
        result = parse_secure_qr(_secure_payload(gzip=True), context)

        assert result.matched
        assert result.record.uid == "123456789012"

    def test_empty_fields_are_dropped_from_address(self, context):
        fields = list(SECURE_FIELDS)
        fields[7] = ""   # landmark
        fields[13] = ""  # street

        result = parse_secure_qr(_secure_payload(fields), context)

        assert "Near Park" not in result.record.address
        assert ", ," not in result.record.address

    def test_missing_reference_id_fails(self, context):
        fields = list(SECURE_FIELDS)
        fields[1] = ""

        assert not parse_secure_qr(_secure_payload(fields), context).matched

    def test_short_digit_string_fails(self, context):
        assert not parse_secure_qr("1" * 40, context).matched

    def test_garbage_digits_do_not_match(self, context):
        result = parse_secure_qr("9" * 80, context)

        assert not result.matched

    def test_missing_inflater_raises(self):
        with pytest.raises(DecodeCapabilityMissing):
            parse_secure_qr(_secure_payload(), DecodeContext(inflater=None))


class TestStructuredGrammars:
    def test_json_aliases(self, context):
        raw = '{"fullName": "Jane Doe", "dateOfBirth": "1990-01-01", "Phone": "999 000 1111", "sex": "f"}'

        result = parse_json(raw, context)

        assert result.matched
        assert result.record.username == "Jane Doe"
        assert result.record.dob == "1990-01-01"
        assert result.record.mobile == "999 000 1111"
        assert result.record.gender == "Female"

    def test_json_without_known_keys_fails(self, context):
        assert not parse_json('{"colour": "blue"}', context).matched

    def test_json_non_object_fails(self, context):
        assert not parse_json("[1, 2, 3]", context).matched

    def test_deeply_nested_json_fails(self, context):
        assert not parse_json("[" * 2900, context).matched

    def test_key_value_pairs(self, context):
        result = parse_key_value("name=Jane Doe; dob=1990-01-01; email=jane@x.com", context)

        assert result.matched
        record = result.record
        assert record.username == "Jane Doe"
        assert record.dob == "1990-01-01"
        assert record.email == "jane@x.com"
        assert record.mobile == ""
        assert record.source == "key_value"

    def test_key_value_colon_and_newlines(self, context):
        result = parse_key_value("NAME: Ravi\nPhone: 9990001111", context)

        assert result.record.username == "Ravi"
        assert result.record.mobile == "9990001111"

    def test_key_value_without_separator_fails(self, context):
        assert not parse_key_value("just some text", context).matched

    def test_delimited_fields(self, context):
        result = parse_delimited("Jane|1990-01-01|34|F|9990001111|jane@x.com", context)

        assert result.matched
        record = result.record
        assert record.username == "Jane"
        assert record.age == "34"
        assert record.gender == "Female"
        assert record.mobile == "9990001111"
        assert record.email == "jane@x.com"

    def test_delimiter_priority(self, context):
        # "|" wins over "," even though "," appears first
        result = parse_delimited("Doe, Jane|1990|34|F|999|j@x.com", context)

        assert result.record.username == "Doe, Jane"

    def test_delimited_needs_six_fields(self, context):
        assert not parse_delimited("Jane|1990|34|F|999", context).matched

    def test_delimited_skips_empty_fields(self, context):
        result = parse_delimited("Jane||1990-01-01|34|F|9990001111|jane@x.com", context)

        record = result.record
        assert record.dob == "1990-01-01"
        assert record.age == "34"
        assert record.mobile == "9990001111"
        assert record.email == "jane@x.com"

    def test_delimited_empty_fields_do_not_count(self, context):
        assert not parse_delimited("Jane||1990|34||F|999", context).matched


class TestPayloadDecoder:
    @pytest.fixture
    def decoder(self):
        return PayloadDecoder.with_default_inflater()

    def test_key_value_example(self, decoder):
        record = decoder.decode("name=Jane Doe; dob=1990-01-01; email=jane@x.com")

        assert record.source == "key_value"
        assert record.email == "jane@x.com"

    def test_delimited_example(self, decoder):
        record = decoder.decode("Jane|1990-01-01|34|F|9990001111|jane@x.com")

        assert record.source == "delimited"
        assert record.username == "Jane"

    def test_markup_takes_priority(self, decoder):
        record = decoder.decode('<QPDB u="1" n="A" g="M" d="1990" a="x=y; z"/>')

        assert record.source == "markup"
        assert record.gender == "Male"

    def test_secure_payload(self, decoder):
        record = decoder.decode(_secure_payload())

        assert record.source == "secure_qr"

    def test_json_payload(self, decoder):
        assert decoder.decode('{"email": "a@b.com"}').source == "json"

    def test_forty_digits_unrecognized(self, decoder):
        assert decoder.decode("1" * 40) is None

    def test_plain_text_unrecognized(self, decoder):
        assert decoder.decode("hello world") is None

    def test_deeply_nested_json_unrecognized(self, decoder):
        assert decoder.decode("[" * 2900) is None

    def test_secure_payload_without_inflater_raises(self):
        decoder = PayloadDecoder(inflater=None)

        assert not decoder.inflate_available
        with pytest.raises(DecodeCapabilityMissing):
            decoder.decode(_secure_payload())

    def test_first_match_wins(self):
        calls = []

        def never(raw, ctx):
            calls.append("never")
            raise AssertionError("later grammar consulted")

        decoder = PayloadDecoder(grammars=[("json", parse_json), ("never", never)])

        assert decoder.decode('{"name": "A"}').username == "A"
        assert calls == []
