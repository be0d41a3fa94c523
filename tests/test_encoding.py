"""
Tests for header value encoding
"""

import base64

import pytest

from x402_gate.encoding import (
    decode_base64,
    decode_payment_payload,
    encode_base64,
    encode_payment_payload,
    hex_to_bytes,
)
from x402_gate.exceptions import DecodeError
from x402_gate.types import PaymentPayload, PaymentResponse


def test_payment_payload_survives_header_encoding(gate_config, make_payment):
    payload = make_payment(gate_config)

    decoded = decode_payment_payload(encode_payment_payload(payload), PaymentPayload)

    assert decoded.payload.signature == payload.payload.signature
    assert decoded.payload.authorization == payload.payload.authorization
    assert decoded.accepted == payload.accepted


def test_encoded_models_use_wire_names():
    encoded = encode_payment_payload(
        PaymentResponse(transaction="0xabc", transactionHash="0xabc", network="eip155:84532")
    )

    data = decode_payment_payload(encoded)

    assert data == {
        "success": True,
        "transaction": "0xabc",
        "transactionHash": "0xabc",
        "network": "eip155:84532",
    }


def test_decode_base64_rejects_non_alphabet_characters():
    with pytest.raises(DecodeError):
        decode_base64("not*base64!")


def test_decode_base64_rejects_invalid_utf8():
    with pytest.raises(DecodeError):
        decode_base64(base64.b64encode(b"\xff\xfe\xfd").decode())


def test_decode_rejects_non_json():
    with pytest.raises(DecodeError):
        decode_payment_payload(encode_base64("hello world"))


def test_decode_rejects_non_object_for_model():
    with pytest.raises(DecodeError):
        decode_payment_payload(encode_base64("[1, 2, 3]"), PaymentPayload)


def test_decode_rejects_payload_failing_validation():
    bad = encode_base64('{"x402Version": 2, "accepted": {"scheme": "exact"}}')

    with pytest.raises(DecodeError):
        decode_payment_payload(bad, PaymentPayload)


def test_decode_without_model_returns_plain_json():
    assert decode_payment_payload(encode_base64('{"a": 1}')) == {"a": 1}


@pytest.mark.parametrize(
    "value",
    [
        [1, "two", None, 3.5],
        "plain string",
        0,
        123456789012345678901234567890,
        -7,
        None,
        {"outer": {"inner": [{"deep": True}, []], "empty": {}}},
        {"description": "Café résumé ✓ 支付 🚀"},
    ],
)
def test_json_values_survive_header_encoding(value):
    assert decode_payment_payload(encode_payment_payload(value)) == value


def test_decode_base64_accepts_missing_padding():
    encoded = base64.b64encode(b'{"a":1}').decode().rstrip("=")

    assert decode_base64(encoded) == '{"a":1}'


def test_decode_base64_accepts_url_safe_alphabet():
    raw = '{"d":"???>>>"}'
    encoded = base64.urlsafe_b64encode(raw.encode()).decode()
    assert "-" in encoded or "_" in encoded

    assert decode_base64(encoded) == raw


def test_hex_to_bytes_accepts_both_prefixes():
    assert hex_to_bytes("0xabcd") == b"\xab\xcd"
    assert hex_to_bytes("0XABCD") == b"\xab\xcd"
    assert hex_to_bytes("abcd") == b"\xab\xcd"
