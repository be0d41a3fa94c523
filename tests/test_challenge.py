"""
Tests for ChallengeBuilder
"""

from x402_gate.challenge import ChallengeBuilder
from x402_gate.encoding import decode_payment_payload, encode_payment_payload
from x402_gate.types import PaymentRequired


def test_requirements_are_deterministic(gate_config):
    builder = ChallengeBuilder(gate_config)

    assert builder.build_requirements() == builder.build_requirements()
    assert builder.build("/fulfill") == builder.build("/fulfill")


def test_requirements_carry_price_and_token_domain(gate_config):
    req = ChallengeBuilder(gate_config).build_requirements()

    assert req.scheme == "exact"
    assert req.network == "eip155:84532"
    assert req.amount == "10000"
    assert req.asset == "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
    assert req.pay_to == "0xe08Ad6b0975222f410Eb2fa0e50c7Ee8FBe78F2D"
    assert req.max_timeout_seconds == 300
    assert req.extra.name == "USDC"
    assert req.extra.version == "2"
    assert req.extra.decimals == 6


def test_challenge_wire_format(gate_config):
    challenge = ChallengeBuilder(gate_config).build("/fulfill")

    data = decode_payment_payload(encode_payment_payload(challenge))

    assert data["x402Version"] == 2
    assert "error" not in data
    assert data["resource"] == {
        "url": "/fulfill",
        "description": "Intent fulfillment service",
        "mimeType": "application/json",
    }
    accepted = data["accepts"][0]
    assert accepted["payTo"] == gate_config.pay_to
    assert accepted["maxTimeoutSeconds"] == 300
    assert accepted["extra"] == {"name": "USDC", "version": "2", "decimals": 6}


def test_challenge_with_error(gate_config):
    challenge = ChallengeBuilder(gate_config).build("/other", error="expired")

    decoded = decode_payment_payload(encode_payment_payload(challenge), PaymentRequired)

    assert decoded.error == "expired"
    assert decoded.resource.url == "/other"
