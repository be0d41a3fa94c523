"""
Pytest configuration and shared fixtures
"""

import os
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from x402_gate.challenge import ChallengeBuilder
from x402_gate.config import load_config
from x402_gate.eip3009 import build_eip712_domain, build_typed_data
from x402_gate.encoding import encode_payment_payload
from x402_gate.types import PaymentPayload, PaymentPayloadData, ResourceInfo, TransferAuthorization

PAYER_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SETTLEMENT_PRIVATE_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.fixture
def gate_config():
    """Default configuration: Base Sepolia USDC, facilitator settlement"""
    return load_config(env={})


@pytest.fixture
def settlement_private_key():
    return SETTLEMENT_PRIVATE_KEY


@pytest.fixture
def direct_config():
    return load_config(
        env={"SETTLEMENT_MODE": "direct", "SETTLEMENT_PRIVATE_KEY": SETTLEMENT_PRIVATE_KEY}
    )


@pytest.fixture
def payer():
    return Account.from_key(PAYER_PRIVATE_KEY)


@pytest.fixture
def make_authorization(payer):
    """Factory producing (TransferAuthorization, signature) signed by the payer"""

    def _make(config, **overrides):
        now = int(time.time())
        fields = {
            "from": payer.address,
            "to": config.pay_to,
            "value": config.price,
            "validAfter": str(now - 60),
            "validBefore": str(now + 600),
            "nonce": "0x" + os.urandom(32).hex(),
        }
        fields.update(overrides)
        auth = TransferAuthorization.model_validate(fields)

        domain = build_eip712_domain(
            config.token_name, config.token_version, config.chain_id, config.asset
        )
        signable = encode_typed_data(full_message=build_typed_data(auth, domain))
        signed = Account.sign_message(signable, private_key=PAYER_PRIVATE_KEY)
        return auth, "0x" + bytes(signed.signature).hex()

    return _make


@pytest.fixture
def make_payment(make_authorization):
    """Factory producing a signed PaymentPayload that accepts the config's requirements"""

    def _make(config, accepted=None, signature=None, **overrides):
        auth, sig = make_authorization(config, **overrides)
        return PaymentPayload(
            x402Version=2,
            resource=ResourceInfo(url=config.resource_path),
            accepted=accepted or ChallengeBuilder(config).build_requirements(),
            payload=PaymentPayloadData(
                signature=signature if signature is not None else sig,
                authorization=auth,
            ),
        )

    return _make


@pytest.fixture
def payment_headers():
    """Encode a payment payload under the given header name"""

    def _make(payload, header="PAYMENT-SIGNATURE"):
        return {header: encode_payment_payload(payload)}

    return _make


@pytest.fixture
def mock_signer():
    signer = MagicMock()
    signer.get_address.return_value = "0xFacilitatorAddr0000000000000000000000001"
    signer.verify_typed_data = AsyncMock(return_value=True)
    signer.read_contract = AsyncMock(return_value=False)
    signer.write_contract = AsyncMock(return_value="0x" + "ab" * 32)
    signer.wait_for_transaction_receipt = AsyncMock(
        return_value={"hash": "0x" + "ab" * 32, "blockNumber": 123, "status": "confirmed"}
    )
    signer.close = AsyncMock()
    return signer
