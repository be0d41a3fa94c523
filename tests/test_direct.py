"""
Tests for the direct (self-submitted) settlement strategy
"""

import dataclasses
import time

import pytest

from x402_gate.challenge import ChallengeBuilder
from x402_gate.eip3009 import TRANSFER_WITH_AUTHORIZATION_ABI
from x402_gate.exceptions import (
    InvalidAuthorization,
    OnChainRevert,
    SettlementFailure,
    SettlementTimeout,
    VerificationFailure,
)
from x402_gate.settlement.direct import DirectBackend
from x402_gate.signers.evm_signer import EvmSettlementSigner
from x402_gate.types import PaymentPayload, PaymentPayloadData, TransferAuthorization


@pytest.fixture
def backend(direct_config, mock_signer):
    return DirectBackend(direct_config, mock_signer)


@pytest.fixture
def requirements(direct_config):
    return ChallengeBuilder(direct_config).build_requirements()


@pytest.mark.asyncio
async def test_execute_submits_transfer_with_authorization(
    backend, direct_config, make_authorization, mock_signer
):
    auth, signature = make_authorization(direct_config)

    result = await backend.execute(auth, signature)

    assert result.transaction_hash == "0x" + "ab" * 32
    assert result.payer == auth.from_address
    assert result.payee == direct_config.pay_to
    assert result.amount_transferred == "10000"
    assert result.block_number == 123
    assert result.synthetic is False

    mock_signer.write_contract.assert_awaited_once()
    call = mock_signer.write_contract.call_args.kwargs
    assert call["contract_address"] == direct_config.asset
    assert call["abi"] == TRANSFER_WITH_AUTHORIZATION_ABI
    assert call["method"] == "transferWithAuthorization"
    args = call["args"]
    assert len(args) == 9
    assert args[2:5] == [10000, int(auth.valid_after), int(auth.valid_before)]
    assert len(args[5]) == 32
    assert args[6] in (27, 28)
    assert len(args[7]) == 32 and len(args[8]) == 32

    mock_signer.wait_for_transaction_receipt.assert_awaited_once_with(
        "0x" + "ab" * 32, timeout=120.0
    )


@pytest.mark.asyncio
async def test_execute_missing_from_never_calls_signer(backend, mock_signer):
    auth = TransferAuthorization(to="0x1111111111111111111111111111111111111111", value="10000")

    with pytest.raises(InvalidAuthorization) as exc_info:
        await backend.execute(auth, "0x" + "ab" * 65)

    assert exc_info.value.reason == "missing_from"
    mock_signer.write_contract.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_missing_signature_never_calls_signer(
    backend, direct_config, make_authorization, mock_signer
):
    auth, _ = make_authorization(direct_config)

    with pytest.raises(InvalidAuthorization) as exc_info:
        await backend.execute(auth, None)

    assert exc_info.value.reason == "missing_signature"
    mock_signer.write_contract.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_missing_authorization(backend, mock_signer):
    with pytest.raises(InvalidAuthorization) as exc_info:
        await backend.execute(None, "0x" + "ab" * 65)

    assert exc_info.value.reason == "missing_authorization"
    mock_signer.write_contract.assert_not_awaited()


@pytest.mark.asyncio
async def test_execute_malformed_signature(backend, direct_config, make_authorization, mock_signer):
    auth, _ = make_authorization(direct_config)

    with pytest.raises(InvalidAuthorization) as exc_info:
        await backend.execute(auth, "0x1234")

    assert exc_info.value.reason == "malformed_authorization"
    mock_signer.write_contract.assert_not_awaited()


@pytest.mark.asyncio
async def test_reverted_receipt(backend, direct_config, make_authorization, mock_signer):
    mock_signer.wait_for_transaction_receipt.return_value = {
        "hash": "0x" + "ab" * 32,
        "blockNumber": 5,
        "status": "failed",
    }
    auth, signature = make_authorization(direct_config)

    with pytest.raises(OnChainRevert) as exc_info:
        await backend.execute(auth, signature)

    assert exc_info.value.reason == "transaction_reverted"
    assert exc_info.value.tx_hash == "0x" + "ab" * 32


@pytest.mark.asyncio
async def test_confirmation_timeout(backend, direct_config, make_authorization, mock_signer):
    mock_signer.wait_for_transaction_receipt.side_effect = SettlementTimeout("0x" + "ab" * 32, 120)
    auth, signature = make_authorization(direct_config)

    with pytest.raises(SettlementFailure) as exc_info:
        await backend.execute(auth, signature)

    assert exc_info.value.reason == "confirmation_timeout"


@pytest.mark.asyncio
async def test_settle_delegates_to_execute(
    backend, direct_config, make_payment, requirements, mock_signer
):
    payload = make_payment(direct_config)

    result = await backend.settle(payload, requirements)

    assert result.payer == payload.payload.authorization.from_address
    mock_signer.write_contract.assert_awaited_once()


@pytest.mark.asyncio
async def test_verify_accepts_valid_authorization(
    backend, direct_config, make_payment, requirements, mock_signer
):
    payload = make_payment(direct_config)

    result = await backend.verify(payload, requirements)

    assert result.is_valid is True
    assert result.payer == payload.payload.authorization.from_address
    mock_signer.verify_typed_data.assert_awaited_once()
    mock_signer.read_contract.assert_awaited_once()
    assert mock_signer.read_contract.call_args.args[2] == "authorizationState"


@pytest.mark.asyncio
async def test_verify_rejects_used_nonce(
    backend, direct_config, make_payment, requirements, mock_signer
):
    mock_signer.read_contract.return_value = True

    with pytest.raises(VerificationFailure) as exc_info:
        await backend.verify(make_payment(direct_config), requirements)

    assert exc_info.value.reason == "nonce_already_used"


@pytest.mark.asyncio
async def test_verify_ignores_preflight_rpc_error(
    backend, direct_config, make_payment, requirements, mock_signer
):
    mock_signer.read_contract.side_effect = ConnectionError("rpc down")

    result = await backend.verify(make_payment(direct_config), requirements)

    assert result.is_valid is True


@pytest.mark.asyncio
async def test_verify_rejects_bad_signature(
    backend, direct_config, make_payment, requirements, mock_signer
):
    mock_signer.verify_typed_data.return_value = False

    with pytest.raises(VerificationFailure) as exc_info:
        await backend.verify(make_payment(direct_config), requirements)

    assert exc_info.value.reason == "invalid_signature"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"value": "9999"}, "amount_mismatch"),
        ({"to": "0x1111111111111111111111111111111111111111"}, "payto_mismatch"),
        ({"validBefore": "1000"}, "expired"),
        ({"validAfter": str(int(time.time()) + 3600)}, "not_yet_valid"),
        ({"nonce": "0x1234"}, "invalid_nonce"),
        ({"to": "not-an-address"}, "invalid_address"),
    ],
)
async def test_verify_rejects_invalid_authorization(
    backend, direct_config, make_authorization, requirements, mock_signer, overrides, reason
):
    auth = TransferAuthorization.model_validate(
        {**make_authorization(direct_config)[0].model_dump(by_alias=True), **overrides}
    )
    payload = PaymentPayload(
        payload=PaymentPayloadData(signature="0x" + "ab" * 65, authorization=auth)
    )

    with pytest.raises(VerificationFailure) as exc_info:
        await backend.verify(payload, requirements)

    assert exc_info.value.reason == reason
    mock_signer.verify_typed_data.assert_not_awaited()


@pytest.mark.asyncio
async def test_verify_with_real_signer(
    direct_config, settlement_private_key, make_payment, requirements
):
    config = dataclasses.replace(direct_config, preflight_nonce_check=False)
    backend = DirectBackend(config, EvmSettlementSigner(settlement_private_key))

    result = await backend.verify(make_payment(direct_config), requirements)

    assert result.is_valid is True


@pytest.mark.asyncio
async def test_close_closes_signer(backend, mock_signer):
    await backend.close()

    mock_signer.close.assert_awaited_once()
