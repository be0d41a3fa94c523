"""
Local verification of EIP-3009 authorizations.

Shared by the strategies that settle without a facilitator: checks structure,
amount, recipient, validity window and the EIP-712 signature in-process.
"""

import logging
import time

from web3 import Web3

from x402_gate.config import GateConfig
from x402_gate.eip3009 import build_eip712_domain, build_typed_data
from x402_gate.encoding import hex_to_bytes
from x402_gate.exceptions import InvalidAuthorization, VerificationFailure
from x402_gate.settlement.base import SettlementBackend, extract_authorization
from x402_gate.signers.evm_signer import verify_typed_data_signature
from x402_gate.types import (
    PaymentPayload,
    PaymentRequirements,
    TransferAuthorization,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


def require_complete(
    authorization: TransferAuthorization | None,
    signature: str | None,
) -> TransferAuthorization:
    """Raise InvalidAuthorization unless every field needed on-chain is present."""
    if authorization is None:
        raise InvalidAuthorization("missing_authorization")
    if not authorization.from_address:
        raise InvalidAuthorization("missing_from")
    if not signature:
        raise InvalidAuthorization("missing_signature")
    missing = authorization.missing_fields()
    if missing:
        raise InvalidAuthorization(f"missing_{missing[0]}")
    return authorization


class LocalVerificationBackend(SettlementBackend):
    """Base for strategies that verify authorizations without a facilitator"""

    def __init__(self, config: GateConfig) -> None:
        self._config = config

    def _domain(self) -> dict:
        return build_eip712_domain(
            self._config.token_name,
            self._config.token_version,
            self._config.chain_id,
            self._config.asset,
        )

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        authorization, signature = extract_authorization(payload)
        auth = require_complete(authorization, signature)

        error = self._validate_authorization(auth, requirements)
        if error:
            raise VerificationFailure(error)

        if not await self._verify_signature(auth, signature):
            raise VerificationFailure("invalid_signature")

        await self._check_nonce_unused(auth)

        logger.info(
            "Authorization verified locally: from=%s, value=%s, nonce=%s",
            auth.from_address,
            auth.value,
            auth.nonce,
        )
        return VerifyResponse(isValid=True, payer=auth.from_address)

    def _validate_authorization(
        self,
        auth: TransferAuthorization,
        requirements: PaymentRequirements,
    ) -> str | None:
        if not Web3.is_address(auth.from_address) or not Web3.is_address(auth.to):
            return "invalid_address"

        try:
            value = int(auth.value)
            valid_after = int(auth.valid_after)
            valid_before = int(auth.valid_before)
        except ValueError:
            return "invalid_authorization_values"

        try:
            if len(hex_to_bytes(auth.nonce)) != 32:
                return "invalid_nonce"
        except ValueError:
            return "invalid_nonce"

        # Amount check
        if value < int(requirements.amount):
            return "amount_mismatch"

        # Recipient check
        if auth.to.lower() != requirements.pay_to.lower():
            return "payto_mismatch"

        # Time window
        now = int(time.time())
        if valid_before < now:
            return "expired"
        if valid_after > now:
            return "not_yet_valid"

        return None

    async def _verify_signature(self, auth: TransferAuthorization, signature: str) -> bool:
        typed_data = build_typed_data(auth, self._domain())
        return verify_typed_data_signature(auth.from_address, typed_data, signature)

    async def _check_nonce_unused(self, auth: TransferAuthorization) -> None:
        """Optional replay pre-flight; the chain remains the final arbiter."""
        return None
