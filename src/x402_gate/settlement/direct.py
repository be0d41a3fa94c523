"""
Direct settlement strategy - submits transferWithAuthorization with the service's own key
"""

import logging

from web3 import Web3

from x402_gate.config import GateConfig
from x402_gate.eip3009 import (
    AUTHORIZATION_STATE_ABI,
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
    TRANSFER_WITH_AUTHORIZATION_ABI,
    build_eip712_message,
    split_signature,
)
from x402_gate.encoding import hex_to_bytes
from x402_gate.exceptions import InvalidAuthorization, OnChainRevert, VerificationFailure
from x402_gate.settlement.base import extract_authorization
from x402_gate.settlement.local import LocalVerificationBackend, require_complete
from x402_gate.signers.base import SettlementSigner
from x402_gate.types import (
    PaymentPayload,
    PaymentRequirements,
    SettlementResult,
    TransferAuthorization,
)

logger = logging.getLogger(__name__)


class DirectBackend(LocalVerificationBackend):
    """Self-submitted EIP-3009 settlement; the service pays gas, the payer only signs"""

    name = "direct"

    def __init__(self, config: GateConfig, signer: SettlementSigner) -> None:
        super().__init__(config)
        self._signer = signer

    async def _verify_signature(self, auth: TransferAuthorization, signature: str) -> bool:
        return await self._signer.verify_typed_data(
            address=auth.from_address,
            domain=self._domain(),
            types=TRANSFER_AUTH_EIP712_TYPES,
            message=build_eip712_message(auth),
            signature=signature,
            primary_type=TRANSFER_AUTH_PRIMARY_TYPE,
        )

    async def _check_nonce_unused(self, auth: TransferAuthorization) -> None:
        if not self._config.preflight_nonce_check:
            return
        try:
            used = await self._signer.read_contract(
                self._config.asset,
                AUTHORIZATION_STATE_ABI,
                "authorizationState",
                [Web3.to_checksum_address(auth.from_address), hex_to_bytes(auth.nonce)],
            )
        except Exception as e:
            logger.warning("authorizationState pre-flight skipped: %s", e)
            return
        if used:
            raise VerificationFailure("nonce_already_used")

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettlementResult:
        authorization, signature = extract_authorization(payload)
        return await self.execute(authorization, signature)

    async def execute(
        self,
        authorization: TransferAuthorization | None,
        signature: str | None,
    ) -> SettlementResult:
        """
        Submit ``transferWithAuthorization`` and wait for one confirmation.

        Args:
            authorization: EIP-3009 authorization signed by the payer
            signature: 65-byte payer signature (0x-prefixed hex)

        Returns:
            SettlementResult for the confirmed transfer

        Raises:
            InvalidAuthorization: If required fields are missing or malformed
                (raised before any network call)
            OnChainRevert: If the call reverts
            SettlementTimeout: If the transaction is not confirmed in time
            SettlementFailure: If the transaction cannot be submitted
        """
        auth = require_complete(authorization, signature)

        try:
            v, r, s = split_signature(signature)
            args = [
                Web3.to_checksum_address(auth.from_address),
                Web3.to_checksum_address(auth.to),
                int(auth.value),
                int(auth.valid_after),
                int(auth.valid_before),
                hex_to_bytes(auth.nonce),
                v,
                r,
                s,
            ]
        except ValueError as e:
            raise InvalidAuthorization("malformed_authorization") from e

        logger.info(
            "Calling transferWithAuthorization on token=%s: from=%s, to=%s, value=%s",
            self._config.asset,
            auth.from_address,
            auth.to,
            auth.value,
        )

        tx_hash = await self._signer.write_contract(
            contract_address=self._config.asset,
            abi=TRANSFER_WITH_AUTHORIZATION_ABI,
            method="transferWithAuthorization",
            args=args,
        )
        logger.info("Submitted transaction %s, waiting for confirmation", tx_hash)

        receipt = await self._signer.wait_for_transaction_receipt(
            tx_hash, timeout=self._config.confirmation_timeout
        )
        if receipt.get("status") != "confirmed":
            logger.error("Transaction %s reverted", tx_hash)
            raise OnChainRevert("transaction_reverted", tx_hash=tx_hash)

        block_number = receipt.get("blockNumber")
        return SettlementResult(
            transactionHash=tx_hash,
            payer=auth.from_address,
            payee=auth.to,
            amountTransferred=auth.value,
            network=self._config.network,
            blockNumber=int(block_number) if block_number is not None else None,
        )

    async def close(self) -> None:
        await self._signer.close()
