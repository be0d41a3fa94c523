"""
EvmSettlementSigner - EVM settlement signer implementation using web3.py
"""

import asyncio
import logging
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware

from x402_gate.encoding import hex_to_bytes
from x402_gate.exceptions import (
    ConfigurationError,
    OnChainRevert,
    SettlementFailure,
    SettlementTimeout,
)
from x402_gate.signers.base import SettlementSigner

logger = logging.getLogger(__name__)


def verify_typed_data_signature(address: str, typed_data: dict[str, Any], signature: str) -> bool:
    """Return True if *signature* over *typed_data* recovers to *address*."""
    try:
        signable = encode_typed_data(full_message=typed_data)
        recovered = Account.recover_message(signable, signature=hex_to_bytes(signature))
    except Exception as e:
        logger.warning("Signature verification failed: %s", e)
        return False

    return recovered.lower() == address.lower()


class EvmSettlementSigner(SettlementSigner):
    """EVM settlement signer implementation using web3.py"""

    def __init__(self, private_key: str, rpc_url: str | None = None) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = self._derive_address(private_key)
        self._rpc_url = rpc_url
        self._web3: AsyncWeb3 | None = None
        # Serializes nonce allocation between concurrent submissions
        self._submit_lock = asyncio.Lock()
        logger.debug("EvmSettlementSigner initialized", extra={"address": self._address})

    @staticmethod
    def _derive_address(private_key: str) -> str:
        """Derive EVM address from private key"""
        try:
            return Account.from_key(private_key).address
        except (ValueError, TypeError) as e:
            raise ConfigurationError("SETTLEMENT_PRIVATE_KEY is not a valid private key") from e

    def get_address(self) -> str:
        return self._address

    def _ensure_web3(self) -> AsyncWeb3:
        """Lazy initialize async web3 client"""
        if self._web3 is None:
            if not self._rpc_url:
                raise ConfigurationError("RPC URL required for on-chain settlement")
            w3 = AsyncWeb3(AsyncHTTPProvider(self._rpc_url))
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._web3 = w3
        return self._web3

    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        signature: str,
        primary_type: str,
    ) -> bool:
        """Verify EIP-712 signature by recovering the signer address."""
        typed_data = {
            "types": types,
            "primaryType": primary_type,
            "domain": domain,
            "message": message,
        }
        return verify_typed_data_signature(address, typed_data, signature)

    async def read_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
    ) -> Any:
        w3 = self._ensure_web3()
        contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
        return await getattr(contract.functions, method)(*args).call()

    async def write_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
    ) -> str:
        """Sign and submit a contract transaction, paying gas from the signer account."""
        w3 = self._ensure_web3()
        contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
        func = getattr(contract.functions, method)

        try:
            async with self._submit_lock:
                tx = await func(*args).build_transaction(
                    {
                        "from": self._address,
                        "nonce": await w3.eth.get_transaction_count(self._address, "pending"),
                        "chainId": await w3.eth.chain_id,
                    }
                )
                signed_tx = w3.eth.account.sign_transaction(tx, private_key=self._private_key)
                tx_hash = await w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except ContractLogicError as e:
            logger.error(
                "Contract call reverted: %s",
                e,
                extra={"method": method, "contract": contract_address},
            )
            raise OnChainRevert("transaction_reverted") from e
        except Exception as e:
            logger.error(
                "Contract write failed: %s",
                e,
                exc_info=True,
                extra={"method": method, "contract": contract_address},
            )
            raise SettlementFailure("transaction_submission_failed") from e

        return Web3.to_hex(tx_hash)

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
    ) -> dict[str, Any]:
        """Wait for EVM transaction confirmation"""
        w3 = self._ensure_web3()
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise SettlementTimeout(tx_hash, timeout) from e

        return {
            "hash": tx_hash,
            "blockNumber": int(receipt["blockNumber"]),
            "status": "confirmed" if receipt["status"] == 1 else "failed",
        }

    async def close(self) -> None:
        """Close the underlying RPC session"""
        if self._web3 is not None:
            await self._web3.provider.disconnect()
            self._web3 = None
