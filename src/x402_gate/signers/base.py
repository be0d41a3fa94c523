"""
Settlement signer base interface
"""

from abc import ABC, abstractmethod
from typing import Any


class SettlementSigner(ABC):
    """
    Abstract base class for settlement signers.

    Holds the service's own chain key: verifies client signatures and submits
    state-changing contract calls, paying gas on behalf of the payer.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Get the signer's account address"""
        pass

    @abstractmethod
    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        signature: str,
        primary_type: str,
    ) -> bool:
        """
        Verify EIP-712 typed data signature.

        Args:
            address: Expected signer address
            domain: EIP-712 domain
            types: Type definitions
            message: Signed message
            signature: Signature to verify
            primary_type: Primary type name

        Returns:
            True if signature was produced by *address*
        """
        pass

    @abstractmethod
    async def read_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
    ) -> Any:
        """Execute a read-only contract call and return its result"""
        pass

    @abstractmethod
    async def write_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
    ) -> str:
        """
        Sign and submit a contract write transaction.

        Args:
            contract_address: Contract address
            abi: Contract ABI
            method: Method name
            args: Method arguments

        Returns:
            Transaction hash (0x-prefixed)

        Raises:
            OnChainRevert: If the call reverts during gas estimation
            SettlementFailure: If the transaction cannot be submitted
        """
        pass

    @abstractmethod
    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
    ) -> dict[str, Any]:
        """
        Wait for transaction confirmation.

        Args:
            tx_hash: Transaction hash
            timeout: Timeout in seconds

        Returns:
            Receipt summary with ``hash``, ``blockNumber`` and ``status``

        Raises:
            SettlementTimeout: If not confirmed within *timeout*
        """
        pass

    async def close(self) -> None:
        """Release network resources"""
        pass
