"""
ABI and EIP-712 definitions for EIP-3009 transferWithAuthorization.
"""

from typing import Any, List

from x402_gate.encoding import hex_to_bytes
from x402_gate.types import TransferAuthorization

# ---------------------------------------------------------------------------
# EIP-712 type definitions for TransferWithAuthorization
# ---------------------------------------------------------------------------

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

TRANSFER_AUTH_PRIMARY_TYPE = "TransferWithAuthorization"

TRANSFER_AUTH_EIP712_TYPES = {
    "EIP712Domain": EIP712_DOMAIN_TYPE,
    TRANSFER_AUTH_PRIMARY_TYPE: [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}

# ---------------------------------------------------------------------------
# Token contract ABI (v, r, s variant)
# ---------------------------------------------------------------------------

TRANSFER_WITH_AUTHORIZATION_ABI: List[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "validAfter", "type": "uint256"},
            {"name": "validBefore", "type": "uint256"},
            {"name": "nonce", "type": "bytes32"},
            {"name": "v", "type": "uint8"},
            {"name": "r", "type": "bytes32"},
            {"name": "s", "type": "bytes32"},
        ],
        "name": "transferWithAuthorization",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

AUTHORIZATION_STATE_ABI: List[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "authorizer", "type": "address"},
            {"name": "nonce", "type": "bytes32"},
        ],
        "name": "authorizationState",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def build_eip712_domain(
    token_name: str,
    token_version: str,
    chain_id: int,
    verifying_contract: str,
) -> dict[str, Any]:
    """Build EIP-712 domain dict for the token contract."""
    return {
        "name": token_name,
        "version": token_version,
        "chainId": chain_id,
        "verifyingContract": verifying_contract,
    }


def build_eip712_message(auth: TransferAuthorization) -> dict[str, Any]:
    """Build EIP-712 message dict from a complete authorization."""
    return {
        "from": auth.from_address,
        "to": auth.to,
        "value": int(auth.value),
        "validAfter": int(auth.valid_after),
        "validBefore": int(auth.valid_before),
        "nonce": hex_to_bytes(auth.nonce),
    }


def build_typed_data(auth: TransferAuthorization, domain: dict[str, Any]) -> dict[str, Any]:
    """Full EIP-712 typed data structure for a TransferWithAuthorization."""
    return {
        "types": TRANSFER_AUTH_EIP712_TYPES,
        "primaryType": TRANSFER_AUTH_PRIMARY_TYPE,
        "domain": domain,
        "message": build_eip712_message(auth),
    }


def split_signature(signature: str) -> tuple[int, bytes, bytes]:
    """Split a 65-byte ``r || s || v`` signature into (v, r, s).

    Raises:
        ValueError: If the signature is not 65 bytes of hex
    """
    sig_bytes = hex_to_bytes(signature)
    if len(sig_bytes) != 65:
        raise ValueError(f"signature must be 65 bytes, got {len(sig_bytes)}")
    r = sig_bytes[:32]
    s = sig_bytes[32:64]
    v = sig_bytes[64]
    if v < 27:
        v += 27
    return v, r, s
