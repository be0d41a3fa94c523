"""
Token registry - EIP-3009 token configurations per network
"""

from dataclasses import dataclass
from decimal import Decimal

from x402_gate.exceptions import UnknownTokenError


@dataclass(frozen=True)
class TokenInfo:
    """Token information.

    ``name`` and ``version`` must be exactly the token contract's EIP-712 domain
    values, otherwise every client signature fails verification.
    """

    address: str
    decimals: int
    name: str
    symbol: str
    version: str = "2"


class TokenRegistry:
    """Token registry"""

    _tokens: dict[str, dict[str, TokenInfo]] = {
        # Base Sepolia
        "eip155:84532": {
            "USDC": TokenInfo(
                address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
                decimals=6,
                name="USDC",
                symbol="USDC",
            ),
        },
        # Base
        "eip155:8453": {
            "USDC": TokenInfo(
                address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
            ),
        },
        # Ethereum
        "eip155:1": {
            "USDC": TokenInfo(
                address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
            ),
        },
        # Sepolia
        "eip155:11155111": {
            "USDC": TokenInfo(
                address="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
                decimals=6,
                name="USDC",
                symbol="USDC",
            ),
        },
        # Avalanche Fuji
        "eip155:43113": {
            "USDC": TokenInfo(
                address="0x5425890298aed601595a70AB815c96711a31Bc65",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
            ),
        },
        # Avalanche C-Chain
        "eip155:43114": {
            "USDC": TokenInfo(
                address="0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
                decimals=6,
                name="USDC",
                symbol="USDC",
            ),
        },
    }

    @classmethod
    def register_token(cls, network: str, token: TokenInfo) -> None:
        """Register a custom token for specified network

        Args:
            network: Network identifier (e.g. "eip155:84532")
            token: TokenInfo to register
        """
        cls._tokens.setdefault(network, {})[token.symbol.upper()] = token

    @classmethod
    def get_token(cls, network: str, symbol: str) -> TokenInfo:
        """Get token information for specified network and symbol

        Raises:
            UnknownTokenError: If token does not exist
        """
        token = cls._tokens.get(network, {}).get(symbol.upper())
        if token is None:
            raise UnknownTokenError(f"Unknown token {symbol} on network {network}")
        return token

    @classmethod
    def find_by_address(cls, network: str, address: str) -> TokenInfo | None:
        """Find token information by address (case-insensitive)"""
        lower = address.lower()
        for info in cls._tokens.get(network, {}).values():
            if info.address.lower() == lower:
                return info
        return None

    @staticmethod
    def format_amount(amount: str | int, token: TokenInfo) -> str:
        """Format an amount in smallest units for display, e.g. "0.01 USDC" """
        value = Decimal(int(amount)).scaleb(-token.decimals)
        text = format(value.normalize(), "f") if value else "0"
        return f"{text} {token.symbol}"
