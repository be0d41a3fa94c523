"""
x402-gate configuration.

``NetworkConfig`` holds static per-network settings; ``GateConfig`` is the immutable
process configuration read once at startup and passed into every component.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping

from dotenv import load_dotenv

from x402_gate.exceptions import ConfigurationError, UnsupportedNetworkError
from x402_gate.tokens import TokenRegistry
from x402_gate.types import is_uint_string

logger = logging.getLogger(__name__)

SETTLEMENT_MODE_FACILITATOR = "facilitator"
SETTLEMENT_MODE_DIRECT = "direct"
SETTLEMENT_MODES = (SETTLEMENT_MODE_FACILITATOR, SETTLEMENT_MODE_DIRECT)

DEFAULT_PAY_TO = "0xe08Ad6b0975222f410Eb2fa0e50c7Ee8FBe78F2D"
DEFAULT_PRICE = "10000"  # 0.01 USDC (6 decimals)
DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"


class NetworkConfig:
    """Network configuration for EVM chains"""

    BASE_MAINNET = "eip155:8453"
    BASE_SEPOLIA = "eip155:84532"
    EVM_MAINNET = "eip155:1"
    EVM_SEPOLIA = "eip155:11155111"
    AVALANCHE_MAINNET = "eip155:43114"
    AVALANCHE_FUJI = "eip155:43113"

    # Public RPC endpoints used when RPC_URL is not set
    RPC_URLS: Dict[str, str] = {
        "eip155:8453": "https://mainnet.base.org",
        "eip155:84532": "https://sepolia.base.org",
        "eip155:1": "https://eth.llamarpc.com",
        "eip155:11155111": "https://rpc.sepolia.org",
        "eip155:43114": "https://api.avax.network/ext/bc/C/rpc",
        "eip155:43113": "https://api.avax-test.network/ext/bc/C/rpc",
    }

    EXPLORER_URLS: Dict[str, str] = {
        "eip155:8453": "https://basescan.org",
        "eip155:84532": "https://sepolia.basescan.org",
        "eip155:1": "https://etherscan.io",
        "eip155:11155111": "https://sepolia.etherscan.io",
        "eip155:43114": "https://snowtrace.io",
        "eip155:43113": "https://testnet.snowtrace.io",
    }

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Get chain ID for an EVM network

        Args:
            network: Network identifier (e.g., "eip155:84532")

        Returns:
            Chain ID as integer

        Raises:
            UnsupportedNetworkError: If network is not an EVM network
        """
        if not network.startswith("eip155:"):
            raise UnsupportedNetworkError(f"Unsupported network: {network}")
        try:
            return int(network.split(":", 1)[1])
        except ValueError:
            raise UnsupportedNetworkError(f"Invalid EVM network: {network}")

    @classmethod
    def get_rpc_url(cls, network: str) -> str | None:
        """Get the default RPC URL for a network, or None if not configured"""
        return cls.RPC_URLS.get(network)

    @classmethod
    def get_explorer_tx_url(cls, network: str, tx_hash: str) -> str | None:
        """Get the block explorer URL for a transaction"""
        base = cls.EXPLORER_URLS.get(network)
        if base is None:
            return None
        return f"{base}/tx/{tx_hash}"


@dataclass(frozen=True)
class GateConfig:
    """Immutable process configuration"""

    pay_to: str
    price: str
    network: str
    asset: str
    token_name: str
    token_version: str
    token_decimals: int
    token_symbol: str = "USDC"
    max_timeout_seconds: int = 300
    resource_path: str = "/fulfill"
    resource_description: str = "Intent fulfillment service"
    mime_type: str = "application/json"
    settlement_mode: str = SETTLEMENT_MODE_FACILITATOR
    facilitator_url: str = DEFAULT_FACILITATOR_URL
    facilitator_timeout: float = 30.0
    private_key: str | None = field(default=None, repr=False)
    rpc_url: str | None = None
    confirmation_timeout: float = 120.0
    preflight_nonce_check: bool = True
    allow_synthetic_settlement: bool = False
    host: str = "0.0.0.0"
    port: int = 3002
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not is_uint_string(self.price):
            raise ConfigurationError(f"PRICE must be an integer in token base units, got {self.price!r}")
        if not self.pay_to.startswith("0x") or len(self.pay_to) != 42:
            raise ConfigurationError(f"PAY_TO_ADDRESS is not an EVM address: {self.pay_to!r}")
        NetworkConfig.get_chain_id(self.network)
        if self.settlement_mode not in SETTLEMENT_MODES:
            raise ConfigurationError(
                f"SETTLEMENT_MODE must be one of {SETTLEMENT_MODES}, got {self.settlement_mode!r}"
            )

    @property
    def chain_id(self) -> int:
        return NetworkConfig.get_chain_id(self.network)

    @property
    def effective_rpc_url(self) -> str | None:
        return self.rpc_url or NetworkConfig.get_rpc_url(self.network)

    @property
    def display_price(self) -> str:
        """Human readable price, e.g. "0.01 USDC" """
        return self.format_amount(self.price)

    def format_amount(self, amount: str | int) -> str:
        """Format an amount of the configured token in base units for display"""
        token = TokenRegistry.find_by_address(self.network, self.asset)
        if token is None:
            return f"{amount} base units"
        return TokenRegistry.format_amount(amount, token)


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _get_number(env: Mapping[str, str], name: str, default: float, cast: type = float):
    raw = env.get(name)
    if raw is None or raw == "":
        return cast(default)
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def load_config(
    env: Mapping[str, str] | None = None,
    env_file: str | Path | None = None,
) -> GateConfig:
    """
    Build GateConfig from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ after loading *env_file*)
        env_file: Optional .env file loaded into the process environment first

    Returns:
        GateConfig

    Raises:
        ConfigurationError: If a value is invalid or the token is unknown
    """
    if env is None:
        load_dotenv(env_file)
        env = os.environ

    network = env.get("NETWORK") or NetworkConfig.BASE_SEPOLIA
    symbol = env.get("TOKEN_SYMBOL") or "USDC"
    token = TokenRegistry.get_token(network, symbol)

    private_key = env.get("SETTLEMENT_PRIVATE_KEY") or None

    config = GateConfig(
        pay_to=env.get("PAY_TO_ADDRESS") or env.get("PROVIDER_WALLET") or DEFAULT_PAY_TO,
        price=env.get("PRICE") or DEFAULT_PRICE,
        network=network,
        asset=token.address,
        token_name=env.get("TOKEN_EIP712_NAME") or token.name,
        token_version=env.get("TOKEN_EIP712_VERSION") or token.version,
        token_decimals=token.decimals,
        token_symbol=token.symbol,
        max_timeout_seconds=_get_number(env, "MAX_TIMEOUT_SECONDS", 300, int),
        resource_path=env.get("RESOURCE_PATH") or "/fulfill",
        resource_description=env.get("RESOURCE_DESCRIPTION") or "Intent fulfillment service",
        settlement_mode=(env.get("SETTLEMENT_MODE") or SETTLEMENT_MODE_FACILITATOR).lower(),
        facilitator_url=env.get("FACILITATOR_URL") or DEFAULT_FACILITATOR_URL,
        facilitator_timeout=_get_number(env, "FACILITATOR_TIMEOUT_SECONDS", 30.0),
        private_key=private_key,
        rpc_url=env.get("RPC_URL") or None,
        confirmation_timeout=_get_number(env, "CONFIRMATION_TIMEOUT_SECONDS", 120.0),
        preflight_nonce_check=_get_bool(env, "PREFLIGHT_NONCE_CHECK", True),
        allow_synthetic_settlement=_get_bool(env, "ALLOW_SYNTHETIC_SETTLEMENT", False),
        host=env.get("HOST") or "0.0.0.0",
        port=_get_number(env, "PORT", 3002, int),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )
    logger.debug(
        "Loaded configuration",
        extra={"network": config.network, "mode": config.settlement_mode, "pay_to": config.pay_to},
    )
    return config
