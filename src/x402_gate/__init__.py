"""
x402-gate - HTTP 402 payment gate for pay-per-request services

Verifies and settles USDC payments authorized with EIP-3009, either through an
x402 facilitator or by submitting ``transferWithAuthorization`` directly.
"""

__version__ = "0.1.0"

from x402_gate.challenge import ChallengeBuilder
from x402_gate.config import GateConfig, NetworkConfig, load_config
from x402_gate.exceptions import (
    ConfigurationError,
    DecodeError,
    InvalidAuthorization,
    OnChainRevert,
    SettlementFailure,
    SettlementTimeout,
    UnknownTokenError,
    UnsupportedNetworkError,
    VerificationFailure,
    X402Error,
)
from x402_gate.gate import Fulfiller, GateOutcome, GateState, PaymentGate
from x402_gate.settlement import (
    DirectBackend,
    FacilitatorBackend,
    FacilitatorClient,
    SettlementBackend,
    SyntheticBackend,
    create_backend,
)
from x402_gate.tokens import TokenInfo, TokenRegistry
from x402_gate.types import (
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    PaymentResponse,
    SettlementResult,
    TransferAuthorization,
)

__all__ = [
    # Gate
    "PaymentGate",
    "GateOutcome",
    "GateState",
    "Fulfiller",
    "ChallengeBuilder",
    # Settlement
    "SettlementBackend",
    "FacilitatorBackend",
    "FacilitatorClient",
    "DirectBackend",
    "SyntheticBackend",
    "create_backend",
    # Config
    "GateConfig",
    "NetworkConfig",
    "load_config",
    "TokenInfo",
    "TokenRegistry",
    # Types
    "PaymentPayload",
    "PaymentRequired",
    "PaymentRequirements",
    "PaymentResponse",
    "SettlementResult",
    "TransferAuthorization",
    # Exceptions
    "X402Error",
    "DecodeError",
    "VerificationFailure",
    "InvalidAuthorization",
    "SettlementFailure",
    "OnChainRevert",
    "SettlementTimeout",
    "ConfigurationError",
    "UnsupportedNetworkError",
    "UnknownTokenError",
]
