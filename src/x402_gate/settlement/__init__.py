"""
Settlement strategies and startup-time backend selection
"""

import logging

import httpx

from x402_gate.config import SETTLEMENT_MODE_DIRECT, SETTLEMENT_MODE_FACILITATOR, GateConfig
from x402_gate.exceptions import ConfigurationError
from x402_gate.settlement.base import SettlementBackend, extract_authorization
from x402_gate.settlement.direct import DirectBackend
from x402_gate.settlement.facilitator import FacilitatorBackend, FacilitatorClient
from x402_gate.settlement.local import LocalVerificationBackend, require_complete
from x402_gate.settlement.synthetic import SyntheticBackend
from x402_gate.signers.base import SettlementSigner
from x402_gate.signers.evm_signer import EvmSettlementSigner

logger = logging.getLogger(__name__)


def create_backend(
    config: GateConfig,
    signer: SettlementSigner | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SettlementBackend:
    """
    Select the settlement strategy for this process.

    Args:
        config: Process configuration
        signer: Settlement signer for direct mode (built from the configured key if omitted)
        transport: Optional httpx transport for the facilitator client

    Returns:
        SettlementBackend

    Raises:
        ConfigurationError: If direct mode has no key and synthetic settlement is not allowed
    """
    if config.settlement_mode == SETTLEMENT_MODE_FACILITATOR:
        logger.info("Using facilitator settlement at %s", config.facilitator_url)
        client = FacilitatorClient(
            config.facilitator_url,
            timeout=config.facilitator_timeout,
            transport=transport,
        )
        return FacilitatorBackend(client)

    if config.settlement_mode == SETTLEMENT_MODE_DIRECT:
        if signer is None and config.private_key:
            signer = EvmSettlementSigner(config.private_key, config.effective_rpc_url)
        if signer is not None:
            logger.info(
                "Using direct settlement from %s on %s",
                signer.get_address(),
                config.network,
            )
            return DirectBackend(config, signer)
        if config.allow_synthetic_settlement:
            logger.warning(
                "SETTLEMENT_PRIVATE_KEY not set; using SYNTHETIC settlement, no funds will move"
            )
            return SyntheticBackend(config)
        raise ConfigurationError(
            "SETTLEMENT_MODE=direct requires SETTLEMENT_PRIVATE_KEY "
            "(or ALLOW_SYNTHETIC_SETTLEMENT=true for demos)"
        )

    raise ConfigurationError(f"Unknown settlement mode: {config.settlement_mode}")


__all__ = [
    "SettlementBackend",
    "FacilitatorBackend",
    "FacilitatorClient",
    "DirectBackend",
    "SyntheticBackend",
    "LocalVerificationBackend",
    "create_backend",
    "extract_authorization",
    "require_complete",
]
