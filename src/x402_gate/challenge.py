"""
ChallengeBuilder - builds the 402 payment requirements for a protected resource
"""

from x402_gate.config import GateConfig
from x402_gate.types import (
    SCHEME_EXACT,
    X402_VERSION,
    PaymentRequired,
    PaymentRequirements,
    PaymentRequirementsExtra,
    ResourceInfo,
)


class ChallengeBuilder:
    """
    Builds payment requirements from the immutable gate configuration.

    The output depends only on the configuration and the resource path, so the
    requirements advertised in a challenge are the same ones later used to
    verify and settle the payment.
    """

    def __init__(self, config: GateConfig) -> None:
        self._config = config

    def build_requirements(self) -> PaymentRequirements:
        """Build the single ``exact`` scheme requirement accepted by this gate"""
        config = self._config
        return PaymentRequirements(
            scheme=SCHEME_EXACT,
            network=config.network,
            amount=config.price,
            asset=config.asset,
            payTo=config.pay_to,
            maxTimeoutSeconds=config.max_timeout_seconds,
            extra=PaymentRequirementsExtra(
                name=config.token_name,
                version=config.token_version,
                decimals=config.token_decimals,
            ),
        )

    def build(self, resource_path: str, error: str | None = None) -> PaymentRequired:
        """
        Build a 402 challenge.

        Args:
            resource_path: Path of the protected resource
            error: Optional reason the previous payment attempt was rejected

        Returns:
            PaymentRequired
        """
        return PaymentRequired(
            x402Version=X402_VERSION,
            error=error,
            resource=ResourceInfo(
                url=resource_path,
                description=self._config.resource_description,
                mimeType=self._config.mime_type,
            ),
            accepts=[self.build_requirements()],
        )
