"""
Synthetic settlement - local verification only, no funds move.

Selected only when direct settlement is requested without a settlement key and
ALLOW_SYNTHETIC_SETTLEMENT is set. Every result is labelled ``synthetic``.
"""

import logging

from x402_gate.settlement.base import extract_authorization
from x402_gate.settlement.local import LocalVerificationBackend, require_complete
from x402_gate.types import PaymentPayload, PaymentRequirements, SettlementResult

logger = logging.getLogger(__name__)


class SyntheticBackend(LocalVerificationBackend):
    """Verifies signatures in-process and fabricates a labelled settlement"""

    name = "synthetic"
    real_payments = False

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettlementResult:
        authorization, signature = extract_authorization(payload)
        auth = require_complete(authorization, signature)

        logger.warning(
            "Synthetic settlement: no transaction submitted for from=%s, value=%s",
            auth.from_address,
            auth.value,
        )
        return SettlementResult(
            transactionHash=f"synthetic:{auth.nonce}",
            payer=auth.from_address,
            payee=auth.to,
            amountTransferred=auth.value,
            network=self._config.network,
            synthetic=True,
        )
