"""
SettlementBackend interface and payload helpers
"""

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from x402_gate.types import (
    PaymentPayload,
    PaymentRequirements,
    SettlementResult,
    TransferAuthorization,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


class SettlementBackend(ABC):
    """
    Verifies and settles a client payment.

    ``verify`` raises VerificationFailure for client-correctable problems and
    InvalidAuthorization for structurally incomplete payloads. ``settle`` raises
    SettlementFailure (or a subclass) and must only be called after ``verify``
    succeeded for the same payload and requirements.
    """

    name: str = "base"
    real_payments: bool = True

    @abstractmethod
    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Verify the payment against *requirements*"""
        pass

    @abstractmethod
    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettlementResult:
        """Settle a verified payment"""
        pass

    async def close(self) -> None:
        """Release network resources"""
        pass


def extract_authorization(
    payload: PaymentPayload,
) -> tuple[TransferAuthorization | None, str | None]:
    """Locate the EIP-3009 authorization and signature in a payment payload.

    Checked in order: ``payload.authorization`` (x402 exact scheme),
    ``extensions.transferAuthorization``, then authorization fields flattened
    directly into ``payload``.

    Returns:
        (authorization or None, signature or None)
    """
    data = payload.payload
    signature = data.signature

    if data.authorization is not None:
        return data.authorization, signature

    candidates = []
    if payload.extensions and isinstance(payload.extensions.get("transferAuthorization"), dict):
        candidates.append(payload.extensions["transferAuthorization"])
    flattened = data.model_extra or {}
    if "from" in flattened or "nonce" in flattened:
        candidates.append(flattened)

    for candidate in candidates:
        try:
            return TransferAuthorization.model_validate(candidate), signature
        except ValidationError as e:
            logger.debug("Ignoring malformed authorization candidate: %s", e)

    return None, signature
