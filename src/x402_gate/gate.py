"""
PaymentGate - HTTP 402 payment state machine for a protected resource.

A request moves through::

    NO_PAYMENT -> CHALLENGED                      (402, no usable payment header)
    NO_PAYMENT -> VERIFYING -> FAILED             (402 / 500)
    NO_PAYMENT -> VERIFYING -> SETTLING -> FAILED (500)
    NO_PAYMENT -> VERIFYING -> SETTLING -> SETTLED (200)

The gate is framework agnostic: ``handle`` takes headers and a parsed body and
returns a GateOutcome that the HTTP layer turns into a response.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Protocol

from x402_gate.challenge import ChallengeBuilder
from x402_gate.config import GateConfig, NetworkConfig
from x402_gate.encoding import encode_payment_payload
from x402_gate.exceptions import InvalidAuthorization, SettlementFailure, VerificationFailure
from x402_gate.headers import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
    extract_payment,
)
from x402_gate.settlement.base import SettlementBackend
from x402_gate.types import (
    SCHEME_EXACT,
    X402_VERSION,
    PaymentPayload,
    PaymentRequirements,
    PaymentResponse,
    SettlementResult,
)

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    NO_PAYMENT = "no_payment"
    VERIFYING = "verifying"
    SETTLING = "settling"
    SETTLED = "settled"
    CHALLENGED = "challenged"
    FAILED = "failed"


@dataclass
class GateOutcome:
    """Terminal state of one request and the HTTP response to send"""

    state: GateState
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class Fulfiller(Protocol):
    """Service invoked once a payment has settled"""

    def fulfill_request(self, intent_id: str, input: Any) -> str: ...


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PaymentGate:
    """
    Gate a resource behind an x402 ``exact`` payment.

    Args:
        config: Process configuration
        backend: Settlement strategy selected at startup
        fulfiller: Service called after settlement
        challenge_builder: Optional builder (defaults to one over *config*)
    """

    def __init__(
        self,
        config: GateConfig,
        backend: SettlementBackend,
        fulfiller: Fulfiller,
        challenge_builder: ChallengeBuilder | None = None,
    ) -> None:
        self._config = config
        self._backend = backend
        self._fulfiller = fulfiller
        self._challenges = challenge_builder or ChallengeBuilder(config)

    async def handle(
        self,
        headers: Mapping[str, str],
        body: Any,
        resource_path: str | None = None,
    ) -> GateOutcome:
        """
        Process one request to the protected resource.

        Args:
            headers: Request headers
            body: Parsed JSON body (anything that is not an object is treated as ``{}``)
            resource_path: Path of the resource (defaults to the configured one)

        Returns:
            GateOutcome
        """
        path = resource_path or self._config.resource_path
        payload = extract_payment(headers)
        if payload is None:
            logger.info("No payment presented for %s, issuing challenge", path)
            return self._payment_required(path)

        # Built once; the same object is used for verify and settle
        requirements = self._challenges.build_requirements()

        logger.info("Verifying payment for %s via %s backend", path, self._backend.name)
        try:
            self._match_accepted(payload, requirements)
            verification = await self._backend.verify(payload, requirements)
        except VerificationFailure as e:
            logger.info("Payment verification failed: %s", e.reason)
            return self._verification_failed(path, e.reason)
        except InvalidAuthorization as e:
            logger.warning("Invalid payment authorization: %s", e.reason)
            return self._invalid_authorization(e.reason)
        except Exception:
            logger.error("Unexpected error during verification", exc_info=True)
            return GateOutcome(
                state=GateState.FAILED,
                status_code=500,
                body={"error": "Payment verification failed", "reason": "internal_error"},
            )

        logger.info("Payment verified for payer=%s, settling", verification.payer)
        try:
            result = await self._backend.settle(payload, requirements)
        except InvalidAuthorization as e:
            logger.warning("Invalid payment authorization at settlement: %s", e.reason)
            return self._invalid_authorization(e.reason)
        except SettlementFailure as e:
            logger.error("Payment settlement failed: %s", e)
            error_body: dict[str, Any] = {"error": "Payment settlement failed", "reason": e.reason}
            tx_hash = getattr(e, "tx_hash", None)
            if tx_hash:
                error_body["txHash"] = tx_hash
            return GateOutcome(state=GateState.FAILED, status_code=500, body=error_body)
        except Exception:
            logger.error("Unexpected error during settlement", exc_info=True)
            return GateOutcome(
                state=GateState.FAILED,
                status_code=500,
                body={"error": "Payment settlement failed", "reason": "internal_error"},
            )

        logger.info(
            "Payment settled: tx=%s",
            result.transaction_hash,
            extra={"network": result.network, "payer": result.payer, "synthetic": result.synthetic},
        )
        return await self._fulfill(body, result)

    @staticmethod
    def _match_accepted(payload: PaymentPayload, requirements: PaymentRequirements) -> None:
        """Check the requirements the client says it accepted against ours"""
        accepted = payload.accepted
        if accepted is None:
            return
        if accepted.scheme != SCHEME_EXACT:
            raise VerificationFailure("unsupported_scheme")
        if accepted.network != requirements.network:
            raise VerificationFailure("network_mismatch")
        if accepted.asset.lower() != requirements.asset.lower():
            raise VerificationFailure("asset_mismatch")
        if accepted.pay_to.lower() != requirements.pay_to.lower():
            raise VerificationFailure("payto_mismatch")
        if int(accepted.amount) < int(requirements.amount):
            raise VerificationFailure("amount_mismatch")

    async def _fulfill(self, body: Any, result: SettlementResult) -> GateOutcome:
        headers = self._payment_response_headers(result)
        request = body if isinstance(body, dict) else {}
        intent_id = str(request.get("intentId") or "unknown")

        try:
            output = self._fulfiller.fulfill_request(intent_id, request.get("input"))
            if inspect.isawaitable(output):
                output = await output
        except Exception:
            logger.error("Fulfillment failed for intent %s", intent_id, exc_info=True)
            return GateOutcome(
                state=GateState.SETTLED,
                status_code=500,
                body={
                    "error": "Fulfillment failed",
                    "reason": "fulfillment_error",
                    "txHash": result.transaction_hash,
                },
                headers=headers,
            )

        payment: dict[str, Any] = {
            "status": "settled",
            "txHash": result.transaction_hash,
            "network": result.network,
            "amount": self._config.format_amount(result.amount_transferred),
            "payTo": result.payee,
            "payer": result.payer,
            "explorerUrl": (
                None
                if result.synthetic
                else NetworkConfig.get_explorer_tx_url(result.network, result.transaction_hash)
            ),
        }
        if result.block_number is not None:
            payment["blockNumber"] = result.block_number
        if result.synthetic:
            payment["synthetic"] = True

        return GateOutcome(
            state=GateState.SETTLED,
            status_code=200,
            body={
                "success": True,
                "intentId": intent_id,
                "result": output,
                "timestamp": _utc_timestamp(),
                "payment": payment,
            },
            headers=headers,
        )

    @staticmethod
    def _payment_response_headers(result: SettlementResult) -> dict[str, str]:
        encoded = encode_payment_payload(PaymentResponse.from_settlement(result).to_wire())
        return {PAYMENT_RESPONSE_HEADER: encoded, X_PAYMENT_RESPONSE_HEADER: encoded}

    def _challenge_headers(self, path: str, error: str | None = None) -> dict[str, str]:
        return {PAYMENT_REQUIRED_HEADER: encode_payment_payload(self._challenges.build(path, error))}

    def _payment_required(self, path: str) -> GateOutcome:
        return GateOutcome(
            state=GateState.CHALLENGED,
            status_code=402,
            body={
                "error": "Payment required",
                "x402Version": X402_VERSION,
                "message": f"Pay {self._config.display_price} to {self._config.pay_to}",
            },
            headers=self._challenge_headers(path),
        )

    def _verification_failed(self, path: str, reason: str) -> GateOutcome:
        return GateOutcome(
            state=GateState.FAILED,
            status_code=402,
            body={"error": "Payment verification failed", "reason": reason},
            headers=self._challenge_headers(path, reason),
        )

    @staticmethod
    def _invalid_authorization(reason: str) -> GateOutcome:
        return GateOutcome(
            state=GateState.FAILED,
            status_code=500,
            body={"error": "Invalid payment authorization", "reason": reason},
        )
