"""
Facilitator settlement strategy - delegates verify/settle to a remote facilitator
"""

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from x402_gate.exceptions import SettlementFailure, VerificationFailure
from x402_gate.settlement.base import SettlementBackend, extract_authorization
from x402_gate.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SettlementResult,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


class FacilitatorClient:
    """
    Client for communicating with a facilitator service.

    Handles the ``/verify`` and ``/settle`` calls.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used in tests)
        """
        self.base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def build_request_body(
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> dict[str, Any]:
        return {
            "x402Version": payload.x402_version,
            "paymentPayload": payload.to_wire(),
            "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
        }

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.post(f"{self.base_url}{path}", json=body)
        response.raise_for_status()
        return response.json()

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment signature (without executing on-chain transaction).

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses
        """
        data = await self._post("/verify", self.build_request_body(payload, requirements))
        logger.info("Facilitator verify response: %s", json.dumps(data))
        return VerifyResponse(**data)

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement (on-chain transaction).

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses
        """
        data = await self._post("/settle", self.build_request_body(payload, requirements))
        logger.info("Facilitator settle response: %s", json.dumps(data))
        return SettleResponse(**data)


def _error_reason(error: httpx.HTTPStatusError, *keys: str) -> str:
    """Pull a reason code out of a non-2xx facilitator response body"""
    try:
        body = error.response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in keys:
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return f"facilitator_http_{error.response.status_code}"


class FacilitatorBackend(SettlementBackend):
    """Settlement through a trusted remote facilitator"""

    name = "facilitator"

    def __init__(self, client: FacilitatorClient) -> None:
        self._client = client

    @property
    def facilitator_url(self) -> str:
        return self._client.base_url

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        try:
            result = await self._client.verify(payload, requirements)
        except httpx.HTTPStatusError as e:
            raise VerificationFailure(_error_reason(e, "invalidReason", "invalidMessage", "error")) from e
        except httpx.TimeoutException as e:
            raise VerificationFailure("facilitator_timeout") from e
        except httpx.HTTPError as e:
            logger.error("Facilitator verify request failed: %s", e)
            raise VerificationFailure("facilitator_unavailable") from e
        except (ValueError, ValidationError, TypeError) as e:
            raise VerificationFailure("invalid_facilitator_response") from e

        if not result.is_valid:
            raise VerificationFailure(
                result.invalid_reason or result.invalid_message or "verification_failed"
            )
        return result

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettlementResult:
        try:
            result = await self._client.settle(payload, requirements)
        except httpx.HTTPStatusError as e:
            raise SettlementFailure(_error_reason(e, "errorReason", "errorMessage", "error")) from e
        except httpx.TimeoutException as e:
            raise SettlementFailure("facilitator_timeout") from e
        except httpx.HTTPError as e:
            logger.error("Facilitator settle request failed: %s", e)
            raise SettlementFailure("facilitator_unavailable") from e
        except (ValueError, ValidationError, TypeError) as e:
            raise SettlementFailure("invalid_facilitator_response") from e

        if not result.success:
            raise SettlementFailure(result.error_reason or result.error_message or "settlement_failed")
        if not result.transaction:
            raise SettlementFailure("missing_transaction_hash")

        authorization, _ = extract_authorization(payload)
        payer = result.payer or (authorization.from_address if authorization else None)

        return SettlementResult(
            transactionHash=result.transaction,
            payer=payer,
            payee=requirements.pay_to,
            amountTransferred=(
                authorization.value if authorization and authorization.value else requirements.amount
            ),
            network=result.network or requirements.network,
        )

    async def close(self) -> None:
        await self._client.close()
