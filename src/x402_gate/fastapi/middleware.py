"""
FastAPI adapter for PaymentGate
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from x402_gate.gate import GateOutcome, PaymentGate

logger = logging.getLogger(__name__)


async def read_json_body(request: Request) -> Any:
    """Parse the request body as JSON, treating a missing or invalid body as ``{}``"""
    try:
        return await request.json()
    except ValueError:
        logger.debug("Request body is not valid JSON, using empty object")
        return {}


def outcome_to_response(outcome: GateOutcome) -> JSONResponse:
    """Convert a GateOutcome into a JSON response carrying its payment headers"""
    response = JSONResponse(content=outcome.body, status_code=outcome.status_code)
    for name, value in outcome.headers.items():
        response.headers[name] = value
    return response


class X402Middleware:
    """
    Route handler that puts a PaymentGate in front of a resource.

    Usage:
        gate = PaymentGate(config, backend, fulfiller)
        middleware = X402Middleware(gate)
        app.add_api_route("/fulfill", middleware.handle, methods=["POST"])
    """

    def __init__(self, gate: PaymentGate) -> None:
        self._gate = gate

    async def handle(self, request: Request) -> JSONResponse:
        body = await read_json_body(request)
        outcome = await self._gate.handle(request.headers, body, request.url.path)
        logger.info(
            "%s %s -> %d (%s)",
            request.method,
            request.url.path,
            outcome.status_code,
            outcome.state.value,
        )
        return outcome_to_response(outcome)
