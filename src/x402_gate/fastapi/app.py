"""
FastAPI application exposing the paid fulfillment endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from x402_gate.config import GateConfig
from x402_gate.fastapi.middleware import X402Middleware
from x402_gate.fulfillment import DemoFulfiller
from x402_gate.gate import Fulfiller, PaymentGate
from x402_gate.headers import (
    PAYMENT_HEADER_ALIASES,
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
)
from x402_gate.settlement import FacilitatorBackend, SettlementBackend, create_backend
from x402_gate.types import X402_VERSION

logger = logging.getLogger(__name__)

SERVICE_NAME = "x402 Intent Fulfillment Gate"


def create_app(
    config: GateConfig,
    backend: SettlementBackend | None = None,
    fulfiller: Fulfiller | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Process configuration
        backend: Settlement strategy (selected from *config* if omitted)
        fulfiller: Service called after settlement (demo fulfiller if omitted)

    Returns:
        FastAPI application

    Raises:
        ConfigurationError: If no settlement backend can be built from *config*
    """
    if backend is None:
        backend = create_backend(config)
    gate = PaymentGate(config, backend, fulfiller or DemoFulfiller())
    middleware = X402Middleware(gate)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "x402 gate ready: POST %s, price=%s, payTo=%s, network=%s, settlement=%s",
            config.resource_path,
            config.display_price,
            config.pay_to,
            config.network,
            backend.name,
        )
        if not backend.real_payments:
            logger.warning("Settlement is SYNTHETIC: payments are verified but no funds move")
        yield
        await backend.close()

    app = FastAPI(title=SERVICE_NAME, description=config.resource_description, lifespan=lifespan)
    app.state.gate = gate

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Content-Type", *PAYMENT_HEADER_ALIASES],
        expose_headers=[PAYMENT_REQUIRED_HEADER, PAYMENT_RESPONSE_HEADER, X_PAYMENT_RESPONSE_HEADER],
    )

    app.add_api_route(config.resource_path, middleware.handle, methods=["POST"])

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Liveness and payment configuration"""
        status: dict[str, Any] = {
            "status": "ok",
            "x402": True,
            "x402Version": X402_VERSION,
            "realPayments": backend.real_payments,
            "settlementMode": backend.name,
            "network": config.network,
            "payTo": config.pay_to,
            "price": config.display_price,
        }
        if isinstance(backend, FacilitatorBackend):
            status["facilitator"] = backend.facilitator_url
        return status

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Service info"""
        return {
            "service": SERVICE_NAME,
            "description": config.resource_description,
            "status": "running",
            "x402Version": X402_VERSION,
            "network": config.network,
            "payTo": config.pay_to,
            "price": config.display_price,
            "endpoints": {
                f"POST {config.resource_path}": "Fulfill an intent (requires x402 payment)",
                "GET /health": "Health check",
            },
        }

    return app
