"""
FastAPI integration for x402 payment gating
"""

from x402_gate.fastapi.app import create_app
from x402_gate.fastapi.middleware import X402Middleware, outcome_to_response

__all__ = ["X402Middleware", "create_app", "outcome_to_response"]
