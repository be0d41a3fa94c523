from x402_gate.tokens.registry import TokenInfo, TokenRegistry

__all__ = ["TokenInfo", "TokenRegistry"]
