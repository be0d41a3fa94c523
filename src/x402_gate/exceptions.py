"""
x402-gate exception hierarchy
"""


class X402Error(Exception):
    """x402-gate base exception"""

    pass


class DecodeError(X402Error):
    """Header value is not valid base64 JSON (treated as "no payment")"""

    pass


class ReasonError(X402Error):
    """Error carrying a short, client-safe reason code"""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class VerificationFailure(ReasonError):
    """Payment failed verification; the client can correct and retry"""

    pass


class InvalidAuthorization(ReasonError):
    """Authorization is structurally incomplete"""

    pass


class SettlementFailure(ReasonError):
    """Settlement failed or ended in an indeterminate on-chain state"""

    pass


class OnChainRevert(SettlementFailure):
    """transferWithAuthorization reverted"""

    def __init__(self, reason: str = "transaction_reverted", tx_hash: str | None = None):
        self.tx_hash = tx_hash
        super().__init__(reason)


class SettlementTimeout(SettlementFailure):
    """Transaction was not confirmed within the configured deadline"""

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(
            "confirmation_timeout",
            f"Transaction {tx_hash} not confirmed within {timeout}s",
        )


class ConfigurationError(X402Error):
    """Configuration-related error"""

    pass


class UnsupportedNetworkError(ConfigurationError):
    """Unsupported network"""

    pass


class UnknownTokenError(ConfigurationError):
    """Unknown token"""

    pass
