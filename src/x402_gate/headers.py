"""
HTTP header names and payment header extraction.

Clients may send the payment under several equivalent header names. Lookup is
case-insensitive and follows ``PAYMENT_HEADER_ALIASES`` in order: the first alias
present wins, even when a lower-precedence alias is also sent.
"""

import logging
from typing import Mapping

from x402_gate.encoding import decode_payment_payload
from x402_gate.exceptions import DecodeError
from x402_gate.types import PaymentPayload

logger = logging.getLogger(__name__)

PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"
X_PAYMENT_HEADER = "X-PAYMENT"
X_PAYMENT_SIGNATURE_HEADER = "X-PAYMENT-SIGNATURE"

PAYMENT_REQUIRED_HEADER = "PAYMENT-REQUIRED"
PAYMENT_RESPONSE_HEADER = "PAYMENT-RESPONSE"
X_PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"

# Highest precedence first
PAYMENT_HEADER_ALIASES: tuple[str, ...] = (
    PAYMENT_SIGNATURE_HEADER,
    X_PAYMENT_HEADER,
    X_PAYMENT_SIGNATURE_HEADER,
)


def find_payment_header(headers: Mapping[str, str]) -> tuple[str, str] | None:
    """Locate the payment header value.

    Args:
        headers: Request headers (any mapping; keys compared case-insensitively)

    Returns:
        (alias, value) for the highest-precedence alias present, or None
    """
    lowered = {key.lower(): value for key, value in headers.items()}
    for alias in PAYMENT_HEADER_ALIASES:
        value = lowered.get(alias.lower())
        if value:
            return alias, value
    return None


def extract_payment(headers: Mapping[str, str]) -> PaymentPayload | None:
    """Decode the client's payment payload, or None when no usable payment is present.

    A malformed header value is treated exactly like a missing one.
    """
    found = find_payment_header(headers)
    if found is None:
        return None

    alias, value = found
    try:
        return decode_payment_payload(value, PaymentPayload)
    except DecodeError as e:
        logger.warning("Failed to decode %s header: %s", alias, e)
        return None
