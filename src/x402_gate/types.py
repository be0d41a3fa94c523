"""
Type definitions for the x402 payment protocol
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

X402_VERSION = 2

SCHEME_EXACT = "exact"

_CAIP2_PATTERN = re.compile(r"^[-a-z0-9]{3,8}:[-_a-zA-Z0-9]{1,32}$")
_UINT_PATTERN = re.compile(r"[0-9]+")


def is_uint_string(value: Any) -> bool:
    """True for a base-10 unsigned integer written with ASCII digits only"""
    return isinstance(value, str) and _UINT_PATTERN.fullmatch(value) is not None


class PaymentRequirementsExtra(BaseModel):
    """Token EIP-712 domain parameters carried in payment requirements"""

    name: Optional[str] = None
    version: Optional[str] = None
    decimals: Optional[int] = None

    class Config:
        extra = "allow"


class PaymentRequirements(BaseModel):
    """Payment requirements advertised by the server"""

    scheme: str
    network: str
    amount: str
    asset: str
    pay_to: str = Field(alias="payTo")
    max_timeout_seconds: Optional[int] = Field(None, alias="maxTimeoutSeconds")
    extra: Optional[PaymentRequirementsExtra] = None

    class Config:
        populate_by_name = True
        extra = "allow"

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> str:
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if not is_uint_string(v):
            raise ValueError("amount must be a non-negative integer encoded as a string")
        return v

    @field_validator("network")
    @classmethod
    def validate_network(cls, v: str) -> str:
        if not _CAIP2_PATTERN.match(v):
            raise ValueError(f"network must be a CAIP-2 chain identifier, got {v!r}")
        return v


class ResourceInfo(BaseModel):
    """Resource information"""

    url: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    class Config:
        populate_by_name = True
        extra = "allow"


class PaymentRequired(BaseModel):
    """Payment required challenge (402)"""

    x402_version: int = Field(alias="x402Version")
    error: Optional[str] = None
    resource: Optional[ResourceInfo] = None
    accepts: list[PaymentRequirements]

    class Config:
        populate_by_name = True


class TransferAuthorization(BaseModel):
    """EIP-3009 TransferWithAuthorization parameters.

    Every field is optional at parse time so that structurally incomplete
    authorizations can be reported precisely instead of failing to decode.
    """

    from_address: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    value: Optional[str] = None
    valid_after: Optional[str] = Field(None, alias="validAfter")
    valid_before: Optional[str] = Field(None, alias="validBefore")
    nonce: Optional[str] = None  # 32-byte hex string (0x...)

    class Config:
        populate_by_name = True
        extra = "allow"

    @field_validator("value", "valid_after", "valid_before", mode="before")
    @classmethod
    def coerce_integer_strings(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def missing_fields(self) -> list[str]:
        """Return the wire names of required fields that are absent"""
        fields = {
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "nonce": self.nonce,
        }
        return [name for name, value in fields.items() if not value]


class PaymentPayloadData(BaseModel):
    """Scheme-specific part of the payment payload"""

    signature: Optional[str] = None
    authorization: Optional[TransferAuthorization] = None

    class Config:
        populate_by_name = True
        extra = "allow"


class PaymentPayload(BaseModel):
    """Payment payload sent by client"""

    x402_version: int = Field(X402_VERSION, alias="x402Version")
    resource: Optional[ResourceInfo] = None
    accepted: Optional[PaymentRequirements] = None
    payload: PaymentPayloadData = Field(default_factory=PaymentPayloadData)
    extensions: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True
        extra = "allow"

    def to_wire(self) -> dict[str, Any]:
        """Serialize the payload as received, without injected defaults"""
        return self.model_dump(by_alias=True, exclude_unset=True)


class VerifyResponse(BaseModel):
    """Verification response"""

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    invalid_message: Optional[str] = Field(None, alias="invalidMessage")
    payer: Optional[str] = None

    class Config:
        populate_by_name = True


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    success: bool
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None
    error_reason: Optional[str] = Field(None, alias="errorReason")
    error_message: Optional[str] = Field(None, alias="errorMessage")

    class Config:
        populate_by_name = True


class SettlementResult(BaseModel):
    """Confirmed outcome of a settled payment"""

    transaction_hash: str = Field(alias="transactionHash")
    payer: Optional[str] = None
    payee: str
    amount_transferred: str = Field(alias="amountTransferred")
    network: str
    block_number: Optional[int] = Field(None, alias="blockNumber")
    synthetic: bool = False

    class Config:
        populate_by_name = True
        frozen = True


class PaymentResponse(BaseModel):
    """Settlement metadata encoded into the PAYMENT-RESPONSE header"""

    success: bool = True
    transaction: str
    transaction_hash: str = Field(alias="transactionHash")
    network: str
    payer: Optional[str] = None
    synthetic: Optional[bool] = None

    class Config:
        populate_by_name = True

    @classmethod
    def from_settlement(cls, result: SettlementResult) -> "PaymentResponse":
        return cls(
            success=True,
            transaction=result.transaction_hash,
            transactionHash=result.transaction_hash,
            network=result.network,
            payer=result.payer,
            synthetic=True if result.synthetic else None,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
