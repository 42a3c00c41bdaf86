"""
Receipt verification wire models - Pydantic models for the verifyReceipt endpoint.

Request:  {"receipt-data": "<base64>", "password": "<shared secret>"}
Response: {"status": <int>, ...}
"""

import base64

from pydantic import BaseModel, ConfigDict, Field

STATUS_OK = 0
STATUS_SANDBOX_RECEIPT_ON_PRODUCTION = 21007  # Retry against sandbox
STATUS_PRODUCTION_RECEIPT_ON_SANDBOX = 21008  # Retry against production


class VerifyReceiptRequest(BaseModel):
    """POST body sent to the verification endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    receipt_data: str = Field(..., alias="receipt-data", min_length=1)
    password: str | None = None

    @classmethod
    def from_receipt(cls, receipt: bytes, shared_secret: str = "") -> "VerifyReceiptRequest":
        """Build a request from the raw receipt; an empty secret is omitted."""
        return cls(
            receipt_data=base64.b64encode(receipt).decode("ascii"),
            password=shared_secret or None,
        )

    def to_body(self) -> dict[str, str]:
        """Serialize with wire names, dropping the password when absent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class VerifyReceiptResponse(BaseModel):
    """Verification endpoint response. Only `status` is interpreted."""

    model_config = ConfigDict(extra="allow")

    status: int
    environment: str | None = None

    @property
    def is_valid(self) -> bool:
        """Check if the receipt was accepted."""
        return self.status == STATUS_OK

    @property
    def is_environment_mismatch(self) -> bool:
        """Check if the receipt belongs to the other verification server."""
        return self.status in (
            STATUS_SANDBOX_RECEIPT_ON_PRODUCTION,
            STATUS_PRODUCTION_RECEIPT_ON_SANDBOX,
        )
