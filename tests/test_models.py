"""
Tests for domain and wire models.
"""

import base64
from decimal import Decimal

import pytest
from pydantic import ValidationError

from inapppay.models.domain import Outcome, ProductDescriptor, PurchaseResult
from inapppay.models.verify_receipt import VerifyReceiptRequest, VerifyReceiptResponse


class TestProductDescriptor:
    """Tests for ProductDescriptor validation."""

    def test_valid_product(self):
        product = ProductDescriptor(
            product_id="com.app.pro", title="Pro", price=Decimal("4.99"), currency="USD"
        )

        assert product.product_id == "com.app.pro"
        assert product.price == Decimal("4.99")

    def test_missing_product_id(self):
        with pytest.raises(ValueError, match="Product ID required"):
            ProductDescriptor(product_id="")

    def test_negative_price(self):
        with pytest.raises(ValueError, match="Price cannot be negative"):
            ProductDescriptor(product_id="com.app.pro", price=Decimal("-1"))

    def test_immutable(self):
        product = ProductDescriptor(product_id="com.app.pro")

        with pytest.raises(AttributeError):
            product.product_id = "other"  # type: ignore[misc]


class TestPurchaseResult:
    def test_is_success(self):
        assert PurchaseResult(Outcome.SUCCESS).is_success is True
        assert PurchaseResult(Outcome.VERIFICATION_FAILED).is_success is False


class TestVerifyReceiptRequest:
    """Request body encoding."""

    def test_body_with_password(self):
        request = VerifyReceiptRequest.from_receipt(b"\x00\x01receipt", "secret")

        assert request.to_body() == {
            "receipt-data": base64.b64encode(b"\x00\x01receipt").decode(),
            "password": "secret",
        }

    def test_empty_secret_omitted(self):
        assert "password" not in VerifyReceiptRequest.from_receipt(b"receipt").to_body()

    def test_empty_receipt_rejected(self):
        with pytest.raises(ValidationError):
            VerifyReceiptRequest.from_receipt(b"")


class TestVerifyReceiptResponse:
    """Response parsing."""

    def test_valid(self):
        response = VerifyReceiptResponse.model_validate_json(b'{"status": 0, "receipt": {}}')

        assert response.is_valid
        assert not response.is_environment_mismatch

    @pytest.mark.parametrize("status", [21007, 21008])
    def test_mismatch(self, status):
        response = VerifyReceiptResponse(status=status)

        assert response.is_environment_mismatch
        assert not response.is_valid

    def test_missing_status(self):
        with pytest.raises(ValidationError):
            VerifyReceiptResponse.model_validate_json(b'{"environment": "Sandbox"}')

    def test_not_json(self):
        with pytest.raises(ValidationError):
            VerifyReceiptResponse.model_validate_json(b"not json")
