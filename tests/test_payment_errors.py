"""
Tests for platform payment error classification.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from inapppay.models.payment_errors import (
    PaymentErrorCategory,
    PaymentErrorCode,
    classify_payment_error,
)


class TestClassifyPaymentError:
    """Mapping platform codes to diagnostic categories."""

    @pytest.mark.parametrize("code", list(PaymentErrorCode))
    def test_every_code_has_a_category(self, code):
        category, message = classify_payment_error(code)

        assert category is not PaymentErrorCategory.UNKNOWN_ERROR
        assert message

    def test_categories_are_distinct(self):
        categories = {classify_payment_error(code)[0] for code in PaymentErrorCode}
        assert len(categories) == len(PaymentErrorCode)

    def test_known_mappings(self):
        assert classify_payment_error(0)[0] is PaymentErrorCategory.UNKNOWN_OR_JAILBREAK
        assert classify_payment_error(2)[0] is PaymentErrorCategory.USER_CANCELLED
        assert (
            classify_payment_error(PaymentErrorCode.OVERLAY_PRESENTED_IN_BACKGROUND_SCENE)[0]
            is PaymentErrorCategory.OVERLAY_BACKGROUND_SCENE
        )

    def test_missing_code(self):
        assert classify_payment_error(None)[0] is PaymentErrorCategory.UNKNOWN_ERROR

    @given(st.integers().filter(lambda c: c not in {code.value for code in PaymentErrorCode}))
    def test_unrecognised_codes_fall_back(self, code):
        category, message = classify_payment_error(code)

        assert category is PaymentErrorCategory.UNKNOWN_ERROR
        assert str(code) in message
