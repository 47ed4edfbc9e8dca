"""Tests for partial-update request bodies."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from winnipeg_connect.schemas.jobs import UpdateJobRequest
from winnipeg_connect.schemas.quotes import UpdateQuoteRequest


class TestUpdateQuoteRequest:
    @pytest.mark.parametrize(
        "field",
        ["price_amount", "price_type", "price_breakdown", "message", "includes_supplies"],
    )
    def test_explicit_null_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError, match=f"{field} cannot be null"):
            UpdateQuoteRequest.model_validate({field: None})

    def test_omitted_fields_are_not_sent(self) -> None:
        request = UpdateQuoteRequest.model_validate({"price_amount": "450.00"})
        assert request.to_fields(exclude_unset=True) == {"price_amount": Decimal("450.00")}

    def test_optional_fields_can_be_cleared(self) -> None:
        request = UpdateQuoteRequest.model_validate({"warranty": None, "terms": None})
        assert request.to_fields(exclude_unset=True) == {"warranty": None, "terms": None}

    def test_all_offending_fields_reported(self) -> None:
        with pytest.raises(ValidationError, match="message, price_amount cannot be null"):
            UpdateQuoteRequest.model_validate({"price_amount": None, "message": None})


class TestUpdateJobRequest:
    @pytest.mark.parametrize(
        "field",
        [
            "title",
            "description",
            "category",
            "subcategories",
            "budget",
            "priority",
            "is_urgent",
            "response_time",
        ],
    )
    def test_explicit_null_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError, match=f"{field} cannot be null"):
            UpdateJobRequest.model_validate({field: None})

    def test_nullable_documents_can_be_cleared(self) -> None:
        request = UpdateJobRequest.model_validate(
            {"location": None, "timeline": None, "requirements": None}
        )
        assert request.to_fields() == {"location": None, "timeline": None, "requirements": None}

    def test_empty_body_changes_nothing(self) -> None:
        assert UpdateJobRequest.model_validate({}).to_fields() == {}
