"""Unit tests for et_expense and et_category request schemas."""

import uuid
from datetime import date

import pytest
from pydantic import ValidationError

from src.et_category.application.schemas import CategoryCreateRequest, CategoryUpdateRequest
from src.et_common.money import MAX_AMOUNT
from src.et_expense.application.schemas import BulkDeleteRequest, ExpenseCreateRequest, ExpenseUpdateRequest

CATEGORY_ID = str(uuid.uuid4())


def _expense_body(**overrides) -> dict:
    body = {"amount": 25.5, "category": CATEGORY_ID, "description": "Lunch"}
    body.update(overrides)
    return body


class TestExpenseCreateRequest:
    def test_minimal_body(self):
        req = ExpenseCreateRequest.model_validate(_expense_body())
        fields = req.to_domain_fields()
        assert fields["amount_cents"] == 2550
        assert fields["category_id"] == uuid.UUID(CATEGORY_ID)
        assert fields["payment_method"] == "cash"
        assert fields["currency"] is None
        assert fields["date"] is None
        assert "amount" not in fields

    def test_full_body(self):
        req = ExpenseCreateRequest.model_validate(
            _expense_body(
                currency="eur",
                date="2024-01-15",
                paymentMethod="credit_card",
                tags=[" food ", "food", "", "work"],
                isRecurring=True,
                recurringPeriod="monthly",
            )
        )
        fields = req.to_domain_fields()
        assert fields["currency"] == "EUR"
        assert fields["date"] == date(2024, 1, 15)
        assert fields["payment_method"] == "credit_card"
        assert fields["tags"] == ["food", "work"]
        assert fields["recurring_period"] == "monthly"

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseCreateRequest.model_validate(_expense_body(amount=-1))

    @pytest.mark.parametrize("amount", [1e20, float("inf"), float("nan")])
    def test_unstorable_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            ExpenseCreateRequest.model_validate(_expense_body(amount=amount))

    def test_largest_amount_accepted(self):
        req = ExpenseCreateRequest.model_validate(_expense_body(amount=MAX_AMOUNT))
        assert req.to_domain_fields()["amount_cents"] == MAX_AMOUNT * 100

    def test_blank_description_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseCreateRequest.model_validate(_expense_body(description="   "))

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseCreateRequest.model_validate(_expense_body(paymentMethod="barter"))

    def test_malformed_category_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseCreateRequest.model_validate(_expense_body(category="not-an-id"))

    def test_recurring_without_period_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseCreateRequest.model_validate(_expense_body(isRecurring=True))

    def test_period_dropped_when_not_recurring(self):
        req = ExpenseCreateRequest.model_validate(_expense_body(recurringPeriod="weekly"))
        assert req.recurring_period is None


class TestExpenseUpdateRequest:
    def test_only_sent_fields(self):
        req = ExpenseUpdateRequest.model_validate({"amount": 10, "notes": None})
        assert req.changes() == {"amount_cents": 1000, "notes": None}

    def test_empty_body_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseUpdateRequest.model_validate({})

    def test_null_amount_rejected(self):
        with pytest.raises(ValidationError):
            ExpenseUpdateRequest.model_validate({"amount": None})

    def test_category_alias(self):
        req = ExpenseUpdateRequest.model_validate({"category": CATEGORY_ID})
        assert req.changes() == {"category_id": uuid.UUID(CATEGORY_ID)}


    @pytest.mark.parametrize("amount", [1e20, float("inf"), float("-inf"), float("nan")])
    def test_unstorable_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            ExpenseUpdateRequest.model_validate({"amount": amount})


class TestBulkDeleteRequest:
    def test_requires_ids(self):
        with pytest.raises(ValidationError):
            BulkDeleteRequest.model_validate({"ids": []})

    def test_rejects_malformed_ids(self):
        with pytest.raises(ValidationError):
            BulkDeleteRequest.model_validate({"ids": ["nope"]})


class TestCategoryRequests:
    def test_budget_becomes_cents(self):
        req = CategoryCreateRequest.model_validate({"name": "  Food ", "budget": 199.99})
        fields = req.to_domain_fields()
        assert fields["name"] == "Food"
        assert fields["budget_cents"] == 19999
        assert fields["is_active"] is True

    def test_bad_color_rejected(self):
        with pytest.raises(ValidationError):
            CategoryCreateRequest.model_validate({"name": "Food", "color": "red"})

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            CategoryCreateRequest.model_validate({"name": "   "})

    def test_update_clears_budget_with_null(self):
        req = CategoryUpdateRequest.model_validate({"budget": None})
        assert req.changes() == {"budget_cents": None}

    def test_update_rejects_null_name(self):
        with pytest.raises(ValidationError):
            CategoryUpdateRequest.model_validate({"name": None})

    def test_update_rejects_empty_body(self):
        with pytest.raises(ValidationError):
            CategoryUpdateRequest.model_validate({})

    @pytest.mark.parametrize("budget", [1e20, float("inf"), float("nan")])
    def test_unstorable_budget_rejected(self, budget):
        with pytest.raises(ValidationError):
            CategoryCreateRequest.model_validate({"name": "Food", "budget": budget})
        with pytest.raises(ValidationError):
            CategoryUpdateRequest.model_validate({"budget": budget})
