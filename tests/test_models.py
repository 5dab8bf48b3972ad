"""
Tests for PayRight models

Test strategy:
1. Unit tests for individual components (models, validators, analytics)
2. Integration tests for flows (with a fake Gemini model)
3. No real API calls in tests
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from payright.models.subscription import (
    ActionResult,
    AlternativeSuggestion,
    DetectedCharge,
    RenewalPrediction,
    Subscription,
    SubscriptionCategory,
    SubscriptionStatus,
)
from payright.models.wallet import Transaction, TransactionType, Wallet
from payright.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from payright.models.validation import ValidationIssue, ValidationResult


class TestSubscriptionModels:
    """Tests for subscription-related Pydantic models."""

    def test_detected_charge_creation(self):
        """Test DetectedCharge model creation from model output."""
        charge = DetectedCharge(
            vendor="  Spotify Family Plan  ",
            amount=16.99,
            frequency="monthly",
            last_payment_date="2024-06-10",
            next_due_date="2024-07-10",
        )
        assert charge.vendor == "Spotify Family Plan"
        assert charge.amount == Decimal("16.99")
        assert charge.usage_count is None
        assert charge.category is None

    def test_detected_charge_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            DetectedCharge(
                vendor="Test",
                amount=-5,
                frequency="monthly",
                last_payment_date="2024-06-10",
                next_due_date="2024-07-10",
            )

    def test_category_coercion(self):
        """Test that categories match case-insensitively and unknowns become Other."""
        assert SubscriptionCategory.coerce("saas") == SubscriptionCategory.SAAS
        assert SubscriptionCategory.coerce("health & wellness") == SubscriptionCategory.HEALTH_AND_WELLNESS
        assert SubscriptionCategory.coerce("Gaming") == SubscriptionCategory.OTHER
        assert SubscriptionCategory.coerce("") is None

    def test_subscription_from_detected_flags_unused(self):
        """Test that a usage count of 0 marks the subscription unused."""
        charge = DetectedCharge(
            vendor="UnusedGymMembership",
            amount=39.99,
            frequency="monthly",
            last_payment_date="2024-06-05",
            next_due_date="2024-07-05",
            usage_count=0,
        )
        sub = Subscription.from_detected(charge, "sub-1-0")
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.is_unused is True

    def test_subscription_missing_status_defaults_to_active(self):
        """Test that a stored record without status loads as active."""
        sub = Subscription.model_validate({
            "id": "sub-1-0",
            "vendor": "Audible",
            "amount": 14.95,
            "frequency": "monthly",
            "last_payment_date": "2024-06-03",
            "next_due_date": "2024-07-03",
            "status": None,
        })
        assert sub.is_active

    def test_subscription_storage_dict_uses_camel_case(self):
        """Test that stored JSON keeps the web app's key names."""
        sub = Subscription(
            id="sub-1-0",
            vendor="Netflix",
            amount=Decimal("19.99"),
            frequency="monthly",
            last_payment_date="2024-06-15",
            next_due_date="2024-07-15",
            alternatives=["Tubi"],
            alternatives_reasoning="Free with ads",
        )
        data = sub.to_storage_dict()
        assert data["alternativesReasoning"] == "Free with ads"
        assert data["isUnused"] is False
        assert data["amount"] == 19.99
        assert "userNeeds" not in data
        json.dumps(data)

    def test_subscription_round_trips_from_camel_case(self):
        """Test that a stored record loads back into snake_case attributes."""
        sub = Subscription.model_validate({
            "id": "sub-1-0",
            "vendor": "Netflix",
            "amount": 19.99,
            "frequency": "monthly",
            "last_payment_date": "2024-06-15",
            "next_due_date": "2024-07-15",
            "userNeeds": "movies",
            "isUnused": True,
            "unusedSince": "2024-05-01T00:00:00+00:00",
        })
        assert sub.user_needs == "movies"
        assert sub.is_unused is True
        assert sub.unused_since == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_alternative_suggestion_requires_reasoning(self):
        """Test that an empty reasoning is rejected."""
        with pytest.raises(ValueError):
            AlternativeSuggestion(alternatives=["Tubi"], reasoning="")

    def test_renewal_prediction_bounds(self):
        """Test confidence bounds and date format on RenewalPrediction."""
        prediction = RenewalPrediction.model_validate({
            "predictedRenewalDate": "2024-07-15",
            "confidence": 0.9,
        })
        assert prediction.predicted_renewal_date == "2024-07-15"

        with pytest.raises(ValueError):
            RenewalPrediction(predicted_renewal_date="2024-07-15", confidence=1.5)
        with pytest.raises(ValueError):
            RenewalPrediction(predicted_renewal_date="next month", confidence=0.5)


class TestWalletModels:
    """Tests for wallet and transaction models."""

    def test_wallet_defaults_to_zero(self):
        """Test that a new wallet has a zero balance."""
        wallet = Wallet(user_id="defaultUser")
        assert wallet.balance == Decimal("0.00")
        assert wallet.to_storage_dict() == {"userId": "defaultUser", "balance": 0.0}

    def test_status_change_transaction_has_no_amount(self):
        """Test that status-change transactions omit amount in storage."""
        txn = Transaction(
            id="txn-status-1",
            user_id="defaultUser",
            type=TransactionType.STATUS_CHANGE,
            description="Subscription Netflix status changed to paused.",
            subscription_id="sub-1-0",
            related_detail="Status of Netflix set to paused",
        )
        data = txn.to_storage_dict()
        assert "amount" not in data
        assert data["subscriptionId"] == "sub-1-0"
        assert data["relatedDetail"] == "Status of Netflix set to paused"
        assert txn.signed_amount is None

    def test_signed_amount(self):
        """Test sign of amounts as they affect the balance."""
        funds = Transaction(
            id="t1", user_id="u", type=TransactionType.ADD_FUNDS,
            amount=50, description="Added funds to wallet.",
        )
        charge = Transaction(
            id="t2", user_id="u", type=TransactionType.CHARGE_SUCCESS,
            amount=19.99, description="Charged for Netflix.",
        )
        failed = Transaction(
            id="t3", user_id="u", type=TransactionType.CHARGE_FAILED,
            amount=19.99, description="Failed to charge for Netflix.",
        )
        assert funds.signed_amount == Decimal("50.00")
        assert charge.signed_amount == Decimal("-19.99")
        assert failed.signed_amount == Decimal("0.00")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.FUNDS_ADDED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.FUNDS_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.status_changed("sub-1-0", "Netflix", "paused")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "status_changed"
        assert log_dict["entity_id"] == "sub-1-0"
        assert log_dict["details"]["new_status"] == "paused"

    def test_charge_failed_is_a_warning(self):
        """Test that a failed charge is logged above info level."""
        event = AuditEventBuilder.charge_failed(
            user_id="defaultUser",
            subscription_id="sub-1-0",
            vendor="Netflix",
            amount="19.99",
            balance="5.00",
        )
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="bank_data",
                issue_type="too_short",
                message="Bank data must be at least 10 characters long.",
                severity="error",
            ),
        ])
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1
        assert result.error_messages == ["Bank data must be at least 10 characters long."]

    def test_validation_result_warnings_only(self):
        """Test that warnings do not make a result invalid."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="next_due_date",
                issue_type="inconsistent",
                message="Next due date is before the last payment date",
                severity="warning",
            ),
        ])
        assert result.is_valid
        assert len(result.warnings) == 1


class TestActionResult:
    """Tests for the action result wrapper."""

    def test_success_and_failure(self):
        """Test ok flag on success and failure results."""
        assert ActionResult.success(data=[1]).ok
        failure = ActionResult.failure("Amount must be positive.")
        assert not failure.ok
        assert failure.error == "Amount must be positive."


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
