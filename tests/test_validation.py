"""
Tests for input and semantic validation.
"""

from decimal import Decimal

from payright.models.subscription import DetectedCharge


def _charge(**overrides):
    values = {
        "vendor": "Netflix",
        "amount": 19.99,
        "frequency": "monthly",
        "last_payment_date": "2024-06-15",
        "next_due_date": "2024-07-15",
    }
    values.update(overrides)
    return DetectedCharge(**values)


class TestInputValidation:
    """Stage 1: checks made before the model is called."""

    def test_bank_data_too_short(self, validator):
        """Test the minimum bank data length."""
        result = validator.validate_bank_data("too short")
        assert result.has_errors
        assert result.error_messages == ["Bank data must be at least 10 characters long."]

    def test_bank_data_at_minimum_length(self, validator):
        """Test that exactly ten characters is accepted."""
        assert validator.validate_bank_data("x" * 10).is_valid

    def test_email_content_blank(self, validator):
        """Test that whitespace-only email content is rejected."""
        assert validator.validate_email_content("   \n").has_errors
        assert validator.validate_email_content("Your Netflix receipt").is_valid

    def test_alternatives_request_reports_every_problem(self, validator):
        """Test that name and cost errors are both reported."""
        result = validator.validate_alternatives_request("", 0)
        assert result.error_messages == [
            "Subscription name cannot be empty.",
            "Current cost must be a positive number.",
        ]

    def test_alternatives_request_valid(self, validator):
        """Test a well-formed alternatives request."""
        assert validator.validate_alternatives_request("Netflix", Decimal("19.99")).is_valid

    def test_renewal_request_needs_iso_date(self, validator):
        """Test that the last payment date must be YYYY-MM-DD."""
        result = validator.validate_renewal_request("Netflix", "15/06/2024", "monthly")
        assert result.error_count == 1
        assert validator.validate_renewal_request("Netflix", "2024-06-15", "monthly").is_valid

    def test_configurable_minimum_length(self):
        """Test that the minimum bank data length can be changed."""
        from payright.validation import SubscriptionValidator

        strict = SubscriptionValidator(min_bank_data_length=50)
        result = strict.validate_bank_data("x" * 20)
        assert result.error_messages == ["Bank data must be at least 50 characters long."]


class TestSemanticChecks:
    """Stage 2: warnings on what the model returned."""

    def test_clean_charge_has_no_issues(self, validator):
        """Test that a consistent charge passes silently."""
        assert validator.check_detected_charge(_charge()).issues == []

    def test_bad_dates_are_warnings(self, validator):
        """Test that unparseable dates warn but do not block."""
        result = validator.check_detected_charge(_charge(next_due_date="soon"))
        assert result.is_valid
        assert [i.field for i in result.warnings] == ["next_due_date"]

    def test_due_before_last_payment(self, validator):
        """Test that an inverted date pair is flagged."""
        result = validator.check_detected_charge(_charge(next_due_date="2024-05-01"))
        assert [i.issue_type for i in result.warnings] == ["inconsistent"]

    def test_zero_amount(self, validator):
        """Test that a zero amount is flagged."""
        result = validator.check_detected_charge(_charge(amount=0))
        assert [i.issue_type for i in result.warnings] == ["zero_amount"]
