"""
Two-Stage Validation

DESIGN DECISION: Validation happens at two distinct points:

STAGE 1 - INPUT VALIDATION (before the model is called):
- Bank data long enough to contain a charge
- Email body present
- Subscription name present, cost positive
- Errors here reject the request; no model call is made

STAGE 2 - SEMANTIC VALIDATION (after the model replied):
- Dates parse as YYYY-MM-DD
- Next due date not before last payment
- Zero amounts
- These are WARNINGS only. The model output has already passed the
  schema; a suspicious date is reported, never silently fixed.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from payright.config import get_settings
from payright.models.subscription import DetectedCharge
from payright.models.validation import ValidationIssue, ValidationResult


def _parse_iso(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


class SubscriptionValidator:
    """
    Validates user input for the AI flows and the charges they return.

    Stage 1 methods return a ValidationResult whose error messages are
    shown to the user joined with ", ".
    """

    def __init__(self, min_bank_data_length: Optional[int] = None):
        if min_bank_data_length is None:
            min_bank_data_length = get_settings().app.min_bank_data_length
        self._min_bank_data_length = min_bank_data_length

    # =========================================================================
    # STAGE 1: INPUT
    # =========================================================================

    def validate_bank_data(self, bank_data: Optional[str]) -> ValidationResult:
        issues = []
        if bank_data is None or len(bank_data) < self._min_bank_data_length:
            issues.append(ValidationIssue(
                field="bank_data",
                issue_type="too_short",
                message=(
                    f"Bank data must be at least "
                    f"{self._min_bank_data_length} characters long."
                ),
                severity="error",
                suggested_fix="Paste a few lines of your statement",
            ))
        return ValidationResult(issues=issues)

    def validate_email_content(self, email_content: Optional[str]) -> ValidationResult:
        issues = []
        if email_content is None or not email_content.strip():
            issues.append(ValidationIssue(
                field="email_content",
                issue_type="missing",
                message="Email content cannot be empty.",
                severity="error",
            ))
        return ValidationResult(issues=issues)

    def validate_alternatives_request(
        self,
        subscription_name: Optional[str],
        current_cost: Union[Decimal, float, int, None],
    ) -> ValidationResult:
        """Check the inputs of an alternatives request; reports every problem found."""
        issues = []

        if subscription_name is None or len(subscription_name) < 1:
            issues.append(ValidationIssue(
                field="subscription_name",
                issue_type="missing",
                message="Subscription name cannot be empty.",
                severity="error",
            ))

        try:
            positive = (
                current_cost is not None
                and not isinstance(current_cost, bool)
                and Decimal(str(current_cost)) > 0
            )
        except InvalidOperation:
            positive = False

        if not positive:
            issues.append(ValidationIssue(
                field="current_cost",
                issue_type="invalid_value",
                message="Current cost must be a positive number.",
                severity="error",
            ))

        return ValidationResult(issues=issues)

    def validate_renewal_request(
        self,
        subscription_name: Optional[str],
        last_payment_date: Optional[str],
        billing_cycle: Optional[str],
    ) -> ValidationResult:
        issues = []

        if not subscription_name:
            issues.append(ValidationIssue(
                field="subscription_name",
                issue_type="missing",
                message="Subscription name cannot be empty.",
                severity="error",
            ))

        if not last_payment_date or _parse_iso(last_payment_date) is None:
            issues.append(ValidationIssue(
                field="last_payment_date",
                issue_type="invalid_date",
                message="Last payment date must be a valid date (YYYY-MM-DD).",
                severity="error",
            ))

        if not billing_cycle:
            issues.append(ValidationIssue(
                field="billing_cycle",
                issue_type="missing",
                message="Billing cycle cannot be empty.",
                severity="error",
            ))

        return ValidationResult(issues=issues)

    # =========================================================================
    # STAGE 2: SEMANTIC
    # =========================================================================

    def check_detected_charge(self, charge: DetectedCharge) -> ValidationResult:
        """
        Semantic checks on one detected charge.

        Everything reported here is a warning.
        """
        issues = []

        last_paid = _parse_iso(charge.last_payment_date)
        next_due = _parse_iso(charge.next_due_date)

        if last_paid is None:
            issues.append(ValidationIssue(
                field="last_payment_date",
                issue_type="invalid_date",
                message=f"Last payment date '{charge.last_payment_date}' is not YYYY-MM-DD",
                severity="warning",
                suggested_fix="Edit the date before relying on due-date alerts",
            ))

        if next_due is None:
            issues.append(ValidationIssue(
                field="next_due_date",
                issue_type="invalid_date",
                message=f"Next due date '{charge.next_due_date}' is not YYYY-MM-DD",
                severity="warning",
                suggested_fix="Edit the date before relying on due-date alerts",
            ))

        if last_paid and next_due and next_due < last_paid:
            issues.append(ValidationIssue(
                field="next_due_date",
                issue_type="inconsistent",
                message="Next due date is before the last payment date",
                severity="warning",
            ))

        if charge.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="zero_amount",
                message=f"Charge for {charge.vendor} has a zero amount",
                severity="warning",
            ))

        return ValidationResult(issues=issues)
