"""
Subscription Models for PayRight

These models define the schemas for everything the AI flows return
and for the subscription list kept in storage.

DESIGN DECISION: Stored documents keep the camelCase keys the browser
version of PayRight wrote (userNeeds, isUnused, alternativesReasoning...).
Python code uses snake_case attributes; aliases bridge the two, so a
storage file exported from the web app loads unchanged.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    field_serializer,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SubscriptionStatus(str, Enum):
    """
    Subscription status.

    Only two states exist. Any transition is allowed, including
    setting the status a subscription already has.
    """
    ACTIVE = "active"
    PAUSED = "paused"


class SubscriptionCategory(str, Enum):
    """
    Categories the charge detector may assign.

    Anything the model invents outside this list becomes OTHER.
    """
    ENTERTAINMENT = "Entertainment"
    UTILITIES = "Utilities"
    SAAS = "SaaS"
    PRODUCTIVITY = "Productivity"
    FINANCE = "Finance"
    HEALTH_AND_WELLNESS = "Health & Wellness"
    SHOPPING = "Shopping"
    EDUCATION = "Education"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Any) -> Optional["SubscriptionCategory"]:
        """Map free text from the model onto a category (case-insensitive)."""
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for category in cls:
            if category.value.lower() == text:
                return category
        return cls.OTHER


def quantize_money(value: Any) -> Any:
    """Round money to cents. Leaves non-numeric input for pydantic to reject."""
    if value is None or isinstance(value, bool):
        return value
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError):
        return value


# =============================================================================
# AI OUTPUT MODELS
# =============================================================================

class DetectedCharge(BaseModel):
    """
    One recurring charge found by the charge detector.

    CRITICAL: This is what the model THINKS it saw.
    Dates are kept as the strings the model returned (YYYY-MM-DD);
    semantic checks live in the validator, not here.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    vendor: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="The name of the subscription vendor (e.g., Netflix, Spotify)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="The recurring charge amount"
    )
    frequency: str = Field(
        ...,
        min_length=1,
        description="The frequency of the charge (e.g., monthly, yearly)"
    )
    last_payment_date: str = Field(
        ...,
        description="The date of the last payment (YYYY-MM-DD)"
    )
    next_due_date: str = Field(
        ...,
        description="The estimated next due date (YYYY-MM-DD)"
    )
    usage_count: Optional[Union[NonNegativeInt, NonNegativeFloat]] = Field(
        default=None,
        description="Mock or simulated usage count. 0 indicates potentially unused"
    )
    category: Optional[SubscriptionCategory] = None

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, v: Any) -> Any:
        return quantize_money(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Optional[SubscriptionCategory]:
        return SubscriptionCategory.coerce(v)

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


class AlternativeSuggestion(BaseModel):
    """Cheaper or free alternatives for one subscription."""

    alternatives: list[str] = Field(
        ...,
        description="A list of free or cheaper alternatives"
    )
    reasoning: str = Field(
        ...,
        min_length=1,
        description="Why these were suggested, including assumed use cases"
    )


class RenewalPrediction(BaseModel):
    """Predicted next renewal date for a subscription."""
    model_config = ConfigDict(populate_by_name=True)

    predicted_renewal_date: str = Field(
        ...,
        alias="predictedRenewalDate",
        description="The predicted renewal date (YYYY-MM-DD)"
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence score (0-1) for the prediction"
    )

    @field_validator("predicted_renewal_date")
    @classmethod
    def validate_iso_date(cls, v: str) -> str:
        date.fromisoformat(v.strip())
        return v.strip()


# =============================================================================
# STORED SUBSCRIPTION
# =============================================================================

class Subscription(BaseModel):
    """
    A subscription in the user's list.

    Created from a DetectedCharge, then mutated by user actions:
    pause/resume, alternative suggestions, renewal updates, deletion.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Ad-hoc ID built from a timestamp (sub-<ms>-<index>)"
    )
    vendor: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    frequency: str
    last_payment_date: str
    next_due_date: str
    usage_count: Optional[Union[NonNegativeInt, NonNegativeFloat]] = None

    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.ACTIVE,
        description="Missing status in storage means active"
    )
    category: Optional[SubscriptionCategory] = None

    # Filled in by the alternative suggester
    user_needs: Optional[str] = Field(default=None, alias="userNeeds")
    alternatives: Optional[list[str]] = None
    alternatives_reasoning: Optional[str] = Field(
        default=None,
        alias="alternativesReasoning"
    )

    # Manual "I don't use this" marker
    is_unused: bool = Field(default=False, alias="isUnused")
    unused_since: Optional[datetime] = Field(default=None, alias="unusedSince")

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> Any:
        return v or SubscriptionStatus.ACTIVE

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, v: Any) -> Any:
        return quantize_money(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Optional[SubscriptionCategory]:
        return SubscriptionCategory.coerce(v)

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)

    @classmethod
    def from_detected(
        cls,
        charge: DetectedCharge,
        subscription_id: str,
    ) -> "Subscription":
        """Build a fresh, active subscription from a detected charge."""
        return cls(
            id=subscription_id,
            vendor=charge.vendor,
            amount=charge.amount,
            frequency=charge.frequency,
            last_payment_date=charge.last_payment_date,
            next_due_date=charge.next_due_date,
            usage_count=charge.usage_count,
            category=charge.category,
            status=SubscriptionStatus.ACTIVE,
            is_unused=charge.usage_count == 0,
        )

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    def to_storage_dict(self) -> dict:
        """Serialize for storage, camelCase keys, no empty optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ACTION RESULTS
# =============================================================================

class ActionResult(BaseModel):
    """
    Outcome of a user-facing action.

    Either data or an error string. The error is shown to the user
    as-is, so it must already be human-readable.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = Field(
        default=None,
        description="Short success note for the user"
    )

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None) -> "ActionResult":
        return cls(data=data, message=message)

    @classmethod
    def failure(cls, error: str) -> "ActionResult":
        return cls(error=error)
