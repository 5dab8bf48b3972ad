"""
Wallet and Transaction Models

A wallet is a single balance per user. Every change to it, and
every subscription status change, leaves a Transaction behind.

DESIGN DECISION: The transaction log is append-only and newest-first.
Nothing ever edits or removes a transaction.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from payright.models.subscription import quantize_money


class TransactionType(str, Enum):
    """Kinds of ledger entries."""
    ADD_FUNDS = "add_funds"
    CHARGE_SUCCESS = "charge_success"
    CHARGE_FAILED = "charge_failed"
    STATUS_CHANGE = "status_change"


class Wallet(BaseModel):
    """A user's virtual balance."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    balance: Decimal = Field(default=Decimal("0.00"))

    @field_validator("balance", mode="before")
    @classmethod
    def round_balance(cls, v):
        return quantize_money(v)

    @field_serializer("balance", when_used="json")
    def serialize_balance(self, v: Decimal) -> float:
        return float(v)

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Transaction(BaseModel):
    """
    One entry in the transaction history.

    amount is absent for status changes.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, alias="userId")
    type: TransactionType
    amount: Optional[Decimal] = None
    description: str
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the transaction happened (UTC)"
    )
    subscription_id: Optional[str] = Field(default=None, alias="subscriptionId")
    related_detail: Optional[str] = Field(default=None, alias="relatedDetail")

    @field_validator("amount", mode="before")
    @classmethod
    def round_amount(cls, v):
        return quantize_money(v)

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Optional[Decimal]) -> Optional[float]:
        return float(v) if v is not None else None

    @property
    def signed_amount(self) -> Optional[Decimal]:
        """Amount as it affected the balance: + for funds, - for charges."""
        if self.amount is None:
            return None
        if self.type == TransactionType.ADD_FUNDS:
            return self.amount
        if self.type == TransactionType.CHARGE_SUCCESS:
            return -self.amount
        return Decimal("0.00")

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ChargeResult(BaseModel):
    """Outcome of charging a subscription against the wallet."""

    success: bool
    new_balance: Decimal
    transaction: Transaction
