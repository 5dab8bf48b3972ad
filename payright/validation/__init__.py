"""Validation package."""

from payright.validation.validator import SubscriptionValidator

__all__ = ["SubscriptionValidator"]
