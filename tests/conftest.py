"""
Shared fixtures.

No test talks to Gemini or Google Sheets: the model is a canned-reply
fake and storage is in memory.
"""

import json
from decimal import Decimal

import pytest

from payright.audit import AuditLogger
from payright.models.subscription import Subscription, SubscriptionCategory
from payright.services import InMemoryStorage, SubscriptionService, WalletService
from payright.validation import SubscriptionValidator


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel; replies with queued texts."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return FakeResponse(reply)


class RecordingLogger:
    """Captures what AuditLogger writes."""

    def __init__(self):
        self.records = []

    def _record(self, level, event, **kwargs):
        self.records.append((level, event, kwargs))

    def info(self, event, **kwargs):
        self._record("info", event, **kwargs)

    def warning(self, event, **kwargs):
        self._record("warning", event, **kwargs)

    def error(self, event, **kwargs):
        self._record("error", event, **kwargs)

    def debug(self, event, **kwargs):
        self._record("debug", event, **kwargs)

    def event_types(self):
        return [kwargs["event_type"] for _, _, kwargs in self.records]


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def recorder():
    return RecordingLogger()


@pytest.fixture
def audit_logger(recorder):
    return AuditLogger(logger=recorder)


@pytest.fixture
def validator():
    return SubscriptionValidator(min_bank_data_length=10)


@pytest.fixture
def wallet_service(storage, audit_logger):
    return WalletService(storage, audit_logger=audit_logger, default_user_id="defaultUser")


@pytest.fixture
def subscription_service(storage, audit_logger):
    return SubscriptionService(storage, audit_logger=audit_logger, default_user_id="defaultUser")


def _make_subscription(**overrides) -> Subscription:
    values = {
        "id": "sub-1718000000000-0",
        "vendor": "Netflix Premium",
        "amount": Decimal("19.99"),
        "frequency": "monthly",
        "last_payment_date": "2024-06-15",
        "next_due_date": "2024-07-15",
        "usage_count": 3,
        "category": SubscriptionCategory.ENTERTAINMENT,
    }
    values.update(overrides)
    return Subscription(**values)


@pytest.fixture
def make_subscription():
    """Factory for stored subscriptions; keyword arguments override the defaults."""
    return _make_subscription


@pytest.fixture
def fake_model():
    """Factory: fake_model(reply, ...) queues replies in order."""
    return FakeModel


@pytest.fixture
def sample_charges():
    return [dict(c) for c in SAMPLE_CHARGES]


SAMPLE_CHARGES = [
    {
        "vendor": "Netflix Premium",
        "amount": 19.99,
        "frequency": "monthly",
        "last_payment_date": "2024-06-15",
        "next_due_date": "2024-07-15",
        "usage_count": 4,
    },
    {
        "vendor": "Zoom Pro Annual",
        "amount": 149.90,
        "frequency": "yearly",
        "last_payment_date": "2024-01-05",
        "next_due_date": "2025-01-05",
        "usage_count": 2,
    },
    {
        "vendor": "UnusedGymMembership",
        "amount": 39.99,
        "frequency": "monthly",
        "last_payment_date": "2024-06-05",
        "next_due_date": "2024-07-05",
        "usage_count": 0,
    },
]
