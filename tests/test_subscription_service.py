"""
Tests for the subscription store.
"""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from payright.models.audit import AuditEventType
from payright.models.subscription import (
    AlternativeSuggestion,
    DetectedCharge,
    SubscriptionStatus,
)
from payright.models.wallet import TransactionType
from payright.services import (
    InMemoryStorage,
    StorageError,
    SubscriptionService,
    WalletService,
)
from payright.services.storage import SUBSCRIPTIONS_KEY


def _charges(raw):
    return [DetectedCharge.model_validate(c) for c in raw]


class TestMergeDetected:
    """Tests for turning detected charges into the stored list."""

    def test_assigns_ids_and_defaults(self, subscription_service, sample_charges):
        """Test that ids follow sub-<ms>-<index> and all start active."""
        subs = asyncio.run(subscription_service.merge_detected(_charges(sample_charges)))

        assert len(subs) == 3
        for index, sub in enumerate(subs):
            assert sub.id.startswith("sub-")
            assert sub.id.endswith(f"-{index}")
            assert sub.status == SubscriptionStatus.ACTIVE
        assert [s.is_unused for s in subs] == [False, False, True]

    def test_replaces_existing_list(self, subscription_service, sample_charges):
        """Test that a second detection run replaces, not appends."""
        asyncio.run(subscription_service.merge_detected(_charges(sample_charges)))
        asyncio.run(subscription_service.merge_detected(_charges(sample_charges[:1])))

        stored = asyncio.run(subscription_service.list_subscriptions())
        assert [s.vendor for s in stored] == ["Netflix Premium"]

    def test_empty_detection_clears_list(self, subscription_service, sample_charges):
        """Test that detecting nothing leaves an empty list."""
        asyncio.run(subscription_service.merge_detected(_charges(sample_charges)))
        asyncio.run(subscription_service.merge_detected([]))
        assert asyncio.run(subscription_service.list_subscriptions()) == []


class TestToggleStatus:
    """Tests for pausing and resuming."""

    def test_pause_records_transaction(self, subscription_service, make_subscription, storage):
        """Test that a status change is stored and logged in the history."""
        asyncio.run(subscription_service.save_all([make_subscription()]))

        updated = asyncio.run(subscription_service.toggle_status(
            "sub-1718000000000-0", SubscriptionStatus.PAUSED,
        ))
        assert updated.status == SubscriptionStatus.PAUSED

        stored = asyncio.run(subscription_service.get_subscription("sub-1718000000000-0"))
        assert stored.status == SubscriptionStatus.PAUSED

        txns = asyncio.run(WalletService(storage, default_user_id="defaultUser").get_transactions())
        assert len(txns) == 1
        txn = txns[0]
        assert txn.type == TransactionType.STATUS_CHANGE
        assert txn.id.startswith("txn-status-")
        assert txn.amount is None
        assert txn.description == "Subscription Netflix Premium status changed to paused."
        assert txn.related_detail == "Status of Netflix Premium set to paused"

    def test_pause_then_resume_ends_active(self, subscription_service, make_subscription, storage):
        """Test active -> paused -> active, one transaction per change."""
        asyncio.run(subscription_service.save_all([make_subscription()]))
        asyncio.run(subscription_service.toggle_status("sub-1718000000000-0", "paused"))
        asyncio.run(subscription_service.toggle_status("sub-1718000000000-0", "active"))

        stored = asyncio.run(subscription_service.get_subscription("sub-1718000000000-0"))
        assert stored.status == SubscriptionStatus.ACTIVE

        txns = asyncio.run(WalletService(storage, default_user_id="defaultUser").get_transactions())
        assert [t.related_detail for t in txns] == [
            "Status of Netflix Premium set to active",
            "Status of Netflix Premium set to paused",
        ]

    def test_same_status_still_counts(self, subscription_service, make_subscription, storage):
        """Test that setting the current status appends a transaction anyway."""
        asyncio.run(subscription_service.save_all([make_subscription()]))
        asyncio.run(subscription_service.toggle_status("sub-1718000000000-0", "active"))

        txns = asyncio.run(WalletService(storage, default_user_id="defaultUser").get_transactions())
        assert len(txns) == 1

    def test_unknown_id_returns_none(self, subscription_service, storage):
        """Test that an unknown id writes nothing."""
        result = asyncio.run(subscription_service.toggle_status("nope", "paused"))
        assert result is None
        assert asyncio.run(storage.keys()) == []


class TestDeleteAndUpdates:
    """Tests for delete, alternatives, renewal and unused marker."""

    def test_delete_removes_exactly_one(self, subscription_service, make_subscription):
        """Test that only the matching record is removed."""
        asyncio.run(subscription_service.save_all([
            make_subscription(id="a"),
            make_subscription(id="b"),
            make_subscription(id="c"),
        ]))

        assert asyncio.run(subscription_service.delete("b")) is True
        remaining = asyncio.run(subscription_service.list_subscriptions())
        assert [s.id for s in remaining] == ["a", "c"]

        assert asyncio.run(subscription_service.delete("b")) is False

    def test_apply_alternatives(self, subscription_service, make_subscription):
        """Test that suggestions and user needs are stored on the record."""
        asyncio.run(subscription_service.save_all([make_subscription()]))
        suggestion = AlternativeSuggestion(
            alternatives=["Tubi", "Pluto TV"],
            reasoning="Assumed use: casual movie streaming.",
        )

        asyncio.run(subscription_service.apply_alternatives(
            "sub-1718000000000-0", suggestion, user_needs="movies",
        ))
        stored = asyncio.run(subscription_service.get_subscription("sub-1718000000000-0"))
        assert stored.alternatives == ["Tubi", "Pluto TV"]
        assert stored.alternatives_reasoning == "Assumed use: casual movie streaming."
        assert stored.user_needs == "movies"

    def test_apply_alternatives_unknown_id(self, subscription_service):
        """Test that an unknown id returns None."""
        suggestion = AlternativeSuggestion(alternatives=[], reasoning="n/a")
        assert asyncio.run(subscription_service.apply_alternatives("x", suggestion)) is None

    def test_update_renewal(self, subscription_service, make_subscription):
        """Test that the next due date is replaced."""
        asyncio.run(subscription_service.save_all([make_subscription()]))
        asyncio.run(subscription_service.update_renewal("sub-1718000000000-0", "2024-08-15"))
        stored = asyncio.run(subscription_service.get_subscription("sub-1718000000000-0"))
        assert stored.next_due_date == "2024-08-15"

    def test_toggle_unused_sets_and_clears_timestamp(self, subscription_service, make_subscription):
        """Test that marking unused stamps unused_since and unmarking clears it."""
        asyncio.run(subscription_service.save_all([make_subscription()]))
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        marked = asyncio.run(subscription_service.toggle_unused("sub-1718000000000-0", now=now))
        assert marked.is_unused is True
        assert marked.unused_since == now

        stored = asyncio.run(subscription_service.get_subscription("sub-1718000000000-0"))
        assert stored.unused_since == now

        cleared = asyncio.run(subscription_service.toggle_unused("sub-1718000000000-0"))
        assert cleared.is_unused is False
        assert cleared.unused_since is None


class VanishingStorage(InMemoryStorage):
    """The subscription list disappears right after it is first read."""

    async def get_item(self, key):
        value = await super().get_item(key)
        if key == SUBSCRIPTIONS_KEY:
            await self.remove_item(key)
        return value


class UnreachableStorage(InMemoryStorage):
    """Reads fail as they would with the sheet offline."""

    async def get_item(self, key):
        raise StorageError("sheet unreachable")


class TestStoredDataSafety:
    """Tests that writes never drop or invent stored records."""

    def _store_raw(self, storage, entries):
        asyncio.run(storage.set_item(SUBSCRIPTIONS_KEY, json.dumps(entries)))

    def _stored_ids(self, storage):
        return [e.get("id") for e in json.loads(asyncio.run(storage.get_item(SUBSCRIPTIONS_KEY)))]

    def test_delete_keeps_records_written_by_web_app(self, subscription_service, make_subscription, storage):
        """Test that deleting one record keeps a fractional-usage and an unparseable neighbour."""
        fractional = make_subscription(id="b").to_storage_dict()
        fractional["usage_count"] = 2.5
        self._store_raw(storage, [
            make_subscription(id="a").to_storage_dict(),
            fractional,
            {"id": "broken", "amount": "n/a"},
            make_subscription(id="c").to_storage_dict(),
        ])

        assert asyncio.run(subscription_service.delete("a")) is True

        assert self._stored_ids(storage) == ["b", "broken", "c"]
        listed = asyncio.run(subscription_service.list_subscriptions())
        assert [s.id for s in listed] == ["b", "c"]

    def test_toggle_status_keeps_unparseable_records(self, subscription_service, make_subscription, storage):
        """Test that a status change writes unparseable entries back unchanged."""
        broken = {"id": "broken", "vendor": ""}
        self._store_raw(storage, [make_subscription(id="a").to_storage_dict(), broken])

        asyncio.run(subscription_service.toggle_status("a", SubscriptionStatus.PAUSED))

        stored = json.loads(asyncio.run(storage.get_item(SUBSCRIPTIONS_KEY)))
        assert stored[0]["status"] == "paused"
        assert stored[1] == broken

    def test_read_failure_is_not_reported_as_missing(self, audit_logger):
        """Test that a backend read failure raises instead of returning None."""
        service = SubscriptionService(
            UnreachableStorage(), audit_logger=audit_logger, default_user_id="defaultUser",
        )
        with pytest.raises(StorageError, match="sheet unreachable"):
            asyncio.run(service.toggle_status("sub-1", SubscriptionStatus.PAUSED))
        with pytest.raises(StorageError):
            asyncio.run(service.delete("sub-1"))

    def test_update_of_vanished_record_returns_none(self, audit_logger, make_subscription, recorder):
        """Test that an update whose record is gone by write time reports nothing stored."""
        storage = VanishingStorage()
        service = SubscriptionService(storage, audit_logger=audit_logger, default_user_id="defaultUser")
        asyncio.run(service.save_all([make_subscription()]))

        result = asyncio.run(service.update_renewal("sub-1718000000000-0", "2024-08-15"))

        assert result is None
        assert AuditEventType.SUBSCRIPTION_UPDATED.value not in recorder.event_types()
