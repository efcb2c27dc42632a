"""
Tests for SortableRemoteView, the collection presets and LeadSourceService.
"""

import asyncio

import pytest

from src.models.audit import AuditEventType
from src.models.collection import CollectionQuery, ErrorKind, QueryResult
from src.models.records import BankBalanceAudit, LeadSource, TransactionStatusHistory
from src.models.sorting import SortDirection, SortIndicator, SortState
from src.services.storage import RemoteCollectionClient
from src.views import (
    LeadSourceService,
    SortableRemoteView,
    bank_balance_audit_view,
    transaction_status_history_view,
)


class GatedCollectionClient(RemoteCollectionClient):
    """
    Holds every fetch until the test opens its gate.

    Each answer echoes the query it was given, so a test can tell
    which request a result came from.
    """

    def __init__(self):
        self.gates: dict[int, asyncio.Event] = {}
        self.queries: list[CollectionQuery] = []

    async def fetch(self, query: CollectionQuery) -> QueryResult:
        self.queries.append(query)
        gate = asyncio.Event()
        self.gates[query.sequence] = gate
        await gate.wait()
        return QueryResult(
            rows=[{"order_by": query.order_by, "ascending": query.ascending}],
            sequence=query.sequence,
        )

    async def insert(self, collection_name, values):
        return QueryResult()

    async def update(self, collection_name, values, filters):
        return QueryResult()

    async def wait_for(self, sequence: int) -> None:
        while sequence not in self.gates:
            await asyncio.sleep(0)


class RaisingCollectionClient(RemoteCollectionClient):
    """A client that breaks the never-raise contract."""

    async def fetch(self, query):
        raise RuntimeError("socket closed")

    async def insert(self, collection_name, values):
        raise RuntimeError("socket closed")

    async def update(self, collection_name, values, filters):
        raise RuntimeError("socket closed")


class TestSortableRemoteViewState:
    """Sort/filter/page bookkeeping, no fetching."""

    def test_new_view_is_unsorted(self, client):
        view = SortableRemoteView(client, "lead_sources")
        assert view.state == SortState()
        assert view.indicator("name") == SortIndicator.UNSORTED
        assert view.current_query().order_by is None

    def test_toggle_sort_updates_query_and_indicator(self, client):
        view = SortableRemoteView(client, "lead_sources")
        view.toggle_sort("name")
        assert view.indicator("name") == SortIndicator.SORTED_ASCENDING
        assert view.indicator("created_at") == SortIndicator.UNSORTED
        view.toggle_sort("name")
        query = view.current_query()
        assert query.order_by == "name"
        assert query.ascending is False

    def test_toggle_sort_resets_page(self, client):
        view = SortableRemoteView(client, "lead_sources", limit=2)
        view.next_page()
        view.next_page()
        assert view.current_query().offset == 4
        view.toggle_sort("name")
        assert view.page == 0
        assert view.current_query().offset == 0

    def test_previous_page_stops_at_zero(self, client):
        view = SortableRemoteView(client, "lead_sources", limit=2)
        assert view.previous_page() == 0

    def test_next_page_without_limit_stays(self, client):
        """Without a page size there is only one page."""
        view = SortableRemoteView(client, "lead_sources")
        assert view.next_page() == 0

    def test_set_filters_resets_page(self, client):
        view = SortableRemoteView(client, "lead_sources", base_filters={"is_active": True}, limit=2)
        view.next_page()
        view.set_filters({"user_id": "u-1"})
        assert view.page == 0
        assert view.current_query().filters == {"user_id": "u-1"}

    def test_invalid_page_size_rejected(self, client):
        with pytest.raises(ValueError):
            SortableRemoteView(client, "lead_sources", limit=0)


class TestSortableRemoteViewFetching:
    """refresh() against the in-memory store."""

    @pytest.mark.asyncio
    async def test_refresh_applies_rows(self, client):
        view = SortableRemoteView(client, "lead_sources", base_filters={"is_active": True})
        result = await view.refresh()
        assert result.ok is True
        assert result.sequence == 1
        assert {row["id"] for row in view.rows} == {"s-1", "s-2", "s-4"}

    @pytest.mark.asyncio
    async def test_sort_by_refetches_in_order(self, client):
        view = SortableRemoteView(client, "lead_sources", base_filters={"is_active": True})
        await view.sort_by("name")
        assert [row["name"] for row in view.rows] == ["Instagram", "Referral", "Website"]
        await view.sort_by("name")
        assert [row["name"] for row in view.rows] == ["Website", "Referral", "Instagram"]
        assert client.fetched_queries[-1].ascending is False

    @pytest.mark.asyncio
    async def test_rows_converted_to_row_model(self, client):
        view = SortableRemoteView(client, LeadSource.COLLECTION, row_model=LeadSource)
        await view.refresh()
        assert all(isinstance(row, LeadSource) for row in view.rows)

    @pytest.mark.asyncio
    async def test_invalid_rows_skipped(self, client):
        """A malformed row is dropped; the rest still show."""
        rows = client.rows(LeadSource.COLLECTION)
        rows.append({"id": "s-9", "name": "", "is_active": True, "created_at": "not a date"})
        client.seed(LeadSource.COLLECTION, rows)
        view = SortableRemoteView(client, LeadSource.COLLECTION, row_model=LeadSource)
        result = await view.refresh()
        assert result.ok is True
        assert result.row_count == 4
        assert "s-9" not in {row.id for row in view.rows}

    @pytest.mark.asyncio
    async def test_pagination(self, client):
        view = SortableRemoteView(client, LeadSource.COLLECTION, limit=2)
        view.toggle_sort("name")
        await view.refresh()
        assert [row["name"] for row in view.rows] == ["Cold call", "Instagram"]
        assert view.has_next_page is True

        view.next_page()
        await view.refresh()
        assert client.fetched_queries[-1].offset == 2
        assert [row["name"] for row in view.rows] == ["Referral", "Website"]

        view.next_page()
        await view.refresh()
        assert view.rows == []
        assert view.has_next_page is False

    @pytest.mark.asyncio
    async def test_remote_failure_is_a_tagged_result(self, client, audit_logger, audit_storage):
        client.fail_collection(LeadSource.COLLECTION, ErrorKind.UNAUTHORIZED, "Token expired")
        view = SortableRemoteView(client, LeadSource.COLLECTION, audit_logger=audit_logger)
        result = await view.refresh()
        assert result.error == ErrorKind.UNAUTHORIZED
        assert result.error_message == "Token expired"
        assert result.is_loading is False
        assert result.rows == []
        assert audit_storage.events[-1].event_type == AuditEventType.COLLECTION_FETCH_FAILED

    @pytest.mark.asyncio
    async def test_unknown_collection_not_found(self, client):
        view = SortableRemoteView(client, "missing_collection")
        result = await view.refresh()
        assert result.error == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_raising_client_reported_as_unavailable(self, audit_logger, audit_storage):
        view = SortableRemoteView(RaisingCollectionClient(), "lead_sources", audit_logger=audit_logger)
        result = await view.refresh()
        assert result.error == ErrorKind.REMOTE_UNAVAILABLE
        assert result.error_message == "socket closed"
        event_types = [event.event_type for event in audit_storage.events]
        assert AuditEventType.SYSTEM_ERROR in event_types

    @pytest.mark.asyncio
    async def test_successful_fetch_audited(self, client, audit_logger, audit_storage):
        view = SortableRemoteView(client, LeadSource.COLLECTION, audit_logger=audit_logger)
        await view.sort_by("name")
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.COLLECTION_FETCHED
        assert event.details["row_count"] == 4
        assert event.details["statement"] == "SELECT * FROM lead_sources ORDER BY name ASC"

    @pytest.mark.asyncio
    async def test_disabled_view_never_fetches(self, client):
        view = SortableRemoteView(client, LeadSource.COLLECTION, enabled=False)
        result = await view.refresh()
        assert result.ok is True
        assert result.rows == []
        assert client.fetched_queries == []


class TestLastRequestWins:
    """Overlapping fetches: the most recently issued one is shown."""

    @pytest.mark.asyncio
    async def test_older_result_arriving_late_is_discarded(self):
        client = GatedCollectionClient()
        view = SortableRemoteView(client, "lead_sources")

        task_a = asyncio.create_task(view.refresh())
        await client.wait_for(1)
        assert view.is_loading is True

        view.toggle_sort("name")
        task_b = asyncio.create_task(view.refresh())
        await client.wait_for(2)

        client.gates[2].set()
        result_b = await task_b
        client.gates[1].set()
        result_a = await task_a

        assert view.result.sequence == 2
        assert view.rows == [{"order_by": "name", "ascending": True}]
        assert result_b.sequence == 2
        # The late caller sees the view's current result, not its own
        assert result_a.sequence == 2

    @pytest.mark.asyncio
    async def test_older_result_arriving_first_is_discarded(self):
        client = GatedCollectionClient()
        view = SortableRemoteView(client, "lead_sources")

        task_a = asyncio.create_task(view.refresh())
        await client.wait_for(1)
        view.toggle_sort("name")
        task_b = asyncio.create_task(view.refresh())
        await client.wait_for(2)

        client.gates[1].set()
        await task_a
        # B still in flight: A's rows must not appear
        assert view.rows == []
        assert view.is_loading is True

        client.gates[2].set()
        await task_b
        assert view.is_loading is False
        assert view.rows == [{"order_by": "name", "ascending": True}]

    @pytest.mark.asyncio
    async def test_previous_rows_visible_while_loading(self):
        client = GatedCollectionClient()
        view = SortableRemoteView(client, "lead_sources")

        first = asyncio.create_task(view.refresh())
        await client.wait_for(1)
        client.gates[1].set()
        await first

        second = asyncio.create_task(view.sort_by("name"))
        await client.wait_for(2)
        assert view.is_loading is True
        assert view.rows == [{"order_by": None, "ascending": True}]

        client.gates[2].set()
        await second
        assert view.rows == [{"order_by": "name", "ascending": True}]

    @pytest.mark.asyncio
    async def test_stale_result_audited(self, audit_logger, audit_storage):
        client = GatedCollectionClient()
        view = SortableRemoteView(client, "lead_sources", audit_logger=audit_logger)

        task_a = asyncio.create_task(view.refresh())
        await client.wait_for(1)
        task_b = asyncio.create_task(view.sort_by("name"))
        await client.wait_for(2)
        client.gates[2].set()
        await task_b
        client.gates[1].set()
        await task_a

        stale = [
            event for event in audit_storage.events
            if event.event_type == AuditEventType.STALE_RESULT_DISCARDED
        ]
        assert len(stale) == 1
        assert stale[0].details == {"stale_sequence": 1, "latest_sequence": 2}

    @pytest.mark.asyncio
    async def test_views_do_not_share_state(self):
        client = GatedCollectionClient()
        first = SortableRemoteView(client, "lead_sources")
        second = SortableRemoteView(client, "lead_sources")
        first.toggle_sort("name")
        assert second.state == SortState()
        assert second.latest_sequence == 0


class TestCollectionPresets:
    """Tests for the balance audit and status history views."""

    @pytest.mark.asyncio
    async def test_balance_audit_newest_first(self, client):
        view = bank_balance_audit_view(client, bank_account_id="acc-1")
        assert view.state == SortState(key="created_at", direction=SortDirection.DESC)
        assert view.indicator("created_at") == SortIndicator.SORTED_DESCENDING

        await view.refresh()
        assert [row.id for row in view.rows] == ["b-2", "b-3", "b-1"]
        assert all(isinstance(row, BankBalanceAudit) for row in view.rows)
        assert client.fetched_queries[-1].limit == 100

    @pytest.mark.asyncio
    async def test_balance_audit_all_accounts(self, client):
        view = bank_balance_audit_view(client)
        await view.refresh()
        assert view.current_query().filters == {}
        assert [row.id for row in view.rows] == ["b-4", "b-2", "b-3", "b-1"]

    @pytest.mark.asyncio
    async def test_balance_audit_resort_by_change(self, client):
        view = bank_balance_audit_view(client, bank_account_id="acc-1")
        await view.sort_by("balance_change")
        assert [row.balance_change for row in view.rows] == [-50, 25, 100]

    @pytest.mark.asyncio
    async def test_status_history_of_one_transaction(self, client):
        view = transaction_status_history_view(client, "t-1")
        await view.refresh()
        assert [row.new_status for row in view.rows] == ["paid", "pending"]
        assert all(isinstance(row, TransactionStatusHistory) for row in view.rows)
        assert view.rows[0].created_by_name == "Ana"

    @pytest.mark.asyncio
    async def test_status_history_disabled_without_transaction(self, client):
        view = transaction_status_history_view(client, None)
        assert view.enabled is False
        result = await view.refresh()
        assert result.rows == []
        assert client.fetched_queries == []


class TestLeadSourceService:
    """Tests for lead source listing, creation and soft delete."""

    @pytest.mark.asyncio
    async def test_active_sources_sorted_by_name(self, client):
        view = LeadSourceService(client).active_sources_view()
        await view.refresh()
        assert [row.name for row in view.rows] == ["Instagram", "Referral", "Website"]

    @pytest.mark.asyncio
    async def test_create(self, client, audit_logger, audit_storage):
        service = LeadSourceService(client, audit_logger=audit_logger)
        result = await service.create("  Trade fair ", user_id="u-1")

        assert result.ok is True
        source = result.rows[0]
        assert isinstance(source, LeadSource)
        assert source.name == "Trade fair"
        assert source.is_active is True
        assert any(row["name"] == "Trade fair" for row in client.rows(LeadSource.COLLECTION))
        assert audit_storage.events[-1].event_type == AuditEventType.RECORD_CREATED
        assert audit_storage.events[-1].entity_id == source.id

        view = service.active_sources_view()
        await view.refresh()
        assert "Trade fair" in [row.name for row in view.rows]

    @pytest.mark.asyncio
    async def test_create_blank_name_rejected(self, client):
        before = client.rows(LeadSource.COLLECTION)
        result = await LeadSourceService(client).create("   ")
        assert result.error == ErrorKind.INVALID_INPUT
        assert client.rows(LeadSource.COLLECTION) == before

    @pytest.mark.asyncio
    async def test_create_overlong_name_rejected(self, client, audit_logger, audit_storage):
        before = client.rows(LeadSource.COLLECTION)
        service = LeadSourceService(client, audit_logger=audit_logger)
        result = await service.create("x" * 201, user_id="u-1")

        assert result.error == ErrorKind.INVALID_INPUT
        assert result.rows == []
        assert client.rows(LeadSource.COLLECTION) == before
        assert all(event.event_type != AuditEventType.RECORD_CREATED for event in audit_storage.events)

    @pytest.mark.asyncio
    async def test_create_stores_validated_row(self, client):
        result = await LeadSourceService(client).create("Fair", user_id="u-1")
        stored = next(row for row in client.rows(LeadSource.COLLECTION) if row["id"] == result.rows[0].id)
        assert stored["name"] == "Fair"
        assert stored["user_id"] == "u-1"
        assert stored["is_active"] is True
        assert LeadSource.model_validate(stored) == result.rows[0]

    @pytest.mark.asyncio
    async def test_create_failure_propagated(self, client, audit_logger, audit_storage):
        client.fail_collection(LeadSource.COLLECTION, ErrorKind.REMOTE_UNAVAILABLE, "timeout")
        result = await LeadSourceService(client, audit_logger=audit_logger).create("Fair")
        assert result.error == ErrorKind.REMOTE_UNAVAILABLE
        assert result.error_message == "timeout"
        assert audit_storage.events[-1].event_type == AuditEventType.RECORD_WRITE_FAILED

    @pytest.mark.asyncio
    async def test_deactivate(self, client, audit_logger, audit_storage):
        service = LeadSourceService(client, audit_logger=audit_logger)
        result = await service.deactivate("s-2")
        assert result.ok is True

        stored = {row["id"]: row for row in client.rows(LeadSource.COLLECTION)}
        assert stored["s-2"]["is_active"] is False
        assert audit_storage.events[-1].event_type == AuditEventType.RECORD_UPDATED

        view = service.active_sources_view()
        await view.refresh()
        assert [row.name for row in view.rows] == ["Referral", "Website"]

    @pytest.mark.asyncio
    async def test_deactivate_unknown_source(self, client):
        result = await LeadSourceService(client).deactivate("s-404")
        assert result.error == ErrorKind.NOT_FOUND
