"""
CRM Console — Data Store cache tests
Tests: freshness window, forced refresh, invalidation, in-flight dedup,
stale responses, error slots.
Run: cd backend && pytest tests/test_data_store_cache.py -v
"""

import asyncio
import pytest

from models import ClientsData, OrdersQuery, ResourceKind
from services.data_store import DataStore
from services.rpc_client import RPCError
from tests.fakes import CLIENTS, FakeRPC, TODAY, default_responses


def _run(coro):
    """Run an async store operation in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ═══════════════════════════════════════════════════════════════
# 1. FRESHNESS WINDOW
# ═══════════════════════════════════════════════════════════════

class TestCacheFreshness:
    """Two fetches inside the 5 min window → one remote call"""

    @pytest.mark.parametrize("kind,fetch,procedure", [
        (ResourceKind.DASHBOARD, "fetch_dashboard_data", "get_dashboard_data"),
        (ResourceKind.CLIENTS, "fetch_clients_data", "get_clients_data"),
        (ResourceKind.INACTIVE_CLIENTS, "fetch_inactive_clients_data", "get_inactive_clients_data"),
        (ResourceKind.ORDERS, "fetch_orders_data", "get_orders"),
    ])
    def test_second_fetch_served_from_cache(self, store, fake_rpc, clock, kind, fetch, procedure):
        _run(getattr(store, fetch)("admin-1"))
        clock.advance(60)
        _run(getattr(store, fetch)("admin-1"))

        assert fake_rpc.count(procedure) == 1
        assert store.get(kind) is not None
        print(f"✅ {kind.value}: 1 remote call for 2 fetches")

    def test_reminders_second_fetch_served_from_cache(self, store, fake_rpc):
        _run(store.fetch_reminders_data("admin-1"))
        _run(store.fetch_reminders_data("admin-1"))
        assert fake_rpc.count("get_reminders_for_admin") == 1

    def test_cache_expires_after_window(self, store, fake_rpc, clock):
        _run(store.fetch_clients_data("admin-1"))
        clock.advance(299)
        _run(store.fetch_clients_data("admin-1"))
        assert fake_rpc.count("get_clients_data") == 1

        clock.advance(1)  # exactly 5 min old → stale
        _run(store.fetch_clients_data("admin-1"))
        assert fake_rpc.count("get_clients_data") == 2

    def test_timestamp_recorded_with_value(self, store, clock):
        assert store.last_fetched(ResourceKind.CLIENTS) is None
        _run(store.fetch_clients_data("admin-1"))
        assert store.last_fetched(ResourceKind.CLIENTS) == clock.now
        assert isinstance(store.clients_data, ClientsData)
        assert [c.name for c in store.clients_data.managed_clients] == ["Alice Tan", "Bob Lim"]

    def test_different_query_is_a_miss(self, store, fake_rpc):
        """Page 2 is not served from the cached page 1"""
        _run(store.fetch_orders_data("admin-1", OrdersQuery(page=1)))
        _run(store.fetch_orders_data("admin-1", OrdersQuery(page=2)))
        assert fake_rpc.count("get_orders") == 2

        _run(store.fetch_orders_data("admin-1", OrdersQuery(page=2)))
        assert fake_rpc.count("get_orders") == 2

    def test_different_caller_is_a_miss(self, store, fake_rpc):
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_clients_data("admin-2"))
        assert fake_rpc.count("get_clients_data") == 2
        assert fake_rpc.last("get_clients_data") == {"admin_uuid": "admin-2"}


# ═══════════════════════════════════════════════════════════════
# 2. FORCED REFRESH / INVALIDATION
# ═══════════════════════════════════════════════════════════════

class TestForceRefreshAndInvalidation:

    def test_force_refresh_bypasses_fresh_cache(self, store, fake_rpc):
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_clients_data("admin-1", force_refresh=True))
        _run(store.fetch_clients_data("admin-1", force_refresh=True))
        assert fake_rpc.count("get_clients_data") == 3

    def test_invalidate_one_resource(self, store, fake_rpc):
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_inactive_clients_data("admin-1"))

        store.invalidate_cache(ResourceKind.CLIENTS)
        assert store.clients_data is None
        assert store.last_fetched(ResourceKind.CLIENTS) is None
        assert store.inactive_clients_data is not None

        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_inactive_clients_data("admin-1"))
        assert fake_rpc.count("get_clients_data") == 2
        assert fake_rpc.count("get_inactive_clients_data") == 1

    def test_invalidate_all(self, store):
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_orders_data("admin-1"))
        _run(store.fetch_dashboard_data("admin-1"))

        store.invalidate_cache()

        for kind in ResourceKind:
            assert store.get(kind) is None
            assert store.last_fetched(kind) is None

    def test_invalidate_empty_store_is_noop(self, store):
        store.invalidate_cache()
        store.invalidate_cache(ResourceKind.ORDERS)
        assert all(store.get(kind) is None for kind in ResourceKind)


# ═══════════════════════════════════════════════════════════════
# 3. IN-FLIGHT REQUESTS
# ═══════════════════════════════════════════════════════════════

class TestInFlight:

    def test_concurrent_identical_fetches_share_one_call(self):
        rpc = FakeRPC(default_responses(), delay=0.02)
        store = DataStore(rpc, today=lambda: TODAY)

        async def scenario():
            await asyncio.gather(*[store.fetch_clients_data("admin-1") for _ in range(5)])

        _run(scenario())
        assert rpc.count("get_clients_data") == 1
        assert store.clients_data is not None
        print("✅ 5 concurrent mounts → 1 remote call")

    @pytest.mark.parametrize("fetch,procedure", [
        ("fetch_dashboard_data", "get_dashboard_data"),
        ("fetch_inactive_clients_data", "get_inactive_clients_data"),
        ("fetch_orders_data", "get_orders"),
    ])
    def test_dedup_applies_to_every_resource(self, fetch, procedure):
        rpc = FakeRPC(default_responses(), delay=0.02)
        store = DataStore(rpc, today=lambda: TODAY)

        async def scenario():
            await asyncio.gather(getattr(store, fetch)("admin-1"), getattr(store, fetch)("admin-1"))

        _run(scenario())
        assert rpc.count(procedure) == 1

    def test_loading_flag_during_flight(self):
        rpc = FakeRPC(default_responses(), delay=0.05)
        store = DataStore(rpc, today=lambda: TODAY)
        seen = {}

        async def scenario():
            pending = asyncio.ensure_future(store.fetch_clients_data("admin-1"))
            await asyncio.sleep(0.01)
            seen["during"] = store.is_loading(ResourceKind.CLIENTS)
            seen["other"] = store.is_loading(ResourceKind.ORDERS)
            await pending

        _run(scenario())
        assert seen["during"] is True
        assert seen["other"] is False
        assert store.is_loading(ResourceKind.CLIENTS) is False

    def test_stale_response_is_discarded(self):
        """A slow first response arriving after a newer one never overwrites it"""

        class SequencedRPC:
            def __init__(self):
                self.calls = 0

            async def call(self, procedure, params=None, timeout=None):
                self.calls += 1
                if self.calls == 1:
                    await asyncio.sleep(0.05)
                    return {"managedClients": [{"id": 1, "name": "old"}], "sharedClients": []}
                return {"managedClients": [{"id": 2, "name": "new"}], "sharedClients": []}

        rpc = SequencedRPC()
        store = DataStore(rpc, today=lambda: TODAY)

        async def scenario():
            first = asyncio.ensure_future(store.fetch_clients_data("admin-1"))
            await asyncio.sleep(0.01)
            await store.fetch_clients_data("admin-1", force_refresh=True)
            await first

        _run(scenario())
        assert rpc.calls == 2
        assert [c.name for c in store.clients_data.managed_clients] == ["new"]
        assert store.is_loading(ResourceKind.CLIENTS) is False

    def test_invalidate_disowns_inflight_request(self):
        rpc = FakeRPC(default_responses(), delay=0.05)
        store = DataStore(rpc, today=lambda: TODAY)

        async def scenario():
            pending = asyncio.ensure_future(store.fetch_clients_data("admin-1"))
            await asyncio.sleep(0.01)
            store.invalidate_cache(ResourceKind.CLIENTS)
            assert store.is_loading(ResourceKind.CLIENTS) is False
            await pending

        _run(scenario())
        assert store.clients_data is None
        assert store.error(ResourceKind.CLIENTS) is None

    def test_joiner_waits_for_superseding_request(self):
        """A forced refresh replaces the joined request: the joiner waits for the new one"""

        class SlowSecondRPC:
            def __init__(self):
                self.calls = 0

            async def call(self, procedure, params=None, timeout=None):
                self.calls += 1
                await asyncio.sleep(0.02 if self.calls == 1 else 0.06)
                return CLIENTS

        rpc = SlowSecondRPC()
        store = DataStore(rpc, today=lambda: TODAY)
        seen = {}

        async def scenario():
            first = asyncio.ensure_future(store.fetch_clients_data("admin-1"))
            await asyncio.sleep(0.005)
            joiner = asyncio.ensure_future(store.fetch_clients_data("admin-1"))
            await asyncio.sleep(0.005)
            forced = asyncio.ensure_future(store.fetch_clients_data("admin-1", force_refresh=True))
            await joiner
            seen["data"] = store.clients_data
            seen["loading"] = store.is_loading(ResourceKind.CLIENTS)
            await asyncio.gather(first, forced)

        _run(scenario())
        assert rpc.calls == 2
        assert seen["data"] is not None
        assert seen["loading"] is False

    def test_cancelled_caller_does_not_cancel_request(self):
        rpc = FakeRPC(default_responses(), delay=0.03)
        store = DataStore(rpc, today=lambda: TODAY)

        async def scenario():
            view = asyncio.ensure_future(store.fetch_clients_data("admin-1"))
            await asyncio.sleep(0.01)
            view.cancel()
            await asyncio.sleep(0.05)

        _run(scenario())
        assert store.clients_data is not None
        assert store.is_loading(ResourceKind.CLIENTS) is False


# ═══════════════════════════════════════════════════════════════
# 4. ERROR SLOTS
# ═══════════════════════════════════════════════════════════════

class TestErrorSlots:

    def test_failure_never_raises(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = RPCError("permission denied for function get_clients_data")
        _run(store.fetch_clients_data("admin-1"))

        assert store.error(ResourceKind.CLIENTS) == "permission denied for function get_clients_data"
        assert store.clients_data is None
        assert store.is_loading(ResourceKind.CLIENTS) is False

    def test_unexpected_exception_message(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = RuntimeError()
        _run(store.fetch_clients_data("admin-1"))
        assert store.error(ResourceKind.CLIENTS) == "RuntimeError"

    def test_error_cleared_on_next_attempt(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = RPCError("network down")
        _run(store.fetch_clients_data("admin-1"))
        assert store.error(ResourceKind.CLIENTS) == "network down"

        fake_rpc.responses["get_clients_data"] = CLIENTS
        _run(store.fetch_clients_data("admin-1"))
        assert store.error(ResourceKind.CLIENTS) is None
        assert store.clients_data is not None

    def test_failed_refresh_keeps_previous_value(self, store, fake_rpc, clock):
        _run(store.fetch_clients_data("admin-1"))
        fetched_at = store.last_fetched(ResourceKind.CLIENTS)
        previous = store.clients_data

        clock.advance(10)
        fake_rpc.responses["get_clients_data"] = RPCError("timeout")
        _run(store.fetch_clients_data("admin-1", force_refresh=True))

        assert store.clients_data is previous
        assert store.last_fetched(ResourceKind.CLIENTS) == fetched_at
        assert store.error(ResourceKind.CLIENTS) == "timeout"

    def test_no_automatic_retry(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = RPCError("boom")
        _run(store.fetch_clients_data("admin-1"))
        assert fake_rpc.count("get_clients_data") == 1

    def test_failure_is_not_cached(self, store, fake_rpc):
        """No value → next fetch goes to the network again"""
        fake_rpc.responses["get_clients_data"] = RPCError("boom")
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_clients_data("admin-1"))
        assert fake_rpc.count("get_clients_data") == 2

    def test_null_payload_defaults_to_empty_lists(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = None
        fake_rpc.responses["get_inactive_clients_data"] = {"managedInactiveClients": None}
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_inactive_clients_data("admin-1"))

        assert store.clients_data.managed_clients == []
        assert store.clients_data.shared_clients == []
        assert store.inactive_clients_data.managed_inactive_clients == []
        assert store.inactive_clients_data.shared_inactive_clients == []

    def test_row_without_id_does_not_fail_the_fetch(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = {"managedClients": [{"name": "No id"}], "sharedClients": []}
        _run(store.fetch_clients_data("admin-1"))

        assert store.error(ResourceKind.CLIENTS) is None
        assert store.clients_data.managed_clients[0].id is None

    def test_invalid_payload_short_message(self, store, fake_rpc):
        fake_rpc.responses["get_clients_data"] = {"managedClients": "not a list"}
        _run(store.fetch_clients_data("admin-1"))

        assert store.clients_data is None
        assert store.error(ResourceKind.CLIENTS) == "Invalid response from get_clients_data"


# ═══════════════════════════════════════════════════════════════
# 5. SNAPSHOT
# ═══════════════════════════════════════════════════════════════

class TestSnapshot:

    def test_snapshot_covers_every_resource(self, store, fake_rpc):
        fake_rpc.responses["get_orders"] = RPCError("orders down")
        _run(store.fetch_clients_data("admin-1"))
        _run(store.fetch_orders_data("admin-1"))

        snap = store.snapshot().to_response()
        assert set(snap) == {k.value for k in ResourceKind}
        assert snap["clients_data"]["data"]["managedClients"][0]["name"] == "Alice Tan"
        assert snap["orders_data"]["error"] == "orders down"
        assert snap["dashboard_data"]["data"] is None
        assert snap["dashboard_data"]["is_loading"] is False
