"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Shared Data Store                                             ║
║                                                                              ║
║  Cache + fetch coordinator for one session (one caller identity).            ║
║  Five independent resources: dashboard, clients, inactive clients,           ║
║  orders (paginated), reminders (paginated).                                  ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  - Cache hit: value present, same query, age < 5 min -> no network call      ║
║  - Identical request already in flight -> wait for it, no new call           ║
║  - force_refresh -> always one network call                                  ║
║  - Only the latest request of a resource writes its cache / error slot       ║
║  - fetch_* NEVER raise: failures land in the resource's error slot           ║
║  - Mutations raise on failure, invalidate the affected caches on success     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import (
    CACHE_DURATION_MS,
    DASHBOARD_TIMEOUT_SECONDS,
    STORE_IDLE_SECONDS,
    STORE_REGISTRY_MAX_SIZE,
    TODAY_REMINDERS_LIMIT,
    month_bounds,
    now_ms,
)
from models import (
    CacheEntry,
    ClientsData,
    DashboardData,
    DistributionSlice,
    InactiveClientsData,
    Order,
    OrdersPage,
    OrdersQuery,
    Reminder,
    RemindersPage,
    RemindersQuery,
    ReminderStatus,
    ReminderType,
    ReminderTypeFilter,
    ResourceKind,
    ResourceState,
    StoreSnapshot,
    normalize_page,
    to_page_response,
)
from services.rpc_client import RPCError, handle_rpc_response, to_optional_param

logger = logging.getLogger("data_store")


# ════════════════════════════════════════════════════════════════════════════
# DASHBOARD MERGE
# ════════════════════════════════════════════════════════════════════════════

def count_pending_today(rows: Optional[List[Dict[str, Any]]]) -> Dict[ReminderType, int]:
    """Pending reminders of today's listing, per type (raw row values)"""
    counts = {ReminderType.FOLLOW_UP: 0, ReminderType.EXPIRY: 0}
    for row in rows or []:
        if row.get("status") != ReminderStatus.PENDING.value:
            continue
        reminder_type = row.get("reminder_type")
        if reminder_type == ReminderType.FOLLOW_UP.value:
            counts[ReminderType.FOLLOW_UP] += 1
        elif reminder_type == ReminderType.EXPIRY.value:
            counts[ReminderType.EXPIRY] += 1
    return counts


def merge_todays_reminders(summary: Any, todays_rows: Optional[List[Dict[str, Any]]]) -> DashboardData:
    """
    Merge today's pending reminders into the month summary.

    The summary's own reminder count is discarded.
    """
    data = DashboardData.model_validate(summary or {})
    counts = count_pending_today(todays_rows)

    data.stats.pending_reminders = counts[ReminderType.FOLLOW_UP] + counts[ReminderType.EXPIRY]
    data.reminder_type_distribution = [
        DistributionSlice(name=ReminderType.FOLLOW_UP.value, value=counts[ReminderType.FOLLOW_UP]),
        DistributionSlice(name=ReminderType.EXPIRY.value, value=counts[ReminderType.EXPIRY]),
    ]
    return data


# Procedure whose payload feeds each resource (dashboard: the month summary)
PROCEDURES = {
    ResourceKind.DASHBOARD: "get_dashboard_data",
    ResourceKind.CLIENTS: "get_clients_data",
    ResourceKind.INACTIVE_CLIENTS: "get_inactive_clients_data",
    ResourceKind.ORDERS: "get_orders",
    ResourceKind.REMINDERS: "get_reminders_for_admin",
}


def _error_message(kind: ResourceKind, exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return f"Invalid response from {PROCEDURES[kind]}"
    return str(exc) or exc.__class__.__name__


def _iso(day: Optional[date]) -> Optional[str]:
    return day.isoformat() if day else None


# ════════════════════════════════════════════════════════════════════════════
# STORE
# ════════════════════════════════════════════════════════════════════════════

class DataStore:
    """
    Session-scoped cache over the remote procedures.

    rpc must expose `async call(procedure, params, timeout=None)`.
    clock returns epoch milliseconds, today returns the current date; both are
    injectable for tests.
    """

    def __init__(
        self,
        rpc,
        clock: Callable[[], int] = now_ms,
        today: Callable[[], date] = date.today,
        cache_duration_ms: int = CACHE_DURATION_MS,
    ):
        self._rpc = rpc
        self._clock = clock
        self._today = today
        self.cache_duration_ms = cache_duration_ms

        self._cache: Dict[ResourceKind, CacheEntry] = {kind: CacheEntry() for kind in ResourceKind}
        self._errors: Dict[ResourceKind, Optional[str]] = {kind: None for kind in ResourceKind}
        self._tokens: Dict[ResourceKind, int] = {kind: 0 for kind in ResourceKind}
        self._inflight: Dict[ResourceKind, Tuple[Dict[str, Any], asyncio.Future]] = {}

    # ---- Reads ----

    def get(self, kind: ResourceKind) -> Optional[Any]:
        return self._cache[kind].value

    def is_loading(self, kind: ResourceKind) -> bool:
        return kind in self._inflight

    def error(self, kind: ResourceKind) -> Optional[str]:
        return self._errors[kind]

    def last_fetched(self, kind: ResourceKind) -> Optional[int]:
        return self._cache[kind].fetched_at_ms

    def state(self, kind: ResourceKind) -> ResourceState:
        return ResourceState(is_loading=self.is_loading(kind), error=self.error(kind), data=self.get(kind))

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            data={kind: self.get(kind) for kind in ResourceKind},
            is_loading={kind: self.is_loading(kind) for kind in ResourceKind},
            errors={kind: self.error(kind) for kind in ResourceKind},
            last_fetched={kind: self.last_fetched(kind) for kind in ResourceKind},
        )

    @property
    def dashboard_data(self) -> Optional[DashboardData]:
        return self.get(ResourceKind.DASHBOARD)

    @property
    def clients_data(self) -> Optional[ClientsData]:
        return self.get(ResourceKind.CLIENTS)

    @property
    def inactive_clients_data(self) -> Optional[InactiveClientsData]:
        return self.get(ResourceKind.INACTIVE_CLIENTS)

    @property
    def orders_data(self) -> Optional[OrdersPage]:
        return self.get(ResourceKind.ORDERS)

    @property
    def reminders_data(self) -> Optional[RemindersPage]:
        return self.get(ResourceKind.REMINDERS)

    def is_cache_valid(self, kind: ResourceKind, query: Optional[Dict[str, Any]] = None) -> bool:
        """Cached value present, produced by `query` (if given) and younger than the window"""
        entry = self._cache[kind]
        if entry.is_empty:
            return False
        if query is not None and entry.query != query:
            return False
        return self._clock() - entry.fetched_at_ms < self.cache_duration_ms

    # ---- Fetch core ----

    async def _fetch(
        self,
        kind: ResourceKind,
        query: Dict[str, Any],
        loader: Callable[[], Awaitable[Any]],
        force_refresh: bool,
    ):
        if not force_refresh and self.is_cache_valid(kind, query):
            logger.debug(f"{kind.value}: cache hit")
            return

        inflight = self._inflight.get(kind)
        if inflight is not None and not force_refresh and inflight[0] == query:
            logger.debug(f"{kind.value}: joining in-flight request")
            await self._await_current(kind, query)
            return

        self._tokens[kind] += 1
        token = self._tokens[kind]
        self._errors[kind] = None

        task = asyncio.ensure_future(self._run(kind, token, query, loader))
        self._inflight[kind] = (query, task)
        await self._await_current(kind, query)

    async def _await_current(self, kind: ResourceKind, query: Dict[str, Any]):
        """
        Wait until no request for `query` is in flight.

        A request superseded by a newer one for the same query hands over to
        it. A cancelled caller never cancels the request itself.
        """
        inflight = self._inflight.get(kind)
        while inflight is not None and inflight[0] == query:
            await asyncio.shield(inflight[1])
            inflight = self._inflight.get(kind)

    async def _run(
        self,
        kind: ResourceKind,
        token: int,
        query: Dict[str, Any],
        loader: Callable[[], Awaitable[Any]],
    ):
        try:
            value = await loader()
        except Exception as e:
            if isinstance(e, ValidationError):
                logger.warning(f"{kind.value}: invalid payload from {PROCEDURES[kind]}: {e.error_count()} error(s)")
            if self._tokens[kind] == token:
                self._errors[kind] = _error_message(kind, e)
        else:
            if self._tokens[kind] == token:
                self._cache[kind] = CacheEntry(value=value, fetched_at_ms=self._clock(), query=query)
            else:
                logger.debug(f"{kind.value}: stale response discarded (token {token})")
        finally:
            if self._tokens[kind] == token:
                self._inflight.pop(kind, None)

    # ---- Dashboard ----

    async def fetch_dashboard_data(self, caller_id: str, force_refresh: bool = False):
        """
        Month summary + today's pending reminders.

        The month range is always the current calendar month; both calls must
        succeed, otherwise the previous value stays cached.
        """
        today = self._today()
        month_start, month_end = month_bounds(today)
        query = {
            "caller_id": caller_id,
            "start_date": month_start.isoformat(),
            "end_date": month_end.isoformat(),
            "today": today.isoformat(),
        }

        async def load():
            results = await asyncio.gather(
                self._rpc.call(
                    "get_dashboard_data",
                    {
                        "admin_uuid": caller_id,
                        "start_date": month_start.isoformat(),
                        "end_date": month_end.isoformat(),
                    },
                    timeout=DASHBOARD_TIMEOUT_SECONDS,
                ),
                self._rpc.call(
                    "get_reminders_for_admin",
                    {
                        "admin_uuid": caller_id,
                        "start_date": today.isoformat(),
                        "end_date": today.isoformat(),
                        "limit_count": TODAY_REMINDERS_LIMIT,
                        "offset_count": 0,
                    },
                    timeout=DASHBOARD_TIMEOUT_SECONDS,
                ),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    raise result
            summary, todays_rows = results
            return merge_todays_reminders(summary, todays_rows)

        await self._fetch(ResourceKind.DASHBOARD, query, load, force_refresh)

    # ---- Clients ----

    async def fetch_clients_data(self, caller_id: str, force_refresh: bool = False):
        async def load():
            data = await self._rpc.call("get_clients_data", {"admin_uuid": caller_id})
            return ClientsData.model_validate(data or {})

        await self._fetch(ResourceKind.CLIENTS, {"caller_id": caller_id}, load, force_refresh)

    async def fetch_inactive_clients_data(self, caller_id: str, force_refresh: bool = False):
        async def load():
            data = await self._rpc.call("get_inactive_clients_data", {"admin_uuid": caller_id})
            return InactiveClientsData.model_validate(data or {})

        await self._fetch(ResourceKind.INACTIVE_CLIENTS, {"caller_id": caller_id}, load, force_refresh)

    # ---- Orders ----

    async def fetch_orders_data(
        self,
        caller_id: str,
        query: Optional[OrdersQuery] = None,
        force_refresh: bool = False,
    ):
        query = query or OrdersQuery()
        today = self._today()

        async def load():
            rows = await self._rpc.call("get_orders", {
                "admin_uuid": caller_id,
                "start_date": _iso(query.start_date),
                "end_date": _iso(query.end_date),
                "search_term": to_optional_param(query.search_term),
                "limit_count": query.page_size,
                "offset_count": query.offset,
            })
            return normalize_page(
                to_page_response(rows),
                query.page,
                query.page_size,
                parse_row=lambda row: Order.from_row(row, today),
                result_cls=OrdersPage,
            )

        key = {"caller_id": caller_id, **query.model_dump(mode="json")}
        await self._fetch(ResourceKind.ORDERS, key, load, force_refresh)

    # ---- Reminders ----

    async def fetch_reminders_data(
        self,
        caller_id: str,
        query: Optional[RemindersQuery] = None,
        force_refresh: bool = False,
    ):
        query = query or RemindersQuery()

        async def load():
            type_filter = None if query.reminder_type == ReminderTypeFilter.ALL else query.reminder_type.value
            rows = await self._rpc.call("get_reminders_for_admin", {
                "admin_uuid": caller_id,
                "start_date": _iso(query.start_date),
                "end_date": _iso(query.end_date),
                "search_term": to_optional_param(query.search_term),
                "reminder_type_filter": type_filter,
                "sort_by": query.sort_by.value,
                "sort_order": query.sort_order.value,
                "limit_count": query.page_size,
                "offset_count": query.offset,
            })
            return normalize_page(
                to_page_response(rows),
                query.page,
                query.page_size,
                parse_row=Reminder.model_validate,
                result_cls=RemindersPage,
            )

        key = {"caller_id": caller_id, **query.model_dump(mode="json")}
        await self._fetch(ResourceKind.REMINDERS, key, load, force_refresh)

    # ---- Invalidation / refresh ----

    def invalidate_cache(self, kind: Optional[ResourceKind] = None):
        """
        Clear one resource's cache entry, or all of them.

        A request still in flight for a cleared resource is disowned: its
        response will not repopulate the cache.
        """
        kinds = [kind] if kind is not None else list(ResourceKind)
        for k in kinds:
            self._cache[k] = CacheEntry()
            if k in self._inflight:
                self._tokens[k] += 1
                self._inflight.pop(k, None)

    async def refresh_all_data(self, caller_id: str):
        """Force-refresh the five resources concurrently; one failure never stops the others"""
        await asyncio.gather(
            self.fetch_dashboard_data(caller_id, force_refresh=True),
            self.fetch_clients_data(caller_id, force_refresh=True),
            self.fetch_inactive_clients_data(caller_id, force_refresh=True),
            self.fetch_orders_data(caller_id, self._cached_query(ResourceKind.ORDERS, OrdersQuery), force_refresh=True),
            self.fetch_reminders_data(caller_id, self._cached_query(ResourceKind.REMINDERS, RemindersQuery), force_refresh=True),
            return_exceptions=True,
        )

    def _cached_query(self, kind: ResourceKind, query_cls):
        """Filters of the currently cached page, so a refresh keeps what the view shows"""
        entry = self._cache[kind]
        if not entry.query:
            return query_cls()
        fields = {k: v for k, v in entry.query.items() if k in query_cls.model_fields}
        return query_cls.model_validate(fields)

    # ════════════════════════════════════════════════════════════════════════
    # MUTATIONS (raise on failure, invalidate on success)
    # ════════════════════════════════════════════════════════════════════════

    async def _mutate(self, procedure: str, params: Dict[str, Any], failure_message: str, invalidates: List[ResourceKind]):
        data = await self._rpc.call(procedure, params)
        if data is not None:
            handle_rpc_response(data, failure_message)
        for kind in invalidates:
            self.invalidate_cache(kind)
        return data

    async def set_client_inactive(self, caller_id: str, client_id: int):
        return await self._mutate(
            "set_client_inactive",
            {"admin_uuid": caller_id, "client_id_param": client_id},
            "Failed to deactivate client",
            [ResourceKind.CLIENTS, ResourceKind.INACTIVE_CLIENTS, ResourceKind.DASHBOARD],
        )

    async def set_client_active(self, caller_id: str, client_id: int):
        return await self._mutate(
            "set_client_active",
            {"admin_uuid": caller_id, "client_id_param": client_id},
            "Failed to activate client",
            [ResourceKind.CLIENTS, ResourceKind.INACTIVE_CLIENTS, ResourceKind.DASHBOARD],
        )

    async def delete_client(self, caller_id: str, client_id: int):
        return await self._mutate(
            "delete_client",
            {"admin_uuid": caller_id, "client_id_param": client_id},
            "Failed to delete client",
            [ResourceKind.CLIENTS, ResourceKind.INACTIVE_CLIENTS, ResourceKind.DASHBOARD],
        )

    async def delete_order(self, caller_id: str, order_id: int):
        return await self._mutate(
            "delete_order",
            {"admin_uuid": caller_id, "order_id_param": order_id},
            "Failed to delete order",
            [ResourceKind.ORDERS, ResourceKind.DASHBOARD],
        )

    async def update_reminder_status(self, caller_id: str, reminder_id: int, status: ReminderStatus):
        return await self._mutate(
            "update_reminder",
            {"admin_uuid": caller_id, "p_reminder_id": reminder_id, "p_status": ReminderStatus(status).value},
            "Failed to update reminder",
            [ResourceKind.REMINDERS, ResourceKind.DASHBOARD],
        )

    async def delete_reminder(self, caller_id: str, reminder_id: int):
        return await self._mutate(
            "delete_reminder",
            {"admin_uuid": caller_id, "p_reminder_id": reminder_id},
            "Failed to delete reminder",
            [ResourceKind.REMINDERS, ResourceKind.DASHBOARD],
        )


# ════════════════════════════════════════════════════════════════════════════
# REGISTRY (one store per caller identity)
# ════════════════════════════════════════════════════════════════════════════

class StoreRegistry:
    """
    Session-scoped stores, keyed by caller identity.

    Bounded: a store idle for longer than idle_seconds is dropped, and past
    max_size the least recently used store goes first.
    """

    def __init__(
        self,
        rpc,
        max_size: int = STORE_REGISTRY_MAX_SIZE,
        idle_seconds: int = STORE_IDLE_SECONDS,
        **store_options,
    ):
        self.rpc = rpc
        self.max_size = max_size
        self.idle_ms = idle_seconds * 1000
        self._clock = store_options.get("clock", now_ms)
        self._store_options = store_options
        # caller_id -> (store, last access ms), least recently used first
        self._stores: "OrderedDict[str, Tuple[DataStore, int]]" = OrderedDict()

    def get(self, caller_id: str) -> DataStore:
        now = self._clock()
        self._evict_idle(now)

        entry = self._stores.pop(caller_id, None)
        store = entry[0] if entry is not None else DataStore(self.rpc, **self._store_options)
        self._stores[caller_id] = (store, now)

        while len(self._stores) > self.max_size:
            oldest = next(iter(self._stores))
            logger.debug(f"store registry full, dropping {oldest}")
            self.discard(oldest)
        return store

    def _evict_idle(self, now: int):
        for caller_id, (_, last_access) in list(self._stores.items()):
            if now - last_access < self.idle_ms:
                break
            self.discard(caller_id)

    def discard(self, caller_id: str):
        self._stores.pop(caller_id, None)

    def __contains__(self, caller_id: str) -> bool:
        return caller_id in self._stores

    def __len__(self) -> int:
        return len(self._stores)


__all__ = [
    "DataStore",
    "StoreRegistry",
    "RPCError",
    "count_pending_today",
    "merge_todays_reminders",
]
