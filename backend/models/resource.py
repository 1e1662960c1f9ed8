"""
CRM Console - Resource kinds and cache state

One cache slot, one loading flag and one error slot per resource kind.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class ResourceKind(str, Enum):
    """The five independently cached data sets (fixed set)"""
    DASHBOARD = "dashboard_data"
    CLIENTS = "clients_data"
    INACTIVE_CLIENTS = "inactive_clients_data"
    ORDERS = "orders_data"
    REMINDERS = "reminders_data"


class CacheEntry(BaseModel):
    """
    Cached value of one resource kind.

    value is set only together with fetched_at_ms. query holds the caller id
    and filters the value was fetched with.
    """
    value: Optional[Any] = None
    fetched_at_ms: Optional[int] = None
    query: Optional[Dict[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return self.value is None or self.fetched_at_ms is None


class ResourceState(BaseModel):
    """What a view observes for its resource"""
    is_loading: bool = False
    error: Optional[str] = None
    data: Optional[Any] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            "is_loading": self.is_loading,
            "error": self.error,
            "data": _dump(self.data),
        }


class StoreSnapshot(BaseModel):
    """Current state of every resource kind"""
    data: Dict[ResourceKind, Optional[Any]]
    is_loading: Dict[ResourceKind, bool]
    errors: Dict[ResourceKind, Optional[str]]
    last_fetched: Dict[ResourceKind, Optional[int]]

    def to_response(self) -> Dict[str, Any]:
        return {
            kind.value: {
                "is_loading": self.is_loading[kind],
                "error": self.errors[kind],
                "last_fetched": self.last_fetched[kind],
                "data": _dump(self.data[kind]),
            }
            for kind in ResourceKind
        }


def _dump(value: Any) -> Any:
    # Wire names (camelCase aliases) for the views
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value
