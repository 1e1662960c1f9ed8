"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Models Package                                                ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import ResourceKind, DashboardData, OrdersQuery, etc.           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Resource kinds / cache state
from .resource import (
    ResourceKind,
    CacheEntry,
    ResourceState,
    StoreSnapshot
)

# Pagination
from .pagination import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PaginatedResponse,
    ListResponse,
    PageResponse,
    PaginatedResult,
    page_offset,
    to_page_response,
    normalize_page
)

# Dashboard
from .dashboard import (
    DashboardStats,
    DashboardData,
    DistributionSlice,
    RecentClient
)

# Clients
from .client import (
    Client,
    ClientsData,
    InactiveClientsData
)

# Orders
from .order import (
    Order,
    OrderItem,
    OrdersQuery,
    OrdersPage
)

# Reminders
from .reminder import (
    ReminderType,
    ReminderStatus,
    ReminderTypeFilter,
    ReminderSortBy,
    SortOrder,
    Reminder,
    RemindersQuery,
    RemindersPage
)

__all__ = [
    # Resource
    "ResourceKind",
    "CacheEntry",
    "ResourceState",
    "StoreSnapshot",
    # Pagination
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "PaginatedResponse",
    "ListResponse",
    "PageResponse",
    "PaginatedResult",
    "page_offset",
    "to_page_response",
    "normalize_page",
    # Dashboard
    "DashboardStats",
    "DashboardData",
    "DistributionSlice",
    "RecentClient",
    # Clients
    "Client",
    "ClientsData",
    "InactiveClientsData",
    # Orders
    "Order",
    "OrderItem",
    "OrdersQuery",
    "OrdersPage",
    # Reminders
    "ReminderType",
    "ReminderStatus",
    "ReminderTypeFilter",
    "ReminderSortBy",
    "SortOrder",
    "Reminder",
    "RemindersQuery",
    "RemindersPage",
]
