"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Modèle Order (Commandes de packages)                          ║
║                                                                              ║
║  Une commande = un package souscrit par un client, avec date d'inscription   ║
║  et date d'expiration.                                                       ║
║                                                                              ║
║  Champs calculés côté console:                                               ║
║  - is_expired = expiry_date < aujourd'hui                                    ║
║  - can_edit   = commande non partagée                                        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResult, page_offset


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    product_id: Optional[int] = None
    product_name: str = ""
    quantity: int = 0
    point_cost: float = 0
    duration: Optional[str] = None
    total_cost: float = 0


class Order(BaseModel):
    """Order row as returned by get_orders (total_count already stripped)"""
    model_config = ConfigDict(extra="allow")

    order_id: Optional[int] = None
    client_id: Optional[int] = None
    client_name: str = ""
    client_package: Optional[str] = None
    available_points: Optional[float] = None
    enrollment_date: Optional[date] = None
    expiry_date: Optional[date] = None
    payment_mode: Optional[str] = None
    collection_date: Optional[str] = None
    payment_date: Optional[str] = None
    shipping_location: Optional[str] = None
    total_points_cost: float = 0
    is_shared: bool = False
    order_items: List[OrderItem] = []

    # Computed
    is_expired: bool = False
    can_edit: bool = True

    @field_validator("order_items", mode="before")
    @classmethod
    def default_items(cls, v):
        return [] if v is None else v

    @field_validator("client_name", mode="before")
    @classmethod
    def default_name(cls, v):
        return "" if v is None else v

    @field_validator("total_points_cost", mode="before")
    @classmethod
    def default_cost(cls, v):
        return 0 if v is None else v

    @field_validator("is_shared", mode="before")
    @classmethod
    def default_shared(cls, v):
        return False if v is None else v

    @field_validator("enrollment_date", "expiry_date", mode="before")
    @classmethod
    def date_part(cls, v):
        # Timestamps come back as "2026-01-31T00:00:00+00:00"
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v

    @classmethod
    def from_row(cls, row: Dict[str, Any], today: date) -> "Order":
        order = cls.model_validate(row)
        order.is_expired = order.expiry_date is not None and order.expiry_date < today
        order.can_edit = not order.is_shared
        return order


class OrdersQuery(BaseModel):
    """Filters + page for the orders listing"""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search_term: str = ""
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return page_offset(self.page, self.page_size)


OrdersPage = PaginatedResult[Order]
