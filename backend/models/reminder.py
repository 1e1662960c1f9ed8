"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Modèle Reminder (Rappels)                                     ║
║                                                                              ║
║  Deux types: FOLLOW_UP (suivi client) et EXPIRY (package qui expire)         ║
║  Trois statuts: PENDING, COMPLETED, DISMISSED                                ║
║                                                                              ║
║  Les valeurs inconnues renvoyées par le backend sont ramenées:               ║
║  - type   -> FOLLOW_UP sauf EXPIRY                                           ║
║  - statut -> PENDING sauf COMPLETED / DISMISSED                              ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginatedResult, page_offset


class ReminderType(str, Enum):
    FOLLOW_UP = "FOLLOW_UP"
    EXPIRY = "EXPIRY"


class ReminderStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    DISMISSED = "DISMISSED"


class ReminderTypeFilter(str, Enum):
    ALL = "ALL"
    FOLLOW_UP = "FOLLOW_UP"
    EXPIRY = "EXPIRY"


class ReminderSortBy(str, Enum):
    TRIGGER_DATE = "trigger_date"
    CREATED_AT = "created_at"
    CLIENT_NAME = "client_name"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Reminder(BaseModel):
    """Reminder row as returned by get_reminders_for_admin"""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    client_id: Optional[int] = None
    client_name: str = ""
    client_phone: Optional[str] = None
    order_id: Optional[int] = None
    reminder_type: ReminderType = ReminderType.FOLLOW_UP
    trigger_date: Optional[str] = None
    message: str = ""
    status: ReminderStatus = ReminderStatus.PENDING
    created_at: Optional[str] = None

    @field_validator("reminder_type", mode="before")
    @classmethod
    def coerce_type(cls, v):
        return ReminderType.EXPIRY if v == ReminderType.EXPIRY.value else ReminderType.FOLLOW_UP

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        if v in (ReminderStatus.COMPLETED.value, ReminderStatus.DISMISSED.value):
            return ReminderStatus(v)
        return ReminderStatus.PENDING

    @field_validator("client_name", "message", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class RemindersQuery(BaseModel):
    """Filters, sort and page for the reminders listing"""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search_term: str = ""
    reminder_type: ReminderTypeFilter = ReminderTypeFilter.ALL
    sort_by: ReminderSortBy = ReminderSortBy.TRIGGER_DATE
    sort_order: SortOrder = SortOrder.ASC
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return page_offset(self.page, self.page_size)


RemindersPage = PaginatedResult[Reminder]
