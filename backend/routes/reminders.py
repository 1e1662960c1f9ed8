"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Routes Reminders                                              ║
║                                                                              ║
║  Liste paginée, filtrable par type (ALL / FOLLOW_UP / EXPIRY)                ║
║  Tri: trigger_date | created_at | client_name, ASC | DESC                    ║
║  Actions: changer le statut, supprimer                                       ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import Optional

from models import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ReminderSortBy,
    ReminderStatus,
    ReminderTypeFilter,
    RemindersQuery,
    ResourceKind,
    SortOrder
)
from routes.auth import get_caller_id, get_store
from services.data_store import DataStore
from services.rpc_client import RPCError

router = APIRouter(prefix="/reminders", tags=["Reminders"])


class ReminderStatusUpdate(BaseModel):
    status: ReminderStatus


@router.get("")
async def list_reminders(
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    search: str = Query("", description="Client name search"),
    reminder_type: ReminderTypeFilter = Query(ReminderTypeFilter.ALL),
    sort_by: ReminderSortBy = Query(ReminderSortBy.TRIGGER_DATE),
    sort_order: SortOrder = Query(SortOrder.ASC),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    force_refresh: bool = Query(False, description="Ignore the 5 min cache"),
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    query = RemindersQuery(
        start_date=start_date,
        end_date=end_date,
        search_term=search,
        reminder_type=reminder_type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    await store.fetch_reminders_data(caller_id, query, force_refresh=force_refresh)
    return store.state(ResourceKind.REMINDERS).to_response()


@router.patch("/{reminder_id}/status")
async def update_reminder_status(
    reminder_id: int,
    data: ReminderStatusUpdate,
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    try:
        await store.update_reminder_status(caller_id, reminder_id, data.status)
    except RPCError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"success": True}


@router.delete("/{reminder_id}")
async def delete_reminder(
    reminder_id: int,
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    try:
        await store.delete_reminder(caller_id, reminder_id)
    except RPCError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"success": True}
