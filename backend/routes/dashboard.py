"""
Routes pour le dashboard (résumé du mois + rappels du jour)
"""

from fastapi import APIRouter, Depends, Query

from models import ResourceKind
from routes.auth import get_caller_id, get_store
from services.data_store import DataStore

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
async def get_dashboard(
    force_refresh: bool = Query(False, description="Ignore the 5 min cache"),
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    """
    Dashboard of the current calendar month.

    stats.pendingReminders counts today's pending reminders only.
    """
    await store.fetch_dashboard_data(caller_id, force_refresh=force_refresh)
    return store.state(ResourceKind.DASHBOARD).to_response()
