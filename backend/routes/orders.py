"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Routes Orders                                                 ║
║                                                                              ║
║  Liste paginée côté serveur (page 1-indexée, offset = (page-1) * limit)      ║
║  Filtres: période, recherche par nom de client                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from models import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, OrdersQuery, ResourceKind
from routes.auth import get_caller_id, get_store
from services.data_store import DataStore
from services.rpc_client import RPCError

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("")
async def list_orders(
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    search: str = Query("", description="Client name search"),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    force_refresh: bool = Query(False, description="Ignore the 5 min cache"),
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    query = OrdersQuery(
        start_date=start_date,
        end_date=end_date,
        search_term=search,
        page=page,
        page_size=page_size,
    )
    await store.fetch_orders_data(caller_id, query, force_refresh=force_refresh)
    return store.state(ResourceKind.ORDERS).to_response()


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    try:
        await store.delete_order(caller_id, order_id)
    except RPCError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"success": True}
