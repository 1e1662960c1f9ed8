"""
CRM Console - Routes Cache

Snapshot of the caller's store, invalidation, refresh of every resource.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from models import ResourceKind
from routes.auth import get_caller_id, get_registry, get_store
from services.data_store import DataStore, StoreRegistry

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get("")
async def get_snapshot(store: DataStore = Depends(get_store)):
    """Data, loading flags, errors and fetch times of the five resources"""
    return store.snapshot().to_response()


@router.post("/invalidate")
async def invalidate(
    resource: Optional[ResourceKind] = Query(None, description="Omit to clear every resource"),
    store: DataStore = Depends(get_store)
):
    store.invalidate_cache(resource)
    return {"success": True, "invalidated": [resource.value] if resource else [k.value for k in ResourceKind]}


@router.delete("")
async def drop_session_store(
    caller_id: str = Depends(get_caller_id),
    registry: StoreRegistry = Depends(get_registry)
):
    """Forget the caller's store (sign-out); the next read starts cold"""
    registry.discard(caller_id)
    return {"success": True}


@router.post("/refresh")
async def refresh_all(
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    """Force-refresh the five resources; per-resource errors are in the snapshot"""
    await store.refresh_all_data(caller_id)
    return store.snapshot().to_response()
