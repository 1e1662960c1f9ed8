"""
CRM Console - Caller identity + session store

The authentication provider in front of the console forwards the
authenticated admin id in the X-Admin-Uuid header. Each admin gets its own
DataStore (session scope), held by the StoreRegistry on app.state.
"""

from fastapi import Depends, Header, HTTPException, Request
from typing import Optional

from services.data_store import DataStore, StoreRegistry


# ==================== HELPERS ====================

async def get_caller_id(x_admin_uuid: Optional[str] = Header(None)) -> str:
    """Caller identity, required on every route of the console."""
    if not x_admin_uuid or not x_admin_uuid.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_admin_uuid.strip()


def get_registry(request: Request) -> StoreRegistry:
    return request.app.state.store_registry


async def get_store(
    caller_id: str = Depends(get_caller_id),
    registry: StoreRegistry = Depends(get_registry),
) -> DataStore:
    """The caller's session store."""
    return registry.get(caller_id)
