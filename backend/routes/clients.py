"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Routes Clients                                                ║
║                                                                              ║
║  Lecture: clients actifs (managed + shared) et clients inactifs              ║
║  Actions: activer / désactiver / supprimer un client                         ║
║  Les actions invalident le cache clients: la lecture suivante est fraîche    ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from models import ResourceKind
from routes.auth import get_caller_id, get_store
from services.data_store import DataStore
from services.rpc_client import RPCError

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("")
async def list_clients(
    force_refresh: bool = Query(False, description="Ignore the 5 min cache"),
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    """Active clients managed by / shared with the caller"""
    await store.fetch_clients_data(caller_id, force_refresh=force_refresh)
    return store.state(ResourceKind.CLIENTS).to_response()


@router.get("/inactive")
async def list_inactive_clients(
    force_refresh: bool = Query(False, description="Ignore the 5 min cache"),
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    """Inactive clients managed by / shared with the caller"""
    await store.fetch_inactive_clients_data(caller_id, force_refresh=force_refresh)
    return store.state(ResourceKind.INACTIVE_CLIENTS).to_response()


@router.post("/{client_id}/deactivate")
async def deactivate_client(
    client_id: int,
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    try:
        await store.set_client_inactive(caller_id, client_id)
    except RPCError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"success": True}


@router.post("/{client_id}/activate")
async def activate_client(
    client_id: int,
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    try:
        await store.set_client_active(caller_id, client_id)
    except RPCError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"success": True}


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    caller_id: str = Depends(get_caller_id),
    store: DataStore = Depends(get_store)
):
    try:
        await store.delete_client(caller_id, client_id)
    except RPCError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"success": True}
