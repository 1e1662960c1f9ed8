"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Modèle Client                                                 ║
║                                                                              ║
║  Un client est géré par un admin (managed) ou partagé avec lui (shared).     ║
║  Les règles de partage vivent dans les procédures distantes: ici on ne       ║
║  fait que lire les lignes renvoyées, avec des valeurs par défaut.            ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Client(BaseModel):
    """Client row as returned by get_clients_data / get_inactive_clients_data"""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    created_at: Optional[str] = None
    admin_id: Optional[str] = None
    name: Optional[str] = ""
    age: Optional[int] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    issue: Optional[str] = None
    notes: Optional[str] = None
    package_id: Optional[int] = None
    lifewave_id: Optional[int] = None
    sponsor: Optional[str] = None


def _none_to_list(v: Any) -> Any:
    # Procedures return null instead of [] when a list is empty
    return [] if v is None else v


class ClientsData(BaseModel):
    """Active clients: owned by the admin and shared with the admin"""
    model_config = ConfigDict(populate_by_name=True)

    managed_clients: List[Client] = Field(default_factory=list, alias="managedClients")
    shared_clients: List[Client] = Field(default_factory=list, alias="sharedClients")

    @field_validator("managed_clients", "shared_clients", mode="before")
    @classmethod
    def default_lists(cls, v):
        return _none_to_list(v)


class InactiveClientsData(BaseModel):
    """Inactive clients, same split as ClientsData"""
    model_config = ConfigDict(populate_by_name=True)

    managed_inactive_clients: List[Client] = Field(default_factory=list, alias="managedInactiveClients")
    shared_inactive_clients: List[Client] = Field(default_factory=list, alias="sharedInactiveClients")

    @field_validator("managed_inactive_clients", "shared_inactive_clients", mode="before")
    @classmethod
    def default_lists(cls, v):
        return _none_to_list(v)
