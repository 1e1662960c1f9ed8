"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Dashboard                                                     ║
║                                                                              ║
║  Résumé mensuel renvoyé par get_dashboard_data, enrichi par la console:      ║
║  - stats.pendingReminders = rappels PENDING du jour (FOLLOW_UP + EXPIRY)     ║
║  - reminderTypeDistribution = même comptage, par type                        ║
║                                                                              ║
║  Le nombre de rappels du résumé mensuel n'est JAMAIS conservé.               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class DashboardStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    managed_clients: int = Field(default=0, alias="managedClients")
    shared_clients: int = Field(default=0, alias="sharedClients")
    active_orders: int = Field(default=0, alias="activeOrders")
    expiring_soon: int = Field(default=0, alias="expiringSoon")
    pending_reminders: int = Field(default=0, alias="pendingReminders")

    @field_validator("*", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return 0 if v is None else v


class DistributionSlice(BaseModel):
    """One slice of a donut chart"""
    name: str
    value: int = 0


class RecentClient(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    name: Optional[str] = ""
    age: Optional[int] = None
    issue: Optional[str] = None
    phone: Optional[str] = None
    lifewave_id: Optional[int] = None
    enrollment_date: Optional[str] = None
    expiry_date: Optional[str] = None


class DashboardData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stats: DashboardStats = Field(default_factory=DashboardStats)
    recent_clients: List[RecentClient] = Field(default_factory=list, alias="recentClients")
    managed_package_distribution: List[DistributionSlice] = Field(
        default_factory=list, alias="managedPackageDistribution"
    )
    shared_package_distribution: List[DistributionSlice] = Field(
        default_factory=list, alias="sharedPackageDistribution"
    )
    reminder_type_distribution: List[DistributionSlice] = Field(
        default_factory=list, alias="reminderTypeDistribution"
    )

    @field_validator("stats", mode="before")
    @classmethod
    def default_stats(cls, v):
        return {} if v is None else v

    @field_validator(
        "recent_clients",
        "managed_package_distribution",
        "shared_package_distribution",
        "reminder_type_distribution",
        mode="before",
    )
    @classmethod
    def default_lists(cls, v):
        return [] if v is None else v
