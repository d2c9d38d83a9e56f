# smartsupply/api/customers/models.py
from pydantic import BaseModel, ConfigDict

from ...core.constants import CacheState


# --- Pydantic models (Customer cache) ---
class CachedCustomer(BaseModel):
    id: str
    name: str
    phone: str
    whatsapp: str | None = None
    house_no: str | None = None
    street_no: str | None = None
    area: str | None = None
    city: str | None = None
    address: str | None = None
    bottle_count: int | None = None
    avg_days_to_refill: int | None = None
    is_active: bool = True
    current_balance: float | None = None
    balance_last_updated: float | None = None
    model_config = ConfigDict(from_attributes=True)


class CacheStatus(BaseModel):
    state: CacheState
    loading: bool
    syncing: bool
    last_sync: float | None = None
    count: int
    persistent: bool


class SyncResponse(BaseModel):
    status: str
    count: int
    last_sync: float | None = None


class CustomerBalance(BaseModel):
    customer_id: str
    balance: float
    degraded: bool = False


class RefreshResponse(BaseModel):
    customer_id: str
    refreshed: bool
    customer: CachedCustomer | None = None
