# smartsupply/api/customers/main.py
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ...services.customer_cache import CustomerCache
from ...services.directory_client import DirectoryError
from .models import (
    CacheStatus,
    CachedCustomer,
    CustomerBalance,
    RefreshResponse,
    SyncResponse,
)

router = APIRouter()


# --- Dependency Injectors ---
def get_customer_cache(request: Request) -> CustomerCache:
    cache = getattr(request.app.state, "customer_cache", None)
    if cache is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Customer cache is not running",
        )
    return cache


# --- Customer cache endpoints ---


@router.get("/customers", response_model=list[CachedCustomer])
async def api_search_customers(
    response: Response,
    q: str = "",
    cache: CustomerCache = Depends(get_customer_cache),
):
    result = await cache.search_customers(q)
    response.headers["X-Cache-Source"] = result.source.value
    response.headers["X-Cache-Degraded"] = "true" if result.degraded else "false"
    return result.value


@router.get("/customers/cache-status", response_model=CacheStatus)
def api_cache_status(cache: CustomerCache = Depends(get_customer_cache)):
    return CacheStatus(
        state=cache.state,
        loading=cache.loading,
        syncing=cache.syncing,
        last_sync=cache.last_sync,
        count=len(cache.customers),
        persistent=cache.persistent,
    )


@router.post("/customers/sync", response_model=SyncResponse)
async def api_sync_customers(cache: CustomerCache = Depends(get_customer_cache)):
    try:
        await cache.sync_customers()
    except DirectoryError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Customer sync failed: {e}"
        )
    return SyncResponse(status="ok", count=len(cache.customers), last_sync=cache.last_sync)


@router.get("/customers/{customer_id}/balance", response_model=CustomerBalance)
async def api_get_customer_balance(
    customer_id: str, cache: CustomerCache = Depends(get_customer_cache)
):
    result = await cache.get_customer_balance(customer_id)
    return CustomerBalance(customer_id=customer_id, balance=result.value, degraded=result.degraded)


@router.post("/customers/{customer_id}/refresh", response_model=RefreshResponse)
async def api_refresh_customer(
    customer_id: str, cache: CustomerCache = Depends(get_customer_cache)
):
    result = await cache.refresh_customer(customer_id)
    customer = CachedCustomer.model_validate(result.value) if result.value else None
    return RefreshResponse(
        customer_id=customer_id, refreshed=not result.degraded, customer=customer
    )
