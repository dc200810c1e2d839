"""
Health check route.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.models import HealthCheck
from app.store import PasteStore, get_store

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck, responses={500: {"model": HealthCheck}})
async def health_check(store: PasteStore = Depends(get_store)):
    """
    Health check endpoint.
    Returns 200 with ok=true if the storage backend answers, 500 with ok=false otherwise.
    """
    if store.health():
        return HealthCheck(ok=True)
    return JSONResponse(status_code=500, content=HealthCheck(ok=False).model_dump())
