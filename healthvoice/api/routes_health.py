from __future__ import annotations

from fastapi import APIRouter

from ..core.config import get_settings


router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict:
    return {"ok": True}


@router.get("/version")
async def version() -> dict:
    return {"version": get_settings().MICROSERVICE_VERSION}
