# src/tokenomy/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from tokenomy.api.routes_public_parts.accounts import router as accounts_router
from tokenomy.api.routes_public_parts.airdrop import router as airdrop_router
from tokenomy.api.routes_public_parts.economy import router as economy_router
from tokenomy.api.routes_public_parts.status import router as status_router
from tokenomy.api.routes_public_parts.tx import router as tx_router
from tokenomy.api.routes_public_parts.vesting import router as vesting_router

public_router = APIRouter()

public_router.include_router(status_router, prefix="/v1", tags=["status"])
public_router.include_router(accounts_router, prefix="/v1", tags=["accounts"])
public_router.include_router(economy_router, prefix="/v1", tags=["economy"])
public_router.include_router(vesting_router, prefix="/v1", tags=["vesting"])
public_router.include_router(airdrop_router, prefix="/v1", tags=["airdrop"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])
