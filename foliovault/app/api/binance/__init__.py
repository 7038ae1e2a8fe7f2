"""Binance proxy routers."""

from fastapi import APIRouter

from foliovault.app.api.binance.account import router as account_router
from foliovault.app.api.binance.keys import router as keys_router
from foliovault.app.api.binance.market import router as market_router
from foliovault.app.api.binance.orders import router as orders_router
from foliovault.app.api.binance.sign import router as sign_router

router = APIRouter()
router.include_router(market_router)
router.include_router(account_router)
router.include_router(orders_router)
router.include_router(sign_router)
router.include_router(keys_router)

__all__ = ["router"]
