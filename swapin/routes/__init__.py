from fastapi import APIRouter

from . import account, items, notifications, orders, profiles, swaps

api_router = APIRouter()
for module in (profiles, items, swaps, account, notifications, orders):
    api_router.include_router(module.router)
