from fastapi import APIRouter

from offday.api.balances import balance_router
from offday.api.grants import grants_router
from offday.api.personnel import personnel_router
from offday.api.reports import reports_router
from offday.api.usages import usages_router

api_router = APIRouter()
api_router.include_router(personnel_router)
api_router.include_router(grants_router)
api_router.include_router(usages_router)
api_router.include_router(balance_router)
api_router.include_router(reports_router)
