from fastapi import APIRouter

from brmacro_api.routers.v1 import indicators, ingest, insights

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(ingest.router)
v1_router.include_router(indicators.router)
v1_router.include_router(insights.router)
