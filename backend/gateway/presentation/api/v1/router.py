"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from gateway.presentation.api.v1.endpoints.health import router as health_router
from gateway.presentation.api.v1.endpoints.interactions import router as interactions_router
from gateway.presentation.api.v1.endpoints.proxy import router as proxy_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(proxy_router)
router.include_router(interactions_router)
