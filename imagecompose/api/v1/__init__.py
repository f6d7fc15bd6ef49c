"""
API v1 Router Module

All v1 endpoints are prefixed with /api/v1/

- POST /api/v1/compose - Place product images onto backgrounds
- POST /api/v1/crop    - Trim uniform borders and resize
- GET  /api/v1/metrics - Prometheus metrics
"""

from fastapi import APIRouter

from imagecompose.api.v1.compose import router as compose_router
from imagecompose.api.v1.crop import router as crop_router
from imagecompose.api.v1.metrics import router as metrics_router

# Main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(compose_router, prefix="/compose", tags=["compose"])
api_v1_router.include_router(crop_router, prefix="/crop", tags=["crop"])
api_v1_router.include_router(metrics_router, tags=["metrics"])
