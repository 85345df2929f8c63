from fastapi import APIRouter

from offline_policy.api.routes import connectivity, health, offline_policies

api_router = APIRouter()

api_router.include_router(offline_policies.router, prefix="/offline-policies", tags=["Offline Policies"])
api_router.include_router(connectivity.router, prefix="/connectivity", tags=["Connectivity"])
api_router.include_router(health.router, prefix="", tags=["Health"])

__all__ = ["api_router"]
