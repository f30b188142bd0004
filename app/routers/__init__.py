"""API routers for the marketplace backend."""
from fastapi import APIRouter

from . import admin, apikeys, customers, health, providers, transfers, users


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(users.router)
    api_router.include_router(apikeys.router)
    api_router.include_router(customers.router)
    api_router.include_router(providers.router)
    api_router.include_router(transfers.router)
    api_router.include_router(admin.router)
    return api_router
