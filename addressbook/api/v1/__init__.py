"""API v1 routes."""

from fastapi import APIRouter

from addressbook.api.v1 import auth, contacts, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(contacts.router, prefix="/contacts", tags=["contacts"])
