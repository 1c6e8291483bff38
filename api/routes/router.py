"""
API router.

Aggregates all endpoint modules.
"""

from fastapi import APIRouter

from . import auth

router = APIRouter()

# Include all route modules
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
