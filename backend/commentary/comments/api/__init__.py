"""Comments API routers."""

from fastapi import APIRouter

from . import comments

router = APIRouter()
router.include_router(comments.router)

__all__ = ["router"]
