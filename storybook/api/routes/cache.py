"""AI response cache inspection endpoints."""

import logging

from fastapi import APIRouter

from ...core.ai_cache import ai_cache
from ..dependencies import CurrentUser
from ..models.enums import CacheKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["Cache"])


@router.get("/stats", summary="Cache entry counts and TTLs")
async def cache_stats(user: CurrentUser):
    return {"success": True, "stats": ai_cache.stats()}


@router.delete("/{kind}", summary="Clear cached AI responses")
async def clear_cache(kind: CacheKind, user: CurrentUser):
    removed = ai_cache.clear(kind.value)
    logger.info("Cache cleared by user", extra={"user_id": user.id, "event": f"cache_clear:{kind.value}"})
    return {"success": True, "kind": kind.value, "removed": removed}
