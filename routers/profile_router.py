"""
Profile Router - self-service profile links and session notices
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app_context import AppContext
from models.user import User
from routers.dependencies import get_context, require_user
from utils.responses import success_response

profile_router = APIRouter(prefix="/api", tags=["profile"])


class ProfileLinksRequest(BaseModel):
    instagram_url: Optional[str] = None
    facebook_url: Optional[str] = None


@profile_router.put("/profile/links")
async def update_profile_links(
    request: ProfileLinksRequest,
    user: User = Depends(require_user),
    ctx: AppContext = Depends(get_context),
):
    updated = await ctx.admin_service.update_profile_links(user.id, request.instagram_url, request.facebook_url)
    # Own writes are visible right away
    await ctx.sync.reconcile()
    return success_response(data=updated.public(), message="Salvo!")


@profile_router.get("/notifications")
async def drain_notifications(ctx: AppContext = Depends(get_context)):
    """Pending notices (forced logouts, due posts); each is returned once"""
    return success_response(data=ctx.drain_notices())
