"""
Posts Router - history, schedule, creation and removal of posts
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app_context import AppContext
from models.post import PostContent, PostType
from models.user import User
from routers.dependencies import get_context, require_access, require_user
from services.errors import PostNotFoundError
from utils.responses import success_response, domain_error_response, error_response
from utils.shared_utils import log_endpoint_event

posts_router = APIRouter(prefix="/api/posts", tags=["posts"])


class CreatePostRequest(BaseModel):
    type: PostType
    text: Optional[str] = None
    images: Optional[List[str]] = None
    video_url: Optional[str] = None
    script: Optional[str] = None
    scheduled_time: Optional[int] = Field(default=None, description="ms timestamp; omit to save as draft")


@posts_router.get("/history")
async def list_history(user: User = Depends(require_user), ctx: AppContext = Depends(get_context)):
    """All of the user's posts, newest first. Readable even after the trial ends."""
    posts = await ctx.post_service.history(user)
    return success_response(data=[p.to_record() for p in posts])


@posts_router.get("/schedule")
async def list_schedule(user: User = Depends(require_user), ctx: AppContext = Depends(get_context)):
    posts = await ctx.post_service.schedule(user)
    return success_response(data=[p.to_record() for p in posts])


@posts_router.post("")
async def create_post(
    request: CreatePostRequest,
    user: User = Depends(require_access),
    ctx: AppContext = Depends(get_context),
):
    """Save a generated post, either as a draft or queued for scheduled_time"""
    content = PostContent(
        text=request.text,
        images=request.images,
        video_url=request.video_url,
        script=request.script,
    )
    post = await ctx.post_service.create_post(user, request.type, content, request.scheduled_time)
    log_endpoint_event("/posts", ctx.client_id, "success", {"post_id": post.id, "scheduled": post.scheduled_time is not None})
    message = "Agendado com sucesso!" if post.scheduled_time is not None else "Salvo no histórico!"
    return success_response(data=post.to_record(), message=message)


@posts_router.delete("/{post_id}")
async def delete_post(post_id: str, user: User = Depends(require_user), ctx: AppContext = Depends(get_context)):
    """Remove one of the caller's own posts"""
    post = await ctx.posts.get_post(post_id)
    if post is None or post.user_id != user.id:
        return domain_error_response(PostNotFoundError())
    await ctx.post_service.delete_post(post_id)
    log_endpoint_event("/posts/delete", ctx.client_id, "success", {"post_id": post_id})
    return success_response(data={"post_id": post_id}, message="Publicação removida")


@posts_router.get("/{post_id}/publish")
async def publish_post(post_id: str, user: User = Depends(require_user), ctx: AppContext = Depends(get_context)):
    """Profile link to open for a manual publish"""
    post = await ctx.posts.get_post(post_id)
    if post is None or post.user_id != user.id:
        return domain_error_response(PostNotFoundError())
    url = ctx.post_service.publish_target(user)
    if url is None:
        return error_response(
            "profile_link_missing",
            status=409,
            message="Você não configurou o link do perfil.",
        )
    return success_response(data={"post_id": post_id, "url": url})
