"""
Content Router - generative captions, images and videos for gated users
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from app_context import AppContext
from models.post import PostType
from models.user import User
from routers.dependencies import get_context, require_access, require_user
from services.content_service import CAPTION_ERROR, ContentService
from utils.responses import success_response, error_response
from utils.shared_utils import log_endpoint_event

# Create router for content endpoints
router = APIRouter(prefix="/api/content", tags=["content"])


def get_content_service(request: Request) -> ContentService:
    return request.app.state.content_service


class CaptionRequest(BaseModel):
    topic: str = Field(..., min_length=1)
    post_kind: PostType = PostType.TEXT_IMAGE


class ImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1)


class VideoRequest(BaseModel):
    script: str = Field(..., min_length=1)
    reference_image: Optional[str] = Field(default=None, description="data URL or base64 PNG")


@router.post("/caption")
async def generate_caption(
    request: CaptionRequest,
    user: User = Depends(require_access),
    ctx: AppContext = Depends(get_context),
    content_service: ContentService = Depends(get_content_service),
):
    text = await content_service.generate_caption(request.topic, request.post_kind.value)
    if text == CAPTION_ERROR:
        log_endpoint_event("/content/caption", ctx.client_id, "error")
        return error_response("generation_failed", status=502, message=text)
    log_endpoint_event("/content/caption", ctx.client_id, "success")
    return success_response(data={"text": text})


@router.post("/image")
async def generate_image(
    request: ImageRequest,
    user: User = Depends(require_access),
    ctx: AppContext = Depends(get_context),
    content_service: ContentService = Depends(get_content_service),
):
    image = await content_service.generate_image(request.prompt)
    if image is None:
        log_endpoint_event("/content/image", ctx.client_id, "error")
        return error_response("generation_failed", status=502, message="Não foi possível gerar a imagem.")
    log_endpoint_event("/content/image", ctx.client_id, "success")
    return success_response(data={"image": image})


@router.post("/video")
async def generate_video(
    request: VideoRequest,
    user: User = Depends(require_access),
    ctx: AppContext = Depends(get_context),
    content_service: ContentService = Depends(get_content_service),
):
    """Long-running: returns once the video job has finished"""
    video_url = await content_service.generate_video(request.script, request.reference_image)
    if video_url is None:
        log_endpoint_event("/content/video", ctx.client_id, "error")
        return error_response("generation_failed", status=502, message="Não foi possível gerar o vídeo.")
    log_endpoint_event("/content/video", ctx.client_id, "success")
    return success_response(data={"video_url": video_url})


@router.get("/videos/{video_id}")
async def download_video(
    video_id: str,
    user: User = Depends(require_user),
    content_service: ContentService = Depends(get_content_service),
):
    data = await content_service.download_video(video_id)
    if data is None:
        return error_response("not_found", status=404, message="Vídeo não encontrado.")
    return Response(content=data, media_type="video/mp4")
