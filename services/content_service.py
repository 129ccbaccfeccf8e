import asyncio
import base64
import logging
from typing import Optional

from openai import AsyncOpenAI

from config.settings import settings

logger = logging.getLogger(__name__)

CAPTION_FALLBACK = "Não foi possível gerar a legenda."
CAPTION_ERROR = "Erro ao gerar legenda. Verifique sua chave API."


class ContentService:
    """
    Generative content collaborator. Captions fail soft to an error string,
    images and videos to None; nothing here raises into the callers.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client

    @property
    def client(self) -> Optional[AsyncOpenAI]:
        if self._client is None and settings.openai_api_key:
            self._client = AsyncOpenAI(api_key=settings.openai_api_key)
        return self._client

    async def generate_caption(self, topic: str, post_kind: str) -> str:
        """Caption with hashtags for an Instagram/Facebook post"""
        if self.client is None:
            logger.error("OpenAI API key not configured - cannot generate caption")
            return CAPTION_ERROR

        prompt = f"""Escreva uma legenda envolvente para um post de mídia social (Instagram/Facebook).
Tópico: {topic}
Tipo de post: {post_kind}
Idioma: Português (Moçambique).
Inclua hashtags relevantes."""

        try:
            response = await self.client.chat.completions.create(
                model=settings.openai_text_model,
                messages=[
                    {"role": "system", "content": "You write social media captions for small businesses."},
                    {"role": "user", "content": prompt}
                ],
                temperature=0.8,
            )
            text = (response.choices[0].message.content or "").strip()
            return text or CAPTION_FALLBACK
        except Exception as e:
            logger.error(f"Caption generation failed: {e}", exc_info=True)
            return CAPTION_ERROR

    async def generate_image(self, prompt: str) -> Optional[str]:
        """Square image as a PNG data URL, or None if nothing was produced"""
        if self.client is None:
            logger.error("OpenAI API key not configured - cannot generate image")
            return None

        try:
            response = await self.client.images.generate(
                model=settings.openai_image_model,
                prompt=prompt,
                size="1024x1024",
                n=1,
            )
            for item in response.data or []:
                if item.b64_json:
                    return f"data:image/png;base64,{item.b64_json}"
                if item.url:
                    return item.url
            return None
        except Exception as e:
            logger.error(f"Image generation failed: {e}", exc_info=True)
            return None

    async def generate_video(self, script: str, reference_image: Optional[str] = None) -> Optional[str]:
        """
        Portrait video for Reels. Starts a video job and polls it until it
        completes or fails.

        Args:
            script: prompt describing the video
            reference_image: optional data URL or raw base64 PNG to animate

        Returns:
            Path of the finished video under /api/content/videos, or None
        """
        if self.client is None:
            logger.error("OpenAI API key not configured - cannot generate video")
            return None

        try:
            params = {
                "model": settings.openai_video_model,
                "prompt": script,
                "size": "720x1280",
            }
            if reference_image:
                # Strip the data URL header if present
                encoded = reference_image.split(",", 1)[1] if "," in reference_image else reference_image
                params["input_reference"] = ("reference.png", base64.b64decode(encoded), "image/png")

            video = await self.client.videos.create(**params)
            for _ in range(settings.video_poll_attempts):
                if video.status in ("completed", "failed"):
                    break
                await asyncio.sleep(settings.video_poll_seconds)
                video = await self.client.videos.retrieve(video.id)

            if video.status != "completed":
                logger.warning(f"Video job {video.id} ended with status {video.status}")
                return None

            logger.info(f"Video job {video.id} completed")
            return f"/api/content/videos/{video.id}"
        except Exception as e:
            logger.error(f"Video generation failed: {e}", exc_info=True)
            return None

    async def download_video(self, video_id: str) -> Optional[bytes]:
        if self.client is None:
            return None
        try:
            content = await self.client.videos.download_content(video_id)
            return content.read()
        except Exception as e:
            logger.error(f"Video download failed for {video_id}: {e}")
            return None
