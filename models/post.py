from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PostType(str, Enum):
    TEXT_IMAGE = "TEXT_IMAGE"
    CAROUSEL = "CAROUSEL"
    REEL = "REEL"


class PostContent(BaseModel):
    """
    Generated payload. Which fields are filled depends on the post type,
    but they are not mutually exclusive.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: Optional[str] = None
    images: Optional[List[str]] = None  # data URLs or remote URLs, in slide order
    video_url: Optional[str] = None
    script: Optional[str] = None


class Post(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str  # owner; not checked against Users on read
    type: PostType
    content: PostContent = PostContent()
    scheduled_time: Optional[int] = None  # ms since epoch, None for drafts
    is_posted: bool = False
    created_at: int

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
