"""
PostRepository for store operations on the Posts collection
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from config.settings import POSTS_KEY
from crud.store import BlobStore
from models.post import Post

logger = logging.getLogger(__name__)


class PostRepository:
    """
    Repository class for the Posts collection.
    Post.user_id is not checked against Users here: posts whose owner
    was removed stay readable and deletable.
    """

    def __init__(self, store: BlobStore, key: str = POSTS_KEY):
        self.store = store
        self.key = key

    async def list_posts(self) -> List[Post]:
        posts = []
        for record in await self.store.read_collection(self.key):
            try:
                posts.append(Post.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed post record {record.get('id')!r}: {e.error_count()} errors")
        return posts

    async def save_posts(self, posts: List[Post]) -> None:
        await self.store.write_collection(self.key, [p.to_record() for p in posts])

    async def get_post(self, post_id: str) -> Optional[Post]:
        for post in await self.list_posts():
            if post.id == post_id:
                return post
        return None
