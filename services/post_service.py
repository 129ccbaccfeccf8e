"""
Post Service - creation, listing and removal of content records
"""
import logging
from typing import Callable, List, Optional, Union

from crud.post import PostRepository
from models.post import Post, PostContent, PostType
from models.user import User
from utils.shared_utils import next_id, now_ms

logger = logging.getLogger(__name__)


class PostService:
    """
    Posts are immutable once saved: they can be created and deleted, never
    edited. Access checks belong to the caller; nothing here re-checks them.
    """

    def __init__(self, post_repo: PostRepository, clock: Callable[[], int] = now_ms):
        self.post_repo = post_repo
        self.clock = clock

    async def create_post(
        self,
        owner: User,
        post_type: PostType,
        content: Union[PostContent, dict],
        scheduled_time: Optional[int] = None,
    ) -> Post:
        """
        Append a new post for owner and persist the collection.

        Args:
            owner: authenticated user the post belongs to
            post_type: TEXT_IMAGE, CAROUSEL or REEL
            content: generated payload
            scheduled_time: ms timestamp to queue the post for; None saves it as a draft

        Returns:
            The created Post (is_posted is always False)
        """
        if not isinstance(content, PostContent):
            content = PostContent.model_validate(content)

        posts = await self.post_repo.list_posts()
        now = self.clock()
        post = Post(
            id=next_id((p.id for p in posts), now),
            user_id=owner.id,
            type=post_type,
            content=content,
            scheduled_time=scheduled_time,
            is_posted=False,
            created_at=now,
        )
        posts.append(post)
        await self.post_repo.save_posts(posts)
        logger.info(f"Post {post.id} ({post.type.value}) {'scheduled' if scheduled_time else 'saved'} for user {owner.id}")
        return post

    async def delete_post(self, post_id: str) -> bool:
        """
        Remove the post with this id. No ownership check at this layer.

        Returns:
            True if a post was removed, False if none matched
        """
        posts = await self.post_repo.list_posts()
        remaining = [p for p in posts if p.id != post_id]
        if len(remaining) == len(posts):
            return False
        await self.post_repo.save_posts(remaining)
        logger.info(f"Post {post_id} deleted")
        return True

    async def history(self, user: User) -> List[Post]:
        """All posts of user, newest first"""
        posts = [p for p in await self.post_repo.list_posts() if p.user_id == user.id]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    async def schedule(self, user: User) -> List[Post]:
        """Scheduled posts of user, soonest first"""
        posts = [
            p for p in await self.post_repo.list_posts()
            if p.user_id == user.id and p.scheduled_time is not None
        ]
        return sorted(posts, key=lambda p: p.scheduled_time)

    @staticmethod
    def publish_target(user: User) -> Optional[str]:
        """
        Profile link the user publishes to by hand: Instagram first, then
        Facebook. None means no link is configured yet.
        """
        return user.instagram_url or user.facebook_url or None
