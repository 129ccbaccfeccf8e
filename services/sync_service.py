"""
Synchronization loop and due-schedule checker for one client runtime.

Both run as asyncio tasks on the application's event loop and only while
a session is active. Nothing here runs in parallel: interleaving happens
at await points only.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Set

from config.settings import settings
from crud.post import PostRepository
from crud.user import UserRepository
from models.post import Post
from models.user import User
from services.session_manager import SessionManager
from utils.shared_utils import now_ms

logger = logging.getLogger(__name__)

DUE_POST_NOTICE = "A sua publicação está pronta para ser feita agora."


class SyncService:
    """
    Keeps the runtime's Users/Posts snapshot and its session in line with
    the store. Triggered by store change notifications and by a fixed poll.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        post_repo: PostRepository,
        session: SessionManager,
        interval: Optional[float] = None,
    ):
        self.user_repo = user_repo
        self.post_repo = post_repo
        self.session = session
        self.interval = interval if interval is not None else settings.sync_interval_seconds
        self.users: List[User] = []
        self.posts: List[Post] = []
        self._lock = asyncio.Lock()
        self._running = False
        self._poll_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._unsubscribe: List[Callable[[], None]] = []

    @property
    def running(self) -> bool:
        return self._running

    async def reconcile(self) -> None:
        """
        Reload both collections in full, then re-resolve the session.
        Running it with nothing changed leaves the session untouched.
        """
        async with self._lock:
            users = await self.user_repo.list_users()
            posts = await self.post_repo.list_posts()
            self.users = users
            self.posts = posts
            await self.session.resolve(users)

    def start(self) -> None:
        """Subscribe to store changes and start polling. Requires a running event loop."""
        if self._running:
            return
        self._running = True
        store = self.user_repo.store
        for key in (self.user_repo.key, self.post_repo.key):
            self._unsubscribe.append(store.on_collection_changed(key, self._on_change))
        self._poll_task = asyncio.create_task(self._poll())
        self._schedule_reconcile()
        logger.debug(f"Sync started (every {self.interval}s)")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()

        # stop() can be reached from inside a reconcile (forced logout);
        # that task finishes on its own once _running is False.
        current = asyncio.current_task()
        if self._poll_task is not None and self._poll_task is not current:
            self._poll_task.cancel()
        self._poll_task = None
        for task in list(self._pending):
            if task is not current:
                task.cancel()
        logger.debug("Sync stopped")

    def _on_change(self, key: str) -> None:
        if self._running:
            self._schedule_reconcile()

    def _schedule_reconcile(self) -> None:
        task = asyncio.create_task(self._safe_reconcile())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _safe_reconcile(self) -> None:
        try:
            await self.reconcile()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Reconciliation failed: {e}")

    async def _poll(self) -> None:
        # A restart replaces _poll_task; the superseded loop exits here
        while self._poll_task is asyncio.current_task():
            await asyncio.sleep(self.interval)
            if self._poll_task is not asyncio.current_task():
                break
            await self._safe_reconcile()


class DueScheduleChecker:
    """
    Raises a local notification when a scheduled post of the active user
    falls inside the trailing due window.

    Posts already notified in this session are remembered in memory, so a
    post seen by two consecutive checks only fires once.
    """

    def __init__(
        self,
        sync: SyncService,
        session: SessionManager,
        notify: Callable[..., None],
        clock: Callable[[], int] = now_ms,
        interval: Optional[float] = None,
        window_seconds: Optional[float] = None,
    ):
        self.sync = sync
        self.session = session
        self.notify = notify
        self.clock = clock
        self.interval = interval if interval is not None else settings.due_check_interval_seconds
        window = window_seconds if window_seconds is not None else settings.due_window_seconds
        self.window_ms = int(window * 1000)
        self._notified: Set[str] = set()
        self._task: Optional[asyncio.Task] = None

    def due_posts(self, now: Optional[int] = None) -> List[Post]:
        user = self.session.user
        if user is None or user.is_admin:
            return []
        if now is None:
            now = self.clock()
        return [
            post for post in self.sync.posts
            if post.user_id == user.id
            and post.scheduled_time is not None
            and not post.is_posted
            and now - self.window_ms < post.scheduled_time <= now
        ]

    def check(self, now: Optional[int] = None) -> List[Post]:
        """Notify for every newly due post; returns the posts notified"""
        fired = []
        for post in self.due_posts(now):
            if post.id in self._notified:
                continue
            self._notified.add(post.id)
            self.notify("post_due", DUE_POST_NOTICE, post_id=post.id)
            fired.append(post)
        if fired:
            logger.info(f"{len(fired)} scheduled post(s) due for user {self.session.user.id}")
        return fired

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run())

    def stop(self) -> None:
        task, self._task = self._task, None
        self._notified.clear()
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.check()
