"""
Application context: the explicit state container of one client runtime
"""
import logging
from typing import Callable, Dict, List, Optional

from config.settings import CURRENT_USER_KEY, settings
from crud.post import PostRepository
from crud.store import BlobStore
from crud.user import UserRepository
from models.user import User
from services.admin_service import AdminService
from services.post_service import PostService
from services.session_manager import SessionManager
from services.sync_service import DueScheduleChecker, SyncService
from utils.shared_utils import now_ms

logger = logging.getLogger(__name__)


class AppContext:
    """
    Owns the Users/Posts snapshot, the session and the timers of one
    runtime (one browser client). Contexts share a store, so a write made
    through one of them reaches the others through change notifications
    or, at worst, the next poll.
    """

    def __init__(
        self,
        store: BlobStore,
        client_id: Optional[str] = None,
        clock: Callable[[], int] = now_ms,
        sync_interval: Optional[float] = None,
        due_interval: Optional[float] = None,
    ):
        self.client_id = client_id
        self.store = store
        self.clock = clock
        self.notices: List[dict] = []

        session_key = CURRENT_USER_KEY if client_id is None else f"{CURRENT_USER_KEY}:{client_id}"
        self.users = UserRepository(store)
        self.posts = PostRepository(store)
        self.session = SessionManager(self.users, store, session_key, clock, notify=self.push_notice)
        self.sync = SyncService(self.users, self.posts, self.session, interval=sync_interval)
        self.due_checker = DueScheduleChecker(self.sync, self.session, self.push_notice, clock, interval=due_interval)
        self.post_service = PostService(self.posts, clock)
        self.admin_service = AdminService(self.users, clock)

        self.session.add_listener(on_start=self._start_timers, on_end=self._stop_timers)

    @property
    def user(self) -> Optional[User]:
        return self.session.user

    async def start(self) -> None:
        """Restore a persisted session, if any, and load the first snapshot"""
        await self.session.restore()
        await self.sync.reconcile()

    def shutdown(self) -> None:
        self._stop_timers()

    def push_notice(self, kind: str, message: str, **extra) -> None:
        notice = {"kind": kind, "message": message, "at": self.clock(), **extra}
        self.notices.append(notice)
        logger.info(f"Notice for client {self.client_id}: {kind}")

    def drain_notices(self) -> List[dict]:
        notices, self.notices = self.notices, []
        return notices

    def _start_timers(self, user: User) -> None:
        self.sync.start()
        if not user.is_admin:
            self.due_checker.start()

    def _stop_timers(self) -> None:
        self.sync.stop()
        self.due_checker.stop()


class ContextRegistry:
    """
    One AppContext per client id, all over the same store.

    Contexts live only while they hold something: an active session or
    undelivered notices. Anonymous contexts are dropped once their request
    ends, and sessions idle past ``idle_seconds`` are shut down. Their
    persisted session key stays in the store, so the next request from
    that client restores them.
    """

    def __init__(
        self,
        store: BlobStore,
        clock: Callable[[], int] = now_ms,
        sync_interval: Optional[float] = None,
        due_interval: Optional[float] = None,
        idle_seconds: Optional[float] = None,
    ):
        self.store = store
        self.clock = clock
        self.sync_interval = sync_interval
        self.due_interval = due_interval
        idle = idle_seconds if idle_seconds is not None else settings.context_idle_seconds
        self.idle_ms = int(idle * 1000)
        self._contexts: Dict[str, AppContext] = {}
        self._last_seen: Dict[str, int] = {}
        self._in_use: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._contexts)

    async def get_or_create(self, client_id: str) -> AppContext:
        now = self.clock()
        self.prune(now)
        self._last_seen[client_id] = now
        context = self._contexts.get(client_id)
        if context is None:
            context = AppContext(
                self.store,
                client_id=client_id,
                clock=self.clock,
                sync_interval=self.sync_interval,
                due_interval=self.due_interval,
            )
            self._contexts[client_id] = context
            await context.start()
        return context

    def acquire(self, client_id: str) -> None:
        """Mark a request from this client as in flight"""
        self._in_use[client_id] = self._in_use.get(client_id, 0) + 1

    def release(self, client_id: str) -> None:
        """End of a request: drop the context if nothing is left in it"""
        remaining = self._in_use.get(client_id, 0) - 1
        if remaining > 0:
            self._in_use[client_id] = remaining
            return
        self._in_use.pop(client_id, None)
        context = self._contexts.get(client_id)
        if context is not None and context.user is None and not context.notices:
            self._evict(client_id)

    def prune(self, now: Optional[int] = None) -> None:
        """Shut down contexts with no request in flight for longer than the idle timeout"""
        if now is None:
            now = self.clock()
        idle = [
            client_id for client_id, seen in self._last_seen.items()
            if client_id in self._contexts
            and client_id not in self._in_use
            and now - seen > self.idle_ms
        ]
        for client_id in idle:
            logger.info(f"Evicting idle context for client {client_id}")
            self._evict(client_id)

    def _evict(self, client_id: str) -> None:
        context = self._contexts.pop(client_id, None)
        self._last_seen.pop(client_id, None)
        if context is not None:
            context.shutdown()

    def shutdown(self) -> None:
        for context in self._contexts.values():
            context.shutdown()
        self._contexts.clear()
        self._last_seen.clear()
        self._in_use.clear()
