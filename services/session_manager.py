"""
Session Manager - who is the active actor in one client runtime
"""
import logging
from enum import Enum
from typing import Callable, List, Optional

from config.settings import CURRENT_USER_KEY
from crud.store import BlobStore
from crud.user import UserRepository
from models.user import PlanType, User
from services.errors import (
    AccessDeniedError,
    AdminAlreadyExistsError,
    BlockedAccountError,
    DuplicateEmailError,
    InvalidCredentialsError,
    MissingFieldsError,
)
from utils.shared_utils import next_id, now_ms

logger = logging.getLogger(__name__)

ACCOUNT_REMOVED_NOTICE = "A sua conta foi removida."
ACCOUNT_BLOCKED_NOTICE = "A sua conta foi bloqueada. Contacte o suporte."


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    ACTIVE_USER = "active_user"
    ACTIVE_ADMIN = "active_admin"
    BLOCKED_FORCED_LOGOUT = "blocked_forced_logout"


class SessionManager:
    """
    Holds the in-memory session of one runtime and mirrors it to a
    current-session key in the store.

    The sync loop calls resolve() with every freshly loaded Users
    collection; that is the only place the session object is replaced
    outside of login/register/logout.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        store: BlobStore,
        session_key: str = CURRENT_USER_KEY,
        clock: Callable[[], int] = now_ms,
        notify: Optional[Callable[[str, str], None]] = None,
    ):
        self.user_repo = user_repo
        self.store = store
        self.session_key = session_key
        self.clock = clock
        self.notify = notify
        self.user: Optional[User] = None
        self.state = SessionState.ANONYMOUS
        self._on_start: List[Callable[[User], None]] = []
        self._on_end: List[Callable[[], None]] = []

    def add_listener(self, on_start: Callable[[User], None], on_end: Callable[[], None]) -> None:
        """Register hooks run when a session begins and when it ends"""
        self._on_start.append(on_start)
        self._on_end.append(on_end)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def surface(self) -> Optional[str]:
        if self.user is None:
            return None
        return "admin" if self.user.is_admin else "user"

    async def restore(self) -> Optional[User]:
        """
        Pick up the session persisted by a previous run, re-checked
        against the current Users collection.
        """
        stored = await self.store.read_value(self.session_key)
        if not isinstance(stored, dict) or not stored.get("id"):
            return None

        users = await self.user_repo.list_users()
        fresh = next((u for u in users if u.id == stored["id"]), None)
        if fresh is None:
            logger.info(f"Stored session for user {stored['id']} refers to a removed account")
            await self._force_logout("account_removed", ACCOUNT_REMOVED_NOTICE)
            return None
        if fresh.is_blocked and not fresh.is_admin:
            logger.info(f"Stored session for user {fresh.id} refers to a blocked account")
            await self._force_logout("account_blocked", ACCOUNT_BLOCKED_NOTICE)
            return None

        await self._establish(fresh)
        return fresh

    async def login(self, email: str, password: str, admin_entry: bool = False) -> User:
        """
        Resolve credentials to a session.

        Args:
            email: exact email
            password: exact password (plain text comparison)
            admin_entry: True when the admin entry point was used

        Raises:
            InvalidCredentialsError: no user matches both fields
            BlockedAccountError: the matched account is blocked
            AccessDeniedError: admin entry point used by a non-admin
        """
        found = await self.user_repo.find_by_credentials(email, password)
        if found is None:
            raise InvalidCredentialsError()
        if found.is_blocked:
            raise BlockedAccountError()
        if admin_entry and not found.is_admin:
            raise AccessDeniedError()

        # Admins coming through the normal entry point still get a session;
        # surface routes them to the admin side.
        await self._establish(found)
        logger.info(f"User {found.id} logged in ({self.surface} surface)")
        return found

    async def register(self, name: str, email: str, password: str, admin_entry: bool = False) -> User:
        """
        Create an account and log it in.

        The admin entry point only registers while no administrator exists;
        that account gets the ANUAL plan. Everyone else starts a TRIAL now.
        """
        if not name or not email or not password:
            raise MissingFieldsError()

        users = await self.user_repo.list_users()
        if admin_entry and any(u.is_admin for u in users):
            raise AdminAlreadyExistsError()
        if any(u.email == email for u in users):
            raise DuplicateEmailError()

        now = self.clock()
        user = User(
            id=next_id((u.id for u in users), now),
            name=name,
            email=email,
            password=password,
            trial_start_date=now,
            plan=PlanType.ANUAL if admin_entry else PlanType.TRIAL,
            is_blocked=False,
            is_admin=admin_entry,
        )
        users.append(user)
        await self.user_repo.save_users(users)
        logger.info(f"Registered {'administrator' if admin_entry else 'user'} {user.id}")

        await self._establish(user)
        return user

    async def logout(self) -> None:
        was_active = self.user is not None
        self.user = None
        self.state = SessionState.ANONYMOUS
        await self.store.delete_value(self.session_key)
        if was_active:
            for hook in self._on_end:
                hook()

    async def resolve(self, users: List[User]) -> None:
        """
        Re-derive the session from a freshly loaded Users collection.

        Missing record: forced logout (account removed).
        Blocked non-admin: forced logout with a notice.
        Otherwise the fresh record replaces the in-memory one, so plan,
        trial and flag changes apply without logging in again.
        """
        if self.user is None:
            return

        current_id = self.user.id
        fresh = next((u for u in users if u.id == current_id), None)
        if fresh is None:
            logger.warning(f"Session user {current_id} no longer exists, forcing logout")
            await self._force_logout("account_removed", ACCOUNT_REMOVED_NOTICE)
            return
        if fresh.is_blocked and not fresh.is_admin:
            logger.warning(f"Session user {current_id} was blocked, forcing logout")
            self.state = SessionState.BLOCKED_FORCED_LOGOUT
            await self._force_logout("account_blocked", ACCOUNT_BLOCKED_NOTICE)
            return

        if fresh != self.user:
            self.user = fresh
            self.state = self._state_for(fresh)
            await self.store.write_value(self.session_key, fresh.public())

    async def _establish(self, user: User) -> None:
        if self.user is not None:
            await self.logout()
        self.user = user
        self.state = self._state_for(user)
        await self.store.write_value(self.session_key, user.public())
        for hook in self._on_start:
            hook(user)

    async def _force_logout(self, kind: str, message: str) -> None:
        await self.logout()
        if self.notify is not None:
            self.notify(kind, message)

    @staticmethod
    def _state_for(user: User) -> SessionState:
        return SessionState.ACTIVE_ADMIN if user.is_admin else SessionState.ACTIVE_USER
