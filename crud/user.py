"""
UserRepository for store operations on the Users collection
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from config.settings import USERS_KEY
from crud.store import BlobStore
from models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Repository class for the Users collection.
    Every read loads the full collection; every write replaces it.
    """

    def __init__(self, store: BlobStore, key: str = USERS_KEY):
        """
        Initialize the repository with a store handle.

        Args:
            store: BlobStore holding the collection
            key: store key of the Users collection
        """
        self.store = store
        self.key = key

    async def list_users(self) -> List[User]:
        """
        Load every user. Records that no longer validate are skipped
        so one bad entry does not take the rest of the collection down.
        """
        users = []
        for record in await self.store.read_collection(self.key):
            try:
                users.append(User.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed user record {record.get('id')!r}: {e.error_count()} errors")
        return users

    async def save_users(self, users: List[User]) -> None:
        await self.store.write_collection(self.key, [u.to_record() for u in users])

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        for user in await self.list_users():
            if user.id == user_id:
                return user
        return None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by email address.

        Args:
            email: exact address (case-sensitive match)

        Returns:
            User object if found, None otherwise
        """
        for user in await self.list_users():
            if user.email == email:
                return user
        return None

    async def find_by_credentials(self, email: str, password: str) -> Optional[User]:
        for user in await self.list_users():
            if user.email == email and user.password == password:
                return user
        return None

    async def create_user(self, user: User) -> User:
        users = await self.list_users()
        users.append(user)
        await self.save_users(users)
        return user

    async def update_user(self, user_id: str, updates: dict) -> Optional[User]:
        """
        Apply field updates to one user and persist the whole collection.

        Args:
            user_id: id of the user to change
            updates: snake_case field names to new values (e.g. {"is_blocked": True})

        Returns:
            The updated User, or None if no user has that id
        """
        users = await self.list_users()
        updated = None
        for index, user in enumerate(users):
            if user.id == user_id:
                updated = User.model_validate({**user.model_dump(), **updates})
                users[index] = updated
                break
        if updated is None:
            return None
        await self.save_users(users)
        return updated

    async def admin_exists(self) -> bool:
        return any(u.is_admin for u in await self.list_users())
