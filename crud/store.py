"""
Key-value blob store backed by a single SQLAlchemy table.
Each key holds one JSON document; collections are read and written whole.
"""

import inspect
import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database_models import KeyValueBlob

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], Union[None, Awaitable[None]]]


class BlobStore:
    """
    Opaque store consumed by the repositories.

    Writes are full replacements with no locking: two writers racing on the
    same key resolve to whichever commits last. Every successful write
    notifies the subscribers of that key in this process.
    """

    def __init__(self, session_factory: async_sessionmaker):
        """
        Args:
            session_factory: async_sessionmaker producing AsyncSession objects
        """
        self.session_factory = session_factory
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

    async def read_value(self, key: str) -> Optional[Any]:
        """Return the decoded JSON value under key, or None if absent or unreadable"""
        async with self.session_factory() as session:
            blob = await session.get(KeyValueBlob, key)
            if blob is None:
                return None
            raw = blob.value
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Stored value for '{key}' is not valid JSON, ignoring it: {e}")
            return None

    async def read_collection(self, key: str) -> List[dict]:
        """
        Return the records stored under key.
        Missing or corrupt data reads as an empty collection.
        """
        value = await self.read_value(key)
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"Stored value for '{key}' is not a list, treating as empty")
            return []
        return [record for record in value if isinstance(record, dict)]

    async def write_value(self, key: str, value: Any) -> None:
        """Replace the value under key and notify subscribers"""
        payload = json.dumps(value)
        async with self.session_factory() as session:
            await self._upsert(session, key, payload)
            await session.commit()
        await self._notify(key)

    async def write_collection(self, key: str, records: List[dict]) -> None:
        await self.write_value(key, list(records))

    async def delete_value(self, key: str) -> None:
        async with self.session_factory() as session:
            blob = await session.get(KeyValueBlob, key)
            if blob is None:
                return
            await session.delete(blob)
            await session.commit()
        await self._notify(key)

    def on_collection_changed(self, key: str, callback: ChangeCallback) -> Callable[[], None]:
        """
        Subscribe to writes on key. Returns a function that removes the subscription.
        Callbacks receive the key and may be plain functions or coroutines.
        """
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    @staticmethod
    async def _upsert(session: AsyncSession, key: str, payload: str) -> None:
        blob = await session.get(KeyValueBlob, key)
        if blob is None:
            session.add(KeyValueBlob(key=key, value=payload, updated_at=datetime.utcnow()))
        else:
            blob.value = payload
            blob.updated_at = datetime.utcnow()

    async def _notify(self, key: str) -> None:
        for callback in list(self._subscribers.get(key, [])):
            try:
                result = callback(key)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Change listener for '{key}' failed: {e}")
