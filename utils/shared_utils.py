"""
Shared utility functions for routers and services
"""
import json
import logging
import time
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch"""
    return int(time.time() * 1000)


def next_id(existing_ids: Iterable[str], now: int) -> str:
    """
    Creation-ordered id: the current millisecond, bumped past the largest
    numeric id already taken so two records created in the same ms differ.
    """
    highest = -1
    for value in existing_ids:
        try:
            highest = max(highest, int(value))
        except (TypeError, ValueError):
            continue
    return str(max(now, highest + 1))


def log_endpoint_event(endpoint: str, client_id: Optional[str] = None, result: str = "success", details: Optional[dict] = None):
    """Log endpoint execution to app.log"""
    logger.info(f"{endpoint} | client={client_id} | {result} | {json.dumps(details or {})}")
