"""
Admin Service - administrator actions and profile updates on Users
"""
import logging
from typing import Callable, Dict, List, Optional

from crud.user import UserRepository
from models.user import PlanType, User
from services.errors import AccessDeniedError, UserNotFoundError
from utils.shared_utils import now_ms

logger = logging.getLogger(__name__)


class AdminService:
    """
    Every action is a read-modify-write of the whole Users collection.
    Concurrent writers are not merged: the later save wins.
    """

    def __init__(self, user_repo: UserRepository, clock: Callable[[], int] = now_ms):
        self.user_repo = user_repo
        self.clock = clock

    async def _update(self, user_id: str, updates: dict) -> User:
        user = await self.user_repo.update_user(user_id, updates)
        if user is None:
            raise UserNotFoundError()
        return user

    async def _get_customer(self, user_id: str) -> User:
        """Targets of admin actions: administrator accounts are off limits"""
        user = await self.user_repo.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        if user.is_admin:
            logger.warning(f"Refused admin action on administrator account {user_id}")
            raise AccessDeniedError()
        return user

    async def _update_customer(self, user_id: str, updates: dict) -> User:
        await self._get_customer(user_id)
        return await self._update(user_id, updates)

    async def set_plan(self, user_id: str, plan: PlanType) -> User:
        user = await self._update_customer(user_id, {"plan": PlanType(plan)})
        logger.info(f"Plan of user {user_id} set to {user.plan.value}")
        return user

    async def set_blocked(self, user_id: str, blocked: bool) -> User:
        user = await self._update_customer(user_id, {"is_blocked": blocked})
        logger.info(f"User {user_id} {'blocked' if blocked else 'unblocked'}")
        return user

    async def toggle_block(self, user_id: str) -> User:
        user = await self._get_customer(user_id)
        return await self.set_blocked(user_id, not user.is_blocked)

    async def reset_trial(self, user_id: str) -> User:
        """Put the user back on TRIAL with a fresh 72h window starting now"""
        user = await self._update_customer(user_id, {"plan": PlanType.TRIAL, "trial_start_date": self.clock()})
        logger.info(f"Trial of user {user_id} reset")
        return user

    async def update_profile_links(
        self,
        user_id: str,
        instagram_url: Optional[str],
        facebook_url: Optional[str],
    ) -> User:
        """Self-service: profile links used by the manual publish action"""
        return await self._update(user_id, {
            "instagram_url": instagram_url or None,
            "facebook_url": facebook_url or None,
        })

    async def list_users(self, filter_text: str = "") -> List[User]:
        needle = (filter_text or "").lower()
        return [
            u for u in await self.user_repo.list_users()
            if not u.is_admin and (needle in u.name.lower() or needle in u.email.lower())
        ]

    async def dashboard_stats(self) -> Dict[str, int]:
        users = await self.user_repo.list_users()
        customers = [u for u in users if not u.is_admin]
        return {
            "total_users": len(customers),
            "active_users": sum(1 for u in customers if not u.is_blocked),
            "blocked_users": sum(1 for u in customers if u.is_blocked),
            "trial_users": sum(1 for u in customers if u.plan == PlanType.TRIAL),
            "monthly_users": sum(1 for u in customers if u.plan == PlanType.MENSAL),
            "quarterly_users": sum(1 for u in customers if u.plan == PlanType.TRIMESTRAL),
            "yearly_users": sum(1 for u in customers if u.plan == PlanType.ANUAL),
        }
