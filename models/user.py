from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PlanType(str, Enum):
    TRIAL = "TRIAL"
    MENSAL = "MENSAL"  # monthly
    TRIMESTRAL = "TRIMESTRAL"  # quarterly
    ANUAL = "ANUAL"  # yearly


class User(BaseModel):
    """Persisted user record. Stored with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    email: str
    password: str  # plain text, compared as-is
    trial_start_date: int  # ms since epoch
    plan: PlanType = PlanType.TRIAL
    is_blocked: bool = False
    is_admin: bool = False
    instagram_url: Optional[str] = None
    facebook_url: Optional[str] = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def public(self) -> dict:
        """Record without the password, for responses."""
        return self.model_dump(mode="json", by_alias=True, exclude={"password"})
