"""
Authentication routes: register, login, logout and session info
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app_context import AppContext
from routers.dependencies import get_context
from services.errors import PostMasterError
from services.trial_service import check_access, format_time_left, trial_expires_at
from models.user import PlanType
from utils.responses import success_response, domain_error_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request models
class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    admin_entry: bool = False


class LoginRequest(BaseModel):
    email: str
    password: str
    admin_entry: bool = False


def session_payload(ctx: AppContext) -> dict:
    """Session view returned by login, register and /me"""
    user = ctx.user
    if user is None:
        return {"authenticated": False, "surface": None, "user": None, "access": False}

    now = ctx.clock()
    payload = {
        "authenticated": True,
        "surface": ctx.session.surface,
        "user": user.public(),
        "access": check_access(user, now),
    }
    if user.plan == PlanType.TRIAL and not user.is_admin:
        payload["trial_expires_at"] = trial_expires_at(user)
        payload["trial_time_left"] = format_time_left(trial_expires_at(user), now)
    return payload


@auth_router.get("/bootstrap")
async def bootstrap(ctx: AppContext = Depends(get_context)):
    """Whether an administrator exists; admin registration is open only while none does"""
    admin_exists = await ctx.users.admin_exists()
    return success_response(data={"admin_exists": admin_exists})


@auth_router.post("/register")
async def register(request: RegisterRequest, ctx: AppContext = Depends(get_context)):
    """Create an account and start its session"""
    try:
        await ctx.session.register(request.name, request.email, request.password, admin_entry=request.admin_entry)
        log_endpoint_event("/auth/register", ctx.client_id, "success", {"admin_entry": request.admin_entry})
        return success_response(data=session_payload(ctx), message="Conta criada")
    except PostMasterError as e:
        log_endpoint_event("/auth/register", ctx.client_id, "error", {"error": e.error_code})
        return domain_error_response(e)


@auth_router.post("/login")
async def login(request: LoginRequest, ctx: AppContext = Depends(get_context)):
    try:
        await ctx.session.login(request.email, request.password, admin_entry=request.admin_entry)
        log_endpoint_event("/auth/login", ctx.client_id, "success", {"surface": ctx.session.surface})
        return success_response(data=session_payload(ctx))
    except PostMasterError as e:
        log_endpoint_event("/auth/login", ctx.client_id, "error", {"error": e.error_code})
        return domain_error_response(e)


@auth_router.post("/logout")
async def logout(ctx: AppContext = Depends(get_context)):
    await ctx.session.logout()
    log_endpoint_event("/auth/logout", ctx.client_id, "success")
    return success_response(data=session_payload(ctx), message="Logged out successfully")


@auth_router.get("/me")
async def me(ctx: AppContext = Depends(get_context)):
    """Current session, as last reconciled"""
    return success_response(data=session_payload(ctx))
