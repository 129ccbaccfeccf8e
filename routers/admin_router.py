"""
Admin Router - user management for the administrator surface
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app_context import AppContext
from models.user import PlanType, User
from routers.dependencies import get_context, require_admin
from services.errors import PostMasterError
from services.trial_service import format_time_left, trial_expires_at
from utils.responses import success_response, domain_error_response
from utils.shared_utils import log_endpoint_event

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


class PlanRequest(BaseModel):
    plan: PlanType


class BlockRequest(BaseModel):
    blocked: bool


def admin_user_view(user: User, now: int) -> dict:
    view = user.public()
    if user.plan == PlanType.TRIAL:
        view["trialTimeLeft"] = format_time_left(trial_expires_at(user), now)
    return view


@admin_router.get("/stats")
async def dashboard_stats(admin: User = Depends(require_admin), ctx: AppContext = Depends(get_context)):
    return success_response(data=await ctx.admin_service.dashboard_stats())


@admin_router.get("/users")
async def list_users(
    q: str = Query(default="", description="name or email filter"),
    admin: User = Depends(require_admin),
    ctx: AppContext = Depends(get_context),
):
    now = ctx.clock()
    users = await ctx.admin_service.list_users(q)
    return success_response(data=[admin_user_view(u, now) for u in users])


@admin_router.post("/users/{user_id}/plan")
async def set_plan(
    user_id: str,
    request: PlanRequest,
    admin: User = Depends(require_admin),
    ctx: AppContext = Depends(get_context),
):
    try:
        user = await ctx.admin_service.set_plan(user_id, request.plan)
        log_endpoint_event("/admin/plan", ctx.client_id, "success", {"user_id": user_id, "plan": request.plan.value})
        return success_response(data=admin_user_view(user, ctx.clock()))
    except PostMasterError as e:
        log_endpoint_event("/admin/plan", ctx.client_id, "error", {"user_id": user_id, "error": e.error_code})
        return domain_error_response(e)


@admin_router.post("/users/{user_id}/block")
async def set_blocked(
    user_id: str,
    request: BlockRequest,
    admin: User = Depends(require_admin),
    ctx: AppContext = Depends(get_context),
):
    try:
        user = await ctx.admin_service.set_blocked(user_id, request.blocked)
        log_endpoint_event("/admin/block", ctx.client_id, "success", {"user_id": user_id, "blocked": request.blocked})
        return success_response(data=admin_user_view(user, ctx.clock()))
    except PostMasterError as e:
        log_endpoint_event("/admin/block", ctx.client_id, "error", {"user_id": user_id, "error": e.error_code})
        return domain_error_response(e)


@admin_router.post("/users/{user_id}/toggle-block")
async def toggle_block(user_id: str, admin: User = Depends(require_admin), ctx: AppContext = Depends(get_context)):
    try:
        user = await ctx.admin_service.toggle_block(user_id)
        log_endpoint_event("/admin/toggle-block", ctx.client_id, "success", {"user_id": user_id, "blocked": user.is_blocked})
        return success_response(data=admin_user_view(user, ctx.clock()))
    except PostMasterError as e:
        return domain_error_response(e)


@admin_router.post("/users/{user_id}/reset-trial")
async def reset_trial(user_id: str, admin: User = Depends(require_admin), ctx: AppContext = Depends(get_context)):
    try:
        user = await ctx.admin_service.reset_trial(user_id)
        log_endpoint_event("/admin/reset-trial", ctx.client_id, "success", {"user_id": user_id})
        return success_response(data=admin_user_view(user, ctx.clock()))
    except PostMasterError as e:
        log_endpoint_event("/admin/reset-trial", ctx.client_id, "error", {"user_id": user_id, "error": e.error_code})
        return domain_error_response(e)
