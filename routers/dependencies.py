"""
Shared router dependencies: client context resolution and access gates
"""
from fastapi import Depends, Request

from app_context import AppContext
from models.user import User
from services.errors import (
    AccessDeniedError,
    AccessExpiredError,
    BlockedAccountError,
    NotAuthenticatedError,
)
from services.trial_service import check_access


async def get_context(request: Request) -> AppContext:
    """AppContext of the calling client (client_id is set by ClientIdMiddleware)"""
    registry = request.app.state.registry
    return await registry.get_or_create(request.state.client_id)


async def require_user(ctx: AppContext = Depends(get_context)) -> User:
    if ctx.user is None:
        raise NotAuthenticatedError()
    return ctx.user


async def require_admin(ctx: AppContext = Depends(get_context)) -> User:
    if ctx.user is None:
        raise NotAuthenticatedError()
    if not ctx.user.is_admin:
        raise AccessDeniedError()
    return ctx.user


async def require_access(ctx: AppContext = Depends(get_context)) -> User:
    """
    Gate for creation tools. Expired trials keep read access elsewhere;
    only these endpoints refuse them.
    """
    user = ctx.user
    if check_access(user, ctx.clock()):
        return user
    if user is None:
        raise NotAuthenticatedError()
    if user.is_admin:
        raise AccessDeniedError()
    if user.is_blocked:
        raise BlockedAccountError()
    raise AccessExpiredError()
