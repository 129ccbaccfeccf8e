"""
Tests for administrator actions on the Users collection
"""
import pytest

from models.user import PlanType
from services.errors import AccessDeniedError, UserNotFoundError
from tests.conftest import HOUR_MS


async def seed(ctx):
    admin = await ctx.session.register("Root", "root@example.com", "root", admin_entry=True)
    ana = await ctx.session.register("Ana Silva", "ana@example.com", "x")
    bia = await ctx.session.register("Bia", "bia@loja.co.mz", "x")
    carlos = await ctx.session.register("Carlos", "carlos@example.com", "x")
    await ctx.session.logout()
    return admin, ana, bia, carlos


@pytest.mark.asyncio
async def test_dashboard_stats(make_context):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)
    await ctx.admin_service.set_plan(ana.id, PlanType.MENSAL)
    await ctx.admin_service.set_plan(bia.id, PlanType.ANUAL)
    await ctx.admin_service.set_blocked(carlos.id, True)

    stats = await ctx.admin_service.dashboard_stats()

    assert stats == {
        "total_users": 3,
        "active_users": 2,
        "blocked_users": 1,
        "trial_users": 1,
        "monthly_users": 1,
        "quarterly_users": 0,
        "yearly_users": 1,
    }


@pytest.mark.asyncio
async def test_list_users_filters_and_hides_admins(make_context):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)

    assert {u.id for u in await ctx.admin_service.list_users()} == {ana.id, bia.id, carlos.id}
    assert [u.id for u in await ctx.admin_service.list_users("SILVA")] == [ana.id]
    assert [u.id for u in await ctx.admin_service.list_users("loja")] == [bia.id]
    assert await ctx.admin_service.list_users("root") == []


@pytest.mark.asyncio
async def test_toggle_block(make_context):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)

    assert (await ctx.admin_service.toggle_block(ana.id)).is_blocked is True
    assert (await ctx.admin_service.toggle_block(ana.id)).is_blocked is False


@pytest.mark.asyncio
async def test_reset_trial_restarts_window_on_trial_plan(make_context, clock):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)
    await ctx.admin_service.set_plan(ana.id, PlanType.TRIMESTRAL)
    clock.advance(100 * HOUR_MS)

    user = await ctx.admin_service.reset_trial(ana.id)

    assert user.plan == PlanType.TRIAL
    assert user.trial_start_date == clock()


@pytest.mark.asyncio
async def test_actions_on_unknown_user_raise(make_context):
    ctx = await make_context()
    with pytest.raises(UserNotFoundError):
        await ctx.admin_service.set_blocked("missing", True)
    with pytest.raises(UserNotFoundError):
        await ctx.admin_service.toggle_block("missing")


@pytest.mark.asyncio
async def test_concurrent_writers_last_write_wins(make_context):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)

    # Both writers read the collection before either saves
    admin_view = await ctx.users.list_users()
    user_view = await ctx.users.list_users()

    admin_view = [u.model_copy(update={"plan": PlanType.ANUAL}) if u.id == ana.id else u for u in admin_view]
    user_view = [u.model_copy(update={"instagram_url": "https://instagram.com/ana"}) if u.id == ana.id else u for u in user_view]
    await ctx.users.save_users(admin_view)
    await ctx.users.save_users(user_view)

    stored = await ctx.users.get_user_by_id(ana.id)
    assert stored.instagram_url == "https://instagram.com/ana"
    assert stored.plan == PlanType.TRIAL


@pytest.mark.asyncio
async def test_admin_actions_refuse_administrator_accounts(make_context):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)

    with pytest.raises(AccessDeniedError):
        await ctx.admin_service.set_blocked(admin.id, True)
    with pytest.raises(AccessDeniedError):
        await ctx.admin_service.toggle_block(admin.id)
    with pytest.raises(AccessDeniedError):
        await ctx.admin_service.reset_trial(admin.id)
    with pytest.raises(AccessDeniedError):
        await ctx.admin_service.set_plan(admin.id, PlanType.MENSAL)

    stored = await ctx.users.get_user_by_id(admin.id)
    assert stored.is_blocked is False
    assert stored.plan == PlanType.ANUAL
    # The administrator can still get in
    assert (await ctx.session.login("root@example.com", "root", admin_entry=True)).id == admin.id


@pytest.mark.asyncio
async def test_profile_links_still_editable_by_admins(make_context):
    ctx = await make_context()
    admin, ana, bia, carlos = await seed(ctx)

    updated = await ctx.admin_service.update_profile_links(admin.id, "https://instagram.com/root", None)

    assert updated.instagram_url == "https://instagram.com/root"
