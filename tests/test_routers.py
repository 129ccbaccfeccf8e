"""
HTTP tests for the API routers, one AsyncClient per browser
"""
import httpx
import pytest

from app_context import ContextRegistry
from main import app
from services.trial_service import TRIAL_DURATION_MS
from tests.conftest import HOUR_MS


class FakeContentService:
    async def generate_caption(self, topic, post_kind):
        return f"Legenda sobre {topic} #{post_kind.lower()}"

    async def generate_image(self, prompt):
        return None

    async def generate_video(self, script, reference_image=None):
        return "/api/content/videos/video_1"

    async def download_video(self, video_id):
        return b"mp4" if video_id == "video_1" else None


@pytest.fixture
async def registry(store, clock):
    registry = ContextRegistry(store, clock=clock, sync_interval=3600, due_interval=3600)
    app.state.registry = registry
    app.state.content_service = FakeContentService()
    yield registry
    registry.shutdown()
    del app.state.registry
    del app.state.content_service


@pytest.fixture
def browser(registry):
    clients = []

    def factory(client_id):
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
            cookies={"client_id": client_id},
        )
        clients.append(client)
        return client

    yield factory


async def register(client, name, email, password="secret", admin_entry=False):
    response = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password, "admin_entry": admin_entry},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["user"]


@pytest.mark.asyncio
async def test_new_client_gets_an_id_cookie(registry):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.get("/api/auth/me")

    assert response.status_code == 200
    assert "client_id" in response.cookies
    assert response.json()["data"]["authenticated"] is False


@pytest.mark.asyncio
async def test_register_login_and_me(browser):
    client = browser("browser-1")
    async with client:
        user = await register(client, "Ana", "ana@example.com")
        assert user["plan"] == "TRIAL"
        assert "password" not in user

        me = (await client.get("/api/auth/me")).json()["data"]
        assert me["authenticated"] is True
        assert me["surface"] == "user"
        assert me["access"] is True
        assert me["trial_time_left"] == "3d 00:00:00"

        await client.post("/api/auth/logout")
        bad = await client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})
        assert bad.status_code == 401
        assert bad.json()["error"] == "invalid_credentials"

        good = await client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret"})
        assert good.status_code == 200
        assert good.json()["data"]["user"]["id"] == user["id"]


@pytest.mark.asyncio
async def test_bootstrap_reports_admin(browser):
    client = browser("browser-1")
    async with client:
        assert (await client.get("/api/auth/bootstrap")).json()["data"]["admin_exists"] is False
        await register(client, "Root", "root@example.com", admin_entry=True)
        assert (await client.get("/api/auth/bootstrap")).json()["data"]["admin_exists"] is True

        again = await client.post(
            "/api/auth/register",
            json={"name": "X", "email": "x@example.com", "password": "x", "admin_entry": True},
        )
        assert again.status_code == 403


@pytest.mark.asyncio
async def test_expired_trial_keeps_history_but_cannot_create(browser, clock):
    client = browser("browser-1")
    async with client:
        await register(client, "Ana", "ana@example.com")
        created = await client.post("/api/posts", json={"type": "TEXT_IMAGE", "text": "Olá"})
        assert created.status_code == 200
        assert created.json()["message"] == "Salvo no histórico!"

        clock.advance(TRIAL_DURATION_MS)

        refused = await client.post("/api/posts", json={"type": "TEXT_IMAGE", "text": "Outra"})
        assert refused.status_code == 403
        assert refused.json()["error"] == "access_expired"
        caption = await client.post("/api/content/caption", json={"topic": "pão"})
        assert caption.status_code == 403

        history = await client.get("/api/posts/history")
        assert history.status_code == 200
        assert [p["content"]["text"] for p in history.json()["data"]] == ["Olá"]
        assert (await client.get("/api/auth/me")).json()["data"]["trial_time_left"] == "Expirado"


@pytest.mark.asyncio
async def test_scheduled_post_appears_in_schedule(browser, clock):
    client = browser("browser-1")
    async with client:
        await register(client, "Ana", "ana@example.com")
        when = clock() + HOUR_MS
        created = await client.post(
            "/api/posts",
            json={"type": "REEL", "script": "s", "video_url": "/api/content/videos/video_1", "scheduled_time": when},
        )
        assert created.json()["message"] == "Agendado com sucesso!"

        schedule = (await client.get("/api/posts/schedule")).json()["data"]
        assert [p["scheduledTime"] for p in schedule] == [when]
        assert schedule[0]["isPosted"] is False


@pytest.mark.asyncio
async def test_admin_block_forces_user_logout(browser, registry):
    admin = browser("admin-browser")
    user_client = browser("user-browser")
    async with admin, user_client:
        await register(admin, "Root", "root@example.com", admin_entry=True)
        user = await register(user_client, "Ana", "ana@example.com")

        listed = (await admin.get("/api/admin/users")).json()["data"]
        assert [u["id"] for u in listed] == [user["id"]]
        assert listed[0]["trialTimeLeft"] == "3d 00:00:00"

        blocked = await admin.post(f"/api/admin/users/{user['id']}/block", json={"blocked": True})
        assert blocked.json()["data"]["isBlocked"] is True

        user_ctx = await registry.get_or_create("user-browser")
        await user_ctx.sync.reconcile()

        me = (await user_client.get("/api/auth/me")).json()["data"]
        assert me["authenticated"] is False
        notices = (await user_client.get("/api/notifications")).json()["data"]
        assert [n["kind"] for n in notices] == ["account_blocked"]
        assert (await user_client.get("/api/notifications")).json()["data"] == []

        login = await user_client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret"})
        assert login.status_code == 403
        assert login.json()["error"] == "account_blocked"


@pytest.mark.asyncio
async def test_admin_endpoints_refuse_regular_users(browser):
    client = browser("browser-1")
    async with client:
        anonymous = await client.get("/api/admin/stats")
        assert anonymous.status_code == 401

        await register(client, "Ana", "ana@example.com")
        for response in (
            await client.get("/api/admin/stats"),
            await client.get("/api/admin/users"),
            await client.post("/api/admin/users/1/toggle-block"),
        ):
            assert response.status_code == 403
            assert response.json()["error"] == "access_denied"


@pytest.mark.asyncio
async def test_admin_plan_and_stats(browser):
    admin = browser("admin-browser")
    async with admin:
        await register(admin, "Root", "root@example.com", admin_entry=True)
        missing = await admin.post("/api/admin/users/404/plan", json={"plan": "ANUAL"})
        assert missing.status_code == 404

        stats = (await admin.get("/api/admin/stats")).json()["data"]
        assert stats["total_users"] == 0


@pytest.mark.asyncio
async def test_users_cannot_delete_each_others_posts(browser):
    ana = browser("ana-browser")
    bia = browser("bia-browser")
    async with ana, bia:
        await register(ana, "Ana", "ana@example.com")
        await register(bia, "Bia", "bia@example.com")
        post = (await ana.post("/api/posts", json={"type": "TEXT_IMAGE", "text": "meu"})).json()["data"]

        refused = await bia.delete(f"/api/posts/{post['id']}")
        assert refused.status_code == 404

        deleted = await ana.delete(f"/api/posts/{post['id']}")
        assert deleted.status_code == 200
        assert (await ana.get("/api/posts/history")).json()["data"] == []


@pytest.mark.asyncio
async def test_publish_needs_a_profile_link(browser):
    client = browser("browser-1")
    async with client:
        await register(client, "Ana", "ana@example.com")
        post = (await client.post("/api/posts", json={"type": "TEXT_IMAGE", "text": "x"})).json()["data"]

        missing = await client.get(f"/api/posts/{post['id']}/publish")
        assert missing.status_code == 409

        links = await client.put("/api/profile/links", json={"facebook_url": "https://facebook.com/ana"})
        assert links.json()["data"]["facebookUrl"] == "https://facebook.com/ana"

        target = await client.get(f"/api/posts/{post['id']}/publish")
        assert target.json()["data"]["url"] == "https://facebook.com/ana"


@pytest.mark.asyncio
async def test_content_endpoints(browser):
    client = browser("browser-1")
    async with client:
        await register(client, "Ana", "ana@example.com")

        caption = await client.post("/api/content/caption", json={"topic": "pão", "post_kind": "REEL"})
        assert caption.json()["data"]["text"] == "Legenda sobre pão #reel"

        image = await client.post("/api/content/image", json={"prompt": "pão"})
        assert image.status_code == 502

        video = await client.post("/api/content/video", json={"script": "pão"})
        assert video.json()["data"]["video_url"] == "/api/content/videos/video_1"

        download = await client.get("/api/content/videos/video_1")
        assert download.status_code == 200
        assert download.content == b"mp4"
        assert (await client.get("/api/content/videos/other")).status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_block_or_reset_their_own_account(browser):
    admin = browser("admin-browser")
    async with admin:
        root = await register(admin, "Root", "root@example.com", admin_entry=True)

        for path, body in (
            (f"/api/admin/users/{root['id']}/block", {"blocked": True}),
            (f"/api/admin/users/{root['id']}/toggle-block", None),
            (f"/api/admin/users/{root['id']}/reset-trial", None),
            (f"/api/admin/users/{root['id']}/plan", {"plan": "TRIAL"}),
        ):
            response = await admin.post(path, json=body)
            assert response.status_code == 403
            assert response.json()["error"] == "access_denied"

        await admin.post("/api/auth/logout")
        again = await admin.post(
            "/api/auth/login",
            json={"email": "root@example.com", "password": "secret", "admin_entry": True},
        )
        assert again.status_code == 200
        assert again.json()["data"]["user"]["plan"] == "ANUAL"


@pytest.mark.asyncio
async def test_video_download_requires_a_session(registry):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.get("/api/content/videos/video_1")

    assert response.status_code == 401
    assert response.json()["error"] == "not_authenticated"


@pytest.mark.asyncio
async def test_cookieless_requests_do_not_accumulate_contexts(registry):
    for _ in range(5):
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
            response = await client.get("/api/auth/me")
            assert response.status_code == 200

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_registry_keeps_sessions_and_undelivered_notices(browser, registry):
    admin = browser("admin-browser")
    user_client = browser("user-browser")
    async with admin, user_client:
        await register(admin, "Root", "root@example.com", admin_entry=True)
        user = await register(user_client, "Ana", "ana@example.com")
        assert len(registry) == 2

        await admin.post(f"/api/admin/users/{user['id']}/block", json={"blocked": True})
        user_ctx = await registry.get_or_create("user-browser")
        await user_ctx.sync.reconcile()

        # Logged out but still holding the forced-logout notice
        await user_client.get("/api/auth/me")
        assert len(registry) == 2

        await user_client.get("/api/notifications")
        assert len(registry) == 1


@pytest.mark.asyncio
async def test_idle_sessions_are_evicted_and_restored_on_return(browser, registry, clock):
    client = browser("browser-1")
    async with client:
        user = await register(client, "Ana", "ana@example.com")
        first_ctx = await registry.get_or_create("browser-1")

        clock.advance(registry.idle_ms + 1)
        registry.prune()

        assert len(registry) == 0
        assert first_ctx.sync.running is False

        me = (await client.get("/api/auth/me")).json()["data"]
        assert me["authenticated"] is True
        assert me["user"]["id"] == user["id"]
        assert len(registry) == 1
