"""
PostMaster Backend
Trial/subscription gating, session sync and post scheduling for the PostMaster SPA
"""

from pathlib import Path
import logging
import traceback
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app_context import ContextRegistry
from config.settings import settings, IS_PRODUCTION
from crud.store import BlobStore
from database import AsyncSessionLocal, init_db
from routers.admin_router import admin_router
from routers.auth_router import auth_router
from routers.content_router import router as content_router
from routers.posts_router import posts_router
from routers.profile_router import profile_router
from services.content_service import ContentService
from services.errors import PostMasterError
from utils.responses import domain_error_response

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

CLIENT_COOKIE = "client_id"
CLIENT_COOKIE_MAX_AGE = 60 * 60 * 24 * 365

app = FastAPI(title="PostMaster Backend")


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "error": "Internal Server Error"}
            )


class ClientIdMiddleware(BaseHTTPMiddleware):
    """
    Gives every browser an opaque client id cookie. Each client id maps to
    its own AppContext (its own session and sync timers); the registry is
    told when the request ends so empty contexts do not pile up.
    """
    async def dispatch(self, request, call_next):
        client_id = request.cookies.get(CLIENT_COOKIE)
        is_new = not client_id
        if is_new:
            client_id = uuid.uuid4().hex
        request.state.client_id = client_id

        registry = getattr(request.app.state, "registry", None)
        if registry is not None:
            registry.acquire(client_id)
        try:
            response = await call_next(request)
        finally:
            if registry is not None:
                registry.release(client_id)
        if is_new:
            response.set_cookie(
                key=CLIENT_COOKIE,
                value=client_id,
                httponly=True,
                secure=IS_PRODUCTION,
                samesite="Lax",
                max_age=CLIENT_COOKIE_MAX_AGE,
            )
        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(ClientIdMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PostMasterError)
async def handle_domain_error(request: Request, exc: PostMasterError):
    """Domain errors raised from dependencies (auth gates) become JSON envelopes"""
    return domain_error_response(exc)


@app.on_event("startup")
async def initialize_state():
    """Create tables, then the shared store and the per-client context registry"""
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    if not hasattr(app.state, "registry"):
        app.state.registry = ContextRegistry(BlobStore(AsyncSessionLocal))
    if not hasattr(app.state, "content_service"):
        app.state.content_service = ContentService()
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set. Content generation will be unavailable.")


@app.on_event("shutdown")
async def stop_timers():
    registry = getattr(app.state, "registry", None)
    if registry is not None:
        registry.shutdown()


app.include_router(auth_router)
app.include_router(posts_router)
app.include_router(profile_router)
app.include_router(content_router)
app.include_router(admin_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
