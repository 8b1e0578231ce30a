"""Gemini Imagen MCP Server - HTTP application.

This app handles:
- MCP tools (generate_image, edit_image) via tools.py
- MCP protocol traffic via Streamable HTTP at / (Bearer protected)
- The single-password OAuth flow for MCP clients (via oauth/)
- Health check

State (pending logins, codes, tokens, sessions) lives in memory only and
is lost on restart.
"""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Config
from oauth.broker import AuthorizationBroker, CredentialStore
from oauth.endpoints import router as oauth_router, init_oauth_routes
from oauth.middleware import BearerAuthMiddleware
from oauth.tokens import TokenRegistry
from sessions import SessionMultiplexer
from tools import mcp, SERVER_NAME

logger = logging.getLogger(__name__)

HEALTH_SERVER_NAME = f"{SERVER_NAME}-mcp"


async def _sweep_forever(interval: float, broker: AuthorizationBroker, sessions: SessionMultiplexer):
    """Periodically drop expired pending authorizations and idle sessions."""
    while True:
        await asyncio.sleep(interval)
        broker.sweep_expired()
        await sessions.sweep_idle()


def create_app(config: Config) -> FastAPI:
    """Build the HTTP application for remote mode."""
    broker = AuthorizationBroker(CredentialStore(config.auth_password))
    registry = TokenRegistry(broker)
    sessions = SessionMultiplexer(
        mcp._mcp_server,
        json_response=config.json_response,
        idle_timeout=config.session_idle_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with sessions.run():
            sweeper = None
            if config.sweep_interval > 0:
                sweeper = asyncio.create_task(_sweep_forever(config.sweep_interval, broker, sessions))
            try:
                yield
            finally:
                if sweeper is not None:
                    sweeper.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await sweeper
                registry.close()

    app = FastAPI(
        title="Gemini Imagen MCP Server",
        description="Image generation and editing over MCP, secured with OAuth 2.1",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.broker = broker
    app.state.registry = registry
    app.state.sessions = sessions

    # Add CORS middleware for browser-based MCP client access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Mcp-Session-Id", "WWW-Authenticate"],
    )

    # ============== OAuth Endpoints ==============
    init_oauth_routes(config.server_url, config.auth_base_url, broker, registry)
    app.include_router(oauth_router)

    # ============== Health ==============
    @app.get("/health")
    async def health_check():
        """Liveness probe; reachable without a token."""
        return {"status": "ok", "server": HEALTH_SERVER_NAME, "secured": True}

    # ============== Streamable HTTP MCP Endpoint ==============
    app.add_route(
        "/",
        BearerAuthMiddleware(sessions, registry=registry, auth_base_url=config.auth_base_url),
        methods=["GET", "POST", "DELETE"],
        include_in_schema=False,
    )

    if config.password_is_default:
        logger.warning("[STARTUP] AUTH_PASSWORD is not set; using the insecure default password")
    logger.info(f"[STARTUP] SERVER_URL: {config.server_url}")
    return app
