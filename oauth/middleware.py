"""OAuth middleware for the MCP endpoint.

Validates Bearer tokens against the in-memory token registry before any
session traffic reaches the session multiplexer.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from oauth.errors import InvalidToken, MCPAuthError, MissingAuthorization
from oauth.tokens import TokenRegistry

logger = logging.getLogger(__name__)


def challenge_header(auth_base_url: str) -> dict:
    """WWW-Authenticate header pointing at the resource metadata (RFC 9728)."""
    return {
        "WWW-Authenticate": (
            f'Bearer realm="mcp", '
            f'resource_metadata="{auth_base_url}/.well-known/oauth-protected-resource"'
        )
    }


def extract_bearer_token(auth_header: str) -> str:
    """Return the token from an Authorization header or raise MissingAuthorization."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise MissingAuthorization("Missing or invalid Authorization header")
    token = auth_header[7:].strip()
    if not token:
        raise MissingAuthorization("Missing or invalid Authorization header")
    return token


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Middleware to validate OAuth Bearer tokens for the Streamable HTTP MCP endpoint."""

    def __init__(self, app: ASGIApp, registry: TokenRegistry, auth_base_url: str):
        super().__init__(app)
        self.registry = registry
        self.auth_base_url = auth_base_url

    async def dispatch(self, request: Request, call_next):
        try:
            token = extract_bearer_token(request.headers.get("Authorization", ""))
            if not self.registry.is_valid(token):
                raise InvalidToken("Invalid or expired token")
        except MCPAuthError as e:
            logger.info(f"[AUTH] Request rejected: {e.description}")
            return JSONResponse(
                e.to_dict(),
                status_code=e.status_code,
                headers=challenge_header(self.auth_base_url),
            )

        return await call_next(request)
