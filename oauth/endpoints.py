"""OAuth 2.1 endpoints for MCP server authentication.

This module contains all OAuth-related endpoints:
- Discovery metadata (/.well-known/*)
- Client registration (/register)
- Password login (/authorize, /authorize/submit)
- Token endpoint (/token)
"""

import html
import logging
import secrets

from fastapi import APIRouter, Request, Form
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse

from oauth.broker import AuthorizationBroker
from oauth.errors import MCPAuthError, WrongPassword
from oauth.templates import LOGIN_PAGE, WRONG_PASSWORD_PAGE
from oauth.tokens import TokenRegistry

logger = logging.getLogger(__name__)

# Router for OAuth endpoints
router = APIRouter(tags=["oauth"])

# These will be set by init_oauth_routes()
_server_url: str = ""
_auth_base_url: str = ""
_broker: AuthorizationBroker = None
_registry: TokenRegistry = None


def init_oauth_routes(server_url: str, auth_base_url: str,
                      broker: AuthorizationBroker, registry: TokenRegistry):
    """Initialize OAuth routes with the public URLs and the auth core.

    Must be called before including the router in the app.
    """
    global _server_url, _auth_base_url, _broker, _registry
    _server_url = server_url
    _auth_base_url = auth_base_url
    _broker = broker
    _registry = registry


# ============== OAuth 2.1 Discovery Endpoints ==============

@router.get("/.well-known/oauth-protected-resource")
async def oauth_protected_resource():
    """OAuth 2.0 Protected Resource Metadata (RFC 9728)."""
    return {
        "resource": _server_url,
        "authorization_servers": [_auth_base_url],
        "scopes_supported": ["mcp:tools"],
    }


@router.get("/.well-known/oauth-authorization-server")
async def oauth_authorization_server():
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return {
        "issuer": _auth_base_url,
        "authorization_endpoint": f"{_auth_base_url}/authorize",
        "token_endpoint": f"{_auth_base_url}/token",
        "registration_endpoint": f"{_auth_base_url}/register",
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code"],
        "code_challenge_methods_supported": ["S256"],
        "token_endpoint_auth_methods_supported": ["none"],
    }


# ============== Client Registration ==============

@router.post("/register")
async def register_client(request: Request):
    """OAuth 2.0 Dynamic Client Registration (RFC 7591).

    Every client is accepted; the password login is the only gate.
    """
    try:
        data = await request.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    return JSONResponse({
        "client_id": secrets.token_urlsafe(24),
        "client_secret": "",
        "redirect_uris": data.get("redirect_uris") or [],
    }, status_code=201)


# ============== Authorization Flow ==============

@router.get("/authorize")
async def authorize(
    response_type: str = "",
    redirect_uri: str = "",
    code_challenge: str = "",
    state: str = "",
):
    """OAuth 2.0 Authorization Endpoint - shows the password page."""
    try:
        auth_id = _broker.begin_authorization(response_type, redirect_uri, code_challenge)
    except MCPAuthError as e:
        return PlainTextResponse(e.description, status_code=e.status_code)

    return HTMLResponse(LOGIN_PAGE.format(
        auth_id=html.escape(auth_id, quote=True),
        state=html.escape(state, quote=True),
    ))


@router.post("/authorize/submit")
async def authorize_submit(
    auth_id: str = Form(""),
    password: str = Form(""),
    state: str = Form(""),
):
    """Handle password form submission."""
    try:
        result = _broker.submit_credentials(auth_id, password, state)
    except WrongPassword as e:
        return HTMLResponse(WRONG_PASSWORD_PAGE.format(), status_code=e.status_code)
    except MCPAuthError as e:
        return PlainTextResponse(e.description, status_code=e.status_code)

    return RedirectResponse(url=result.redirect_url, status_code=302)


# ============== Token Endpoint ==============

@router.post("/token")
async def token(
    request: Request,
    grant_type: str = Form(None),
    code: str = Form(None),
    code_verifier: str = Form(None),
):
    """OAuth 2.0 Token Endpoint."""
    # Handle form data or JSON; a form body has already been read by now
    content_type = request.headers.get("content-type", "")
    if grant_type is None and content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            return JSONResponse({"error": "invalid_request"}, status_code=400)
        if not isinstance(data, dict):
            return JSONResponse({"error": "invalid_request"}, status_code=400)
        grant_type = data.get("grant_type")
        code = data.get("code")
        code_verifier = data.get("code_verifier")

    logger.debug(f"[TOKEN] grant_type: {grant_type}")

    try:
        issued = _registry.redeem(grant_type, code, code_verifier)
    except MCPAuthError as e:
        return JSONResponse(e.to_dict(), status_code=e.status_code)

    return JSONResponse(issued.to_dict())
