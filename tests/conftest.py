"""Shared fixtures for the gemini-imagen-mcp test suite."""

import base64
import hashlib
import re
import secrets
from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

import tools
from config import Config
from imaging import GeneratedImage
from main import create_app

PASSWORD = "correct horse battery staple"
REDIRECT_URI = "https://client.example.com/callback"
MCP_ACCEPT = "application/json, text/event-stream"
PROTOCOL_VERSION = "2025-03-26"


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_pkce_pair():
    verifier = secrets.token_urlsafe(48)
    challenge = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest()).rstrip(b"=").decode()
    return verifier, challenge


def extract_auth_id(page: str) -> str:
    match = re.search(r'name="auth_id" value="([^"]+)"', page)
    assert match, "login page has no auth_id field"
    return match.group(1)


def initialize_message(request_id=1) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "initialize",
        "params": {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {"name": "pytest", "version": "1.0"},
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Config({
        "gemini_api_key": "test-key",
        "auth_password": PASSWORD,
        "server_url": "https://imagen.example.com/mcp",
        "json_response": True,
        "sweep_interval": 0,
        "session_idle_timeout": 3600,
    })


@pytest.fixture
def fake_generator():
    generator = Mock()
    generator.generate = AsyncMock(return_value=GeneratedImage(image_base64="aW1hZ2U=", mime_type="image/png"))
    generator.edit = AsyncMock(return_value=GeneratedImage(image_base64="ZWRpdGVk", mime_type="image/png"))
    tools.init_tools(generator)
    yield generator
    tools.init_tools(None)


@pytest.fixture
def app(config, fake_generator):
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def obtain_token(client: TestClient) -> str:
    """Run the full password + PKCE flow and return an access token."""
    verifier, challenge = make_pkce_pair()
    page = client.get("/authorize", params={
        "response_type": "code",
        "redirect_uri": REDIRECT_URI,
        "code_challenge": challenge,
        "state": "xyz",
    })
    assert page.status_code == 200
    response = client.post("/authorize/submit", data={
        "auth_id": extract_auth_id(page.text),
        "password": PASSWORD,
        "state": "xyz",
    }, follow_redirects=False)
    assert response.status_code == 302
    code = parse_qs(urlsplit(response.headers["location"]).query)["code"][0]

    token = client.post("/token", data={
        "grant_type": "authorization_code",
        "code": code,
        "code_verifier": verifier,
    })
    assert token.status_code == 200
    return token.json()["access_token"]


@pytest.fixture
def token(client):
    return obtain_token(client)


def mcp_headers(token: str, session_id: str = None) -> dict:
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": MCP_ACCEPT,
        "Content-Type": "application/json",
    }
    if session_id:
        headers["Mcp-Session-Id"] = session_id
        headers["Mcp-Protocol-Version"] = PROTOCOL_VERSION
    return headers


def open_session(client: TestClient, token: str) -> str:
    """Initialize an MCP session and complete the handshake."""
    response = client.post("/", json=initialize_message(), headers=mcp_headers(token))
    assert response.status_code == 200
    session_id = response.headers["mcp-session-id"]
    notified = client.post(
        "/",
        json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        headers=mcp_headers(token, session_id),
    )
    assert notified.status_code == 202
    return session_id
