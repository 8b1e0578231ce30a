"""Config management for gemini-imagen-mcp.

All settings come from the environment (optionally seeded from a .env file
by the CLI before load_config() is called).
"""
import os
from typing import Mapping, Optional
from urllib.parse import urlsplit


DEFAULT_PORT = 3000
DEFAULT_PASSWORD = "changeme"


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


class Config:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = data or {}

    @property
    def gemini_api_key(self) -> Optional[str]:
        return self.data.get("gemini_api_key")

    @property
    def auth_password(self) -> str:
        return self.data.get("auth_password") or DEFAULT_PASSWORD

    @property
    def password_is_default(self) -> bool:
        return not self.data.get("auth_password")

    @property
    def port(self) -> int:
        return int(self.data.get("port", DEFAULT_PORT))

    @property
    def host(self) -> str:
        return self.data.get("host", "0.0.0.0")

    @property
    def server_url(self) -> str:
        return self.data.get("server_url") or f"http://localhost:{self.port}"

    @property
    def auth_base_url(self) -> str:
        """Origin of SERVER_URL; OAuth endpoints live at the origin root."""
        parts = urlsplit(self.server_url)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def use_http(self) -> bool:
        return bool(self.data.get("use_http", False))

    @property
    def log_format(self) -> str:
        return self.data.get("log_format", "plain")

    @property
    def log_level(self) -> str:
        return self.data.get("log_level", "INFO")

    @property
    def session_idle_timeout(self) -> float:
        return float(self.data.get("session_idle_timeout", 3600))

    @property
    def sweep_interval(self) -> float:
        return float(self.data.get("sweep_interval", 60))

    @property
    def json_response(self) -> bool:
        return bool(self.data.get("json_response", False))

    @property
    def imagen_model(self) -> str:
        return self.data.get("imagen_model", "imagen-3.0-generate-002")

    @property
    def gemini_image_model(self) -> str:
        return self.data.get("gemini_image_model", "gemini-2.0-flash-exp")

    def is_valid(self) -> bool:
        """Check if config has required fields."""
        return bool(self.gemini_api_key)


def load_config(environ: Mapping[str, str] = None) -> Config:
    """Build a Config from environment variables."""
    env = os.environ if environ is None else environ

    data = {
        "gemini_api_key": env.get("GEMINI_API_KEY") or None,
        "auth_password": env.get("AUTH_PASSWORD") or None,
        "port": int(env.get("PORT") or DEFAULT_PORT),
        "host": env.get("HOST") or "0.0.0.0",
        "server_url": (env.get("SERVER_URL") or "").rstrip("/") or None,
        "use_http": _as_bool(env.get("USE_HTTP")),
        "log_format": (env.get("LOG_FORMAT") or "plain").lower(),
        "log_level": (env.get("LOG_LEVEL") or "INFO").upper(),
        "session_idle_timeout": float(env.get("SESSION_IDLE_TIMEOUT") or 3600),
        "sweep_interval": float(env.get("SWEEP_INTERVAL") or 60),
        "json_response": _as_bool(env.get("MCP_JSON_RESPONSE")),
    }
    if env.get("IMAGEN_MODEL"):
        data["imagen_model"] = env["IMAGEN_MODEL"]
    if env.get("GEMINI_IMAGE_MODEL"):
        data["gemini_image_model"] = env["GEMINI_IMAGE_MODEL"]

    return Config(data)
