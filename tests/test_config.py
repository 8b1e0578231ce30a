"""Tests for environment-driven configuration and logging setup."""

import json
import logging

import pytest

import cli
from config import Config, load_config
from logging_config import JSONFormatter, setup_logging


class TestLoadConfig:

    def test_defaults(self):
        config = load_config({})

        assert not config.is_valid()
        assert config.port == 3000
        assert config.server_url == "http://localhost:3000"
        assert config.auth_base_url == "http://localhost:3000"
        assert config.use_http is False
        assert config.auth_password == "changeme"
        assert config.password_is_default
        assert config.session_idle_timeout == 3600
        assert config.imagen_model == "imagen-3.0-generate-002"
        assert config.gemini_image_model == "gemini-2.0-flash-exp"

    def test_reads_environment(self):
        config = load_config({
            "GEMINI_API_KEY": "key",
            "AUTH_PASSWORD": "hunter2",
            "PORT": "8080",
            "SERVER_URL": "https://imagen.example.com/mcp/",
            "USE_HTTP": "TRUE",
            "LOG_FORMAT": "JSON",
            "MCP_JSON_RESPONSE": "true",
            "IMAGEN_MODEL": "imagen-4",
        })

        assert config.is_valid()
        assert config.auth_password == "hunter2"
        assert not config.password_is_default
        assert config.port == 8080
        assert config.server_url == "https://imagen.example.com/mcp"
        assert config.auth_base_url == "https://imagen.example.com"
        assert config.use_http is True
        assert config.log_format == "json"
        assert config.json_response is True
        assert config.imagen_model == "imagen-4"

    @pytest.mark.parametrize("value", ["", "1", "yes", "false"])
    def test_use_http_only_for_true(self, value):
        assert load_config({"USE_HTTP": value}).use_http is False

    def test_empty_password_falls_back_to_default(self):
        config = load_config({"AUTH_PASSWORD": ""})

        assert config.password_is_default
        assert config.auth_password == "changeme"


class TestCli:

    def test_overrides(self):
        args = cli.build_parser().parse_args(["--http", "--port", "9000"])

        config = cli.apply_overrides(Config({"port": 3000}), args)

        assert config.use_http is True
        assert config.port == 9000

    def test_missing_api_key_exits_nonzero(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.chdir("/")

        assert cli.main([]) == 1


class TestLogging:

    def test_json_formatter_splits_tag(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 10, "[TOKEN] Token issued", None, None)

        entry = json.loads(JSONFormatter("gemini-imagen").format(record))

        assert entry["tag"] == "TOKEN"
        assert entry["message"] == "Token issued"
        assert entry["server"] == "gemini-imagen"
        assert entry["level"] == "INFO"

    def test_json_formatter_without_tag(self):
        record = logging.LogRecord("x", logging.WARNING, __file__, 10, "plain %s", ("text",), None)

        entry = json.loads(JSONFormatter().format(record))

        assert entry["tag"] is None
        assert entry["message"] == "plain text"

    def test_setup_logging_installs_single_stderr_handler(self):
        root = setup_logging("gemini-imagen", log_format="json", level="DEBUG")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG
