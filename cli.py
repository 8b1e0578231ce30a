"""CLI entry point for gemini-imagen-mcp.

Runs the MCP server either over stdio (default, trusted local process,
no authorization) or over HTTP with the OAuth password flow
(USE_HTTP=true or --http).
"""
import argparse
import logging
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from config import Config, load_config
from imaging import ImageGenerator
from logging_config import setup_logging
from tools import init_tools, mcp, SERVER_NAME

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gemini-imagen-mcp",
        description="MCP server for Gemini/Imagen image generation and editing.",
    )
    parser.add_argument("--http", action="store_true",
                        help="serve Streamable HTTP with OAuth instead of stdio (same as USE_HTTP=true)")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (overrides PORT)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    data = dict(config.data)
    if args.http:
        data["use_http"] = True
    if args.port is not None:
        data["port"] = args.port
    return Config(data)


def run_http(config: Config):
    from main import create_app

    app = create_app(config)
    logger.info(f"[STARTUP] Gemini Imagen MCP Server running on port {config.port}")
    logger.info("[STARTUP] OAuth 2.0 + Streamable HTTP transport enabled")
    logger.info(f"[STARTUP] Health: {config.server_url}/health")
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


def run_stdio():
    logger.info("[STARTUP] Gemini Imagen MCP server running on stdio")
    mcp.run(transport="stdio")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # .env in the working directory overrides nothing already exported
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    config = apply_overrides(load_config(), args)
    setup_logging(server_name=SERVER_NAME, log_format=config.log_format, level=config.log_level)

    if not config.is_valid():
        logger.error("[STARTUP] GEMINI_API_KEY environment variable is required")
        return 1

    init_tools(ImageGenerator.from_api_key(
        config.gemini_api_key,
        imagen_model=config.imagen_model,
        gemini_model=config.gemini_image_model,
    ))

    if config.use_http:
        run_http(config)
    else:
        run_stdio()
    return 0


if __name__ == "__main__":
    sys.exit(main())
