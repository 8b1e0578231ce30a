"""MCP Tools for gemini-imagen-mcp.

This module defines the MCP tools (generate_image, edit_image) exposed to
clients over both the stdio and the HTTP transport. Failures are returned as
error results carrying {"success": false, "error": ...} so clients can tell
a tool problem apart from an auth or session problem.
"""

import json
import logging
from typing import Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from imaging import ImageGenerator

logger = logging.getLogger(__name__)

SERVER_NAME = "gemini-imagen"

AspectRatio = Literal["1:1", "16:9", "9:16", "4:3", "3:4"]
Style = Literal["photorealistic", "artistic", "cartoon", "sketch", "3d-render"]

# Create the FastMCP server instance
mcp = FastMCP(SERVER_NAME)

# Set by init_tools()
_generator: Optional[ImageGenerator] = None


def init_tools(generator: ImageGenerator):
    """Bind the image generator used by the tools."""
    global _generator
    _generator = generator


def _failure(error: Exception) -> ToolError:
    return ToolError(json.dumps({"success": False, "error": str(error)}))


@mcp.tool()
async def generate_image(
    prompt: str,
    aspect_ratio: AspectRatio = "1:1",
    style: Optional[Style] = None,
) -> dict:
    """Generate an image using Google Imagen.

    Provide a detailed text prompt describing the image you want to create.
    Returns a base64-encoded image.

    Args:
        prompt: A detailed description of the image to generate.
        aspect_ratio: The aspect ratio of the generated image. Default is 1:1.
        style: Optional style hint for the image generation.
    """
    logger.info(f"[TOOL] Generating image: {prompt[:50]!r}")
    try:
        if _generator is None:
            raise RuntimeError("Image generator is not configured")
        result = await _generator.generate(prompt, aspect_ratio, style)
    except Exception as e:
        logger.error(f"[TOOL] generate_image failed: {e}")
        raise _failure(e) from e
    return {"success": True, **result.to_dict()}


@mcp.tool()
async def edit_image(image_base64: str, edit_prompt: str) -> dict:
    """Edit an existing image using AI. Provide the base64 image and instructions.

    Args:
        image_base64: The base64-encoded image to edit.
        edit_prompt: Instructions for how to edit the image.
    """
    logger.info(f"[TOOL] Editing image: {edit_prompt[:50]!r}")
    try:
        if _generator is None:
            raise RuntimeError("Image generator is not configured")
        result = await _generator.edit(image_base64, edit_prompt)
    except Exception as e:
        logger.error(f"[TOOL] edit_image failed: {e}")
        raise _failure(e) from e
    return {"success": True, **result.to_dict()}
