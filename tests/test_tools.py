"""Tests for the MCP tool layer using the in-memory FastMCP client."""

import json

import pytest
from fastmcp import Client

import tools
from imaging import ToolExecutionFailed


@pytest.mark.asyncio
async def test_lists_both_tools(fake_generator):
    async with Client(tools.mcp) as client:
        listed = await client.list_tools()

    by_name = {tool.name: tool for tool in listed}
    assert set(by_name) == {"generate_image", "edit_image"}

    generate_schema = by_name["generate_image"].inputSchema
    assert generate_schema["required"] == ["prompt"]
    assert "aspect_ratio" in generate_schema["properties"]
    assert set(by_name["edit_image"].inputSchema["required"]) == {"image_base64", "edit_prompt"}


@pytest.mark.asyncio
async def test_generate_image_success(fake_generator):
    async with Client(tools.mcp) as client:
        result = await client.call_tool_mcp("generate_image", {
            "prompt": "a lighthouse at dusk", "aspect_ratio": "16:9", "style": "sketch",
        })

    assert not result.isError
    payload = json.loads(result.content[0].text)
    assert payload == {"success": True, "image_base64": "aW1hZ2U=", "mime_type": "image/png"}
    fake_generator.generate.assert_awaited_once_with("a lighthouse at dusk", "16:9", "sketch")


@pytest.mark.asyncio
async def test_edit_image_success(fake_generator):
    async with Client(tools.mcp) as client:
        result = await client.call_tool_mcp("edit_image", {"image_base64": "aGk=", "edit_prompt": "add a hat"})

    assert not result.isError
    assert json.loads(result.content[0].text)["image_base64"] == "ZWRpdGVk"
    fake_generator.edit.assert_awaited_once_with("aGk=", "add a hat")


@pytest.mark.asyncio
async def test_failure_is_structured_payload(fake_generator):
    fake_generator.generate.side_effect = ToolExecutionFailed("Image generation failed: quota")

    async with Client(tools.mcp) as client:
        result = await client.call_tool_mcp("generate_image", {"prompt": "anything"})

    assert result.isError
    assert json.loads(result.content[0].text) == {
        "success": False,
        "error": "Image generation failed: quota",
    }


@pytest.mark.asyncio
async def test_unconfigured_generator_fails_cleanly():
    tools.init_tools(None)

    async with Client(tools.mcp) as client:
        result = await client.call_tool_mcp("edit_image", {"image_base64": "aGk=", "edit_prompt": "x"})

    assert result.isError
    assert json.loads(result.content[0].text)["success"] is False
