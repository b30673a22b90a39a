"""Room operations exposed as Model Context Protocol tools.

``build_server`` registers every tool with an MCP server and ``serve`` runs
it over stdio. ``list_tools`` and ``call_tool`` are the plain adapters onto
``RoomManager`` that the server handlers use. Tool failures come back as
``isError`` results.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

import anyio
import mcp.types as types
from anyio import to_thread
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from pyagscrm import __version__
from pyagscrm.format.errors import RoomFormatError
from pyagscrm.manager import RoomManager, ToolResult

logger = logging.getLogger(__name__)

SERVER_NAME = "pyagscrm"


class ToolError(Exception):
    """A tool call that could not be run."""

    pass


@dataclass
class Tool:
    """A callable operation exposed to external callers."""

    name: str
    description: str
    properties: dict
    required: list[str]
    handler: Callable[[RoomManager, dict], ToolResult]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": self.properties,
                "required": self.required,
            },
        }


def _prop(type_: str | list, description: str, **extra) -> dict:
    return {"type": type_, "description": description, **extra}


ROOM_FILE = _prop("string", "Path to the .crm file")
BLOCK_ID = _prop(["string", "number"], 'Block ID or name (e.g., "5" or "ObjNames")')
OUTPUT_FILE = _prop("string", "Output .crm file path (optional - modifies original if not specified)")
HOTSPOT_ID = _prop("number", "Hotspot ID (0-49)")

TOOLS = [
    Tool(
        "read_room_data",
        "Parse a .crm file and return structured room data",
        {"roomFile": ROOM_FILE},
        ["roomFile"],
        lambda m, a: m.read_room_data(a["roomFile"]),
    ),
    Tool(
        "list_room_blocks",
        "List all blocks in a .crm file",
        {"roomFile": ROOM_FILE},
        ["roomFile"],
        lambda m, a: m.list_room_blocks(a["roomFile"]),
    ),
    Tool(
        "export_room_block",
        "Export a specific block from a .crm file",
        {
            "roomFile": ROOM_FILE,
            "blockId": BLOCK_ID,
            "outputFile": _prop("string", "Output file path"),
        },
        ["roomFile", "blockId", "outputFile"],
        lambda m, a: m.export_room_block(a["roomFile"], a["blockId"], a["outputFile"]),
    ),
    Tool(
        "import_room_block",
        "Import/replace a block in a .crm file",
        {
            "roomFile": ROOM_FILE,
            "blockId": BLOCK_ID,
            "inputFile": _prop("string", "Input file path containing block data"),
            "outputFile": OUTPUT_FILE,
        },
        ["roomFile", "blockId", "inputFile"],
        lambda m, a: m.import_room_block(
            a["roomFile"], a["blockId"], a["inputFile"], a.get("outputFile")
        ),
    ),
    Tool(
        "get_room_hotspots",
        "Extract hotspot information from a room",
        {"roomFile": ROOM_FILE},
        ["roomFile"],
        lambda m, a: m.get_room_hotspots(a["roomFile"]),
    ),
    Tool(
        "modify_hotspot_properties",
        "Change hotspot names, script names and other properties",
        {
            "roomFile": ROOM_FILE,
            "modifications": _prop(
                "array",
                "Partial hotspot updates: {id, name?, scriptName?, walkTo?, enabled?, description?, properties?}",
                items={"type": "object"},
            ),
            "outputFile": OUTPUT_FILE,
        },
        ["roomFile", "modifications"],
        lambda m, a: m.modify_hotspot_properties(
            a["roomFile"], a["modifications"], a.get("outputFile")
        ),
    ),
    Tool(
        "list_hotspot_interactions",
        "List the interaction handlers found for a hotspot",
        {"roomFile": ROOM_FILE, "hotspotId": HOTSPOT_ID},
        ["roomFile", "hotspotId"],
        lambda m, a: m.list_hotspot_interactions(a["roomFile"], a["hotspotId"]),
    ),
    Tool(
        "add_hotspot_interaction",
        "Add an interaction event handler to a hotspot",
        {
            "roomFile": ROOM_FILE,
            "hotspotId": HOTSPOT_ID,
            "event": _prop("string", "Event type (Look, Interact, UseInv, etc.)"),
            "functionName": _prop("string", 'Script function name (e.g., "hDoor_Look")'),
            "outputFile": _prop("string", "Output .crm file path (optional)"),
        },
        ["roomFile", "hotspotId", "event", "functionName"],
        lambda m, a: m.add_hotspot_interaction(
            a["roomFile"], a["hotspotId"], a["event"], a["functionName"], a.get("outputFile")
        ),
    ),
    Tool(
        "remove_hotspot_interaction",
        "Remove an interaction event handler from a hotspot",
        {
            "roomFile": ROOM_FILE,
            "hotspotId": HOTSPOT_ID,
            "event": _prop("string", "Event type (Look, Interact, UseInv, etc.)"),
            "outputFile": _prop("string", "Output .crm file path (optional)"),
        },
        ["roomFile", "hotspotId", "event"],
        lambda m, a: m.remove_hotspot_interaction(
            a["roomFile"], a["hotspotId"], a["event"], a.get("outputFile")
        ),
    ),
    Tool(
        "update_hotspot_walkto_coordinates",
        "Update walk-to coordinates for hotspots",
        {
            "roomFile": ROOM_FILE,
            "coordinates": _prop("array", "Entries of {id, x, y}", items={"type": "object"}),
            "outputFile": _prop("string", "Output .crm file path (optional)"),
        },
        ["roomFile", "coordinates"],
        lambda m, a: m.update_hotspot_walkto(a["roomFile"], a["coordinates"], a.get("outputFile")),
    ),
    Tool(
        "batch_modify_hotspots",
        "Apply several hotspot operations in one write",
        {
            "roomFile": ROOM_FILE,
            "operations": _prop(
                "array",
                "Entries of {type: modify|addInteraction|updateWalkTo, hotspotId, data}",
                items={"type": "object"},
            ),
            "outputFile": OUTPUT_FILE,
        },
        ["roomFile", "operations"],
        lambda m, a: m.batch_modify_hotspots(a["roomFile"], a["operations"], a.get("outputFile")),
    ),
]

TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def list_tools() -> list[dict]:
    """Describe every available tool."""
    return [tool.to_dict() for tool in TOOLS]


def _as_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, indent=2)


def call_tool(name: str, arguments: dict | None, manager: RoomManager | None = None) -> dict:
    """Run a tool and wrap its result as text content.

    Raises:
        ToolError: Unknown tool, missing arguments or a failed handler
    """
    tool = TOOLS_BY_NAME.get(name)
    if tool is None:
        raise ToolError(f"Unknown tool: {name}")
    if not isinstance(arguments, dict):
        raise ToolError("Missing arguments")

    missing = [key for key in tool.required if key not in arguments]
    if missing:
        raise ToolError(f"Missing required argument(s): {', '.join(missing)}")

    manager = manager or RoomManager()
    try:
        result = tool.handler(manager, arguments)
    except (RoomFormatError, OSError, KeyError, TypeError, ValueError) as e:
        logger.error(f"Tool {name} failed: {e}")
        raise ToolError(f"Tool execution failed: {e}") from e

    response = {"content": [{"type": "text", "text": _as_text(result.content)}]}
    if result.is_error:
        if result.message and result.content in (None, [], {}):
            response["content"][0]["text"] = result.message
        response["isError"] = True
    return response


def build_server(manager: RoomManager | None = None) -> Server:
    """Create an MCP server with every room tool registered."""
    manager = manager or RoomManager()
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [types.Tool(**tool) for tool in list_tools()]

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
        # Room files are read and written synchronously
        response = await to_thread.run_sync(call_tool, name, arguments, manager)
        text = response["content"][0]["text"]
        if response.get("isError"):
            # The server turns a raised error into an isError result
            raise ToolError(text)
        return [types.TextContent(type="text", text=text)]

    return server


async def run_stdio(manager: RoomManager | None = None) -> None:
    """Serve the tools on stdin/stdout until the client disconnects."""
    server = build_server(manager)
    logger.info(f"{SERVER_NAME} {__version__} serving {len(TOOLS)} tools on stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def serve(manager: RoomManager | None = None) -> None:
    """Blocking entry point for ``agscrm serve``."""
    anyio.run(run_stdio, manager)
