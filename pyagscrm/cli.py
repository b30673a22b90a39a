"""Command-line interface for pyagscrm."""

import json
import logging
import sys

from pyagscrm import __version__
from pyagscrm.config import CONFIG_FILE, get_config, save_config
from pyagscrm.manager import RoomManager, ToolResult


def setup_logging(verbose: bool, level: str) -> None:
    """Send log output to stderr so stdout stays usable for results."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def print_result(result: ToolResult, as_json: bool = False) -> int:
    """Print a manager result and return the exit code."""
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    elif isinstance(result.content, str):
        print(result.content)
    elif result.content is not None:
        print(json.dumps(result.content, indent=2))

    if not result.success:
        if result.message and not as_json:
            print(f"Error: {result.message}", file=sys.stderr)
        return 1
    return 0


def parse_coordinate(value: str) -> dict:
    """Parse ``ID:X,Y`` into a walk-to entry."""
    import argparse

    try:
        hotspot_id, point = value.split(":", 1)
        x, y = point.split(",", 1)
        return {"id": int(hotspot_id), "x": int(x), "y": int(y)}
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected ID:X,Y, got {value!r}")


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="pyagscrm - inspect and patch AGS compiled room files",
        prog="agscrm",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pyagscrm {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw results as JSON",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Show revision and block summary")
    info.add_argument("room_file", help="Path to the .crm file")

    blocks = subparsers.add_parser("blocks", help="List all blocks")
    blocks.add_argument("room_file", help="Path to the .crm file")

    export = subparsers.add_parser("export-block", help="Save a block payload to a file")
    export.add_argument("room_file", help="Path to the .crm file")
    export.add_argument("block_id", help="Block ID or name (e.g. 7 or CompScript3)")
    export.add_argument("output_file", help="Output file path")

    imp = subparsers.add_parser("import-block", help="Replace a block payload from a file")
    imp.add_argument("room_file", help="Path to the .crm file")
    imp.add_argument("block_id", help="Block ID or name")
    imp.add_argument("input_file", help="File holding the new payload")
    imp.add_argument("-o", "--output", help="Output .crm path (default: overwrite input)")

    hotspots = subparsers.add_parser("hotspots", help="List hotspots")
    hotspots.add_argument("room_file", help="Path to the .crm file")

    modify = subparsers.add_parser("modify-hotspot", help="Change a hotspot's names")
    modify.add_argument("room_file", help="Path to the .crm file")
    modify.add_argument("hotspot_id", type=int, help="Hotspot ID (0-49)")
    modify.add_argument("--name", help="New display name")
    modify.add_argument("--script-name", help="New script name")
    modify.add_argument("-o", "--output", help="Output .crm path (default: overwrite input)")
    modify.add_argument(
        "--no-backup",
        action="store_true",
        help="Do not back up the room file before overwriting it",
    )

    interactions = subparsers.add_parser("interactions", help="List a hotspot's interactions")
    interactions.add_argument("room_file", help="Path to the .crm file")
    interactions.add_argument("hotspot_id", type=int, help="Hotspot ID (0-49)")

    walkto = subparsers.add_parser("walkto", help="Check walk-to coordinate changes")
    walkto.add_argument("room_file", help="Path to the .crm file")
    walkto.add_argument(
        "coordinates",
        nargs="+",
        type=parse_coordinate,
        help="Entries in ID:X,Y form",
    )

    subparsers.add_parser("serve", help="Run the MCP tool server on stdin/stdout")

    config = subparsers.add_parser("config", help="Show or initialize configuration")
    config.add_argument(
        "--init",
        action="store_true",
        help=f"Write the current configuration to {CONFIG_FILE}",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    setup_logging(args.verbose, config.logging.level)
    manager = RoomManager(config)

    if args.command == "info":
        return print_result(manager.read_room_data(args.room_file), args.json)

    if args.command == "blocks":
        result = manager.list_room_blocks(args.room_file)
        if args.json or not result.success:
            return print_result(result, args.json)
        for block in result.content:
            print(f"{block['id']:>3}  {block['name']:<16} {block['offset']:>10}  {block['size']}")
        return 0

    if args.command == "export-block":
        return print_result(
            manager.export_room_block(args.room_file, args.block_id, args.output_file), args.json
        )

    if args.command == "import-block":
        return print_result(
            manager.import_room_block(args.room_file, args.block_id, args.input_file, args.output),
            args.json,
        )

    if args.command == "hotspots":
        result = manager.get_room_hotspots(args.room_file)
        if args.json:
            return print_result(result, True)
        for hotspot in result.content:
            print(f"{hotspot['id']:>3}  {hotspot['name']:<30} {hotspot['script_name']}")
        if not result.success:
            print(f"Error: {result.message}", file=sys.stderr)
            return 1
        return 0

    if args.command == "modify-hotspot":
        modification = {"id": args.hotspot_id}
        if args.name is not None:
            modification["name"] = args.name
        if args.script_name is not None:
            modification["script_name"] = args.script_name
        if len(modification) == 1:
            print("Nothing to change: pass --name and/or --script-name", file=sys.stderr)
            return 2
        return print_result(
            manager.modify_hotspot_properties(
                args.room_file,
                [modification],
                args.output,
                create_backup=False if args.no_backup else None,
            ),
            args.json,
        )

    if args.command == "interactions":
        return print_result(
            manager.list_hotspot_interactions(args.room_file, args.hotspot_id), args.json
        )

    if args.command == "walkto":
        return print_result(manager.update_hotspot_walkto(args.room_file, args.coordinates), args.json)

    if args.command == "serve":
        from pyagscrm.tools import serve

        serve(manager)
        return 0

    if args.command == "config":
        if args.init:
            save_config(config)
            print(f"Configuration written to {CONFIG_FILE}")
        else:
            print(json.dumps(config.to_dict(), indent=2))
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
