"""High-level room file operations on paths.

Each operation reads the room file, calls the codec and packs the outcome
into a ``ToolResult``. Format and file-system problems are reported in the
result, never raised.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from pyagscrm import codec
from pyagscrm.config import Config, get_config
from pyagscrm.format.edits import (
    HotspotModification,
    apply_modifications,
    validate_hotspot_id,
    validate_interaction,
    validate_modifications,
    validate_walk_to,
)
from pyagscrm.format.errors import BlockNotFoundError, RoomFormatError
from pyagscrm.format.hotspots import EVENT_TYPES
from pyagscrm.format.writer import WriteOptions

logger = logging.getLogger(__name__)

BATCH_OPERATIONS = ("modify", "addInteraction", "updateWalkTo")


@dataclass
class ToolResult:
    """Result of a manager operation."""

    success: bool
    content: Any
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return not self.success

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        data = {"content": self.content}
        if not self.success:
            data["isError"] = True
        if self.message:
            data["message"] = self.message
        return data


def _as_modification(value) -> HotspotModification:
    if isinstance(value, HotspotModification):
        return value
    return HotspotModification.from_dict(value)


class RoomManager:
    """Room file operations for external callers."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    @property
    def format_config(self):
        return self.config.format

    def _read(self, room_file: str | Path) -> bytes:
        return Path(room_file).read_bytes()

    def read_room_data(self, room_file: str | Path) -> ToolResult:
        """Read the revision and block directory of a room file."""
        try:
            data = self._read(room_file)
            revision = codec.detect_revision(data)
            listing = codec.list_blocks(data)
        except (RoomFormatError, OSError) as e:
            return ToolResult(False, {"blocks": []}, str(e))

        if not listing.success:
            return ToolResult(
                False,
                {"blocks": []},
                f"Failed to read room blocks: {'; '.join(listing.diagnostics)}",
            )

        content = {
            "blocks": [b.to_dict() for b in listing.blocks],
            "metadata": {
                "file": str(room_file),
                "readAt": datetime.now().isoformat(),
                "version": int(revision),
                "parsingMethod": listing.method,
            },
        }
        return ToolResult(True, content)

    def list_room_blocks(self, room_file: str | Path) -> ToolResult:
        """List every block in a room file."""
        try:
            data = self._read(room_file)
        except OSError as e:
            return ToolResult(False, [], str(e))

        listing = codec.list_blocks(data)
        if not listing.success:
            reason = listing.diagnostics[0] if listing.diagnostics else "Unknown format"
            return ToolResult(False, [], f"Failed to parse room blocks: {reason}")
        return ToolResult(True, [b.to_dict() for b in listing.blocks])

    def export_room_block(self, room_file: str | Path, block_id, output_file: str | Path) -> ToolResult:
        """Save one block's payload to a separate file."""
        try:
            data = self._read(room_file)
            payload = codec.extract_block_payload(data, block_id)
            if payload is None:
                raise BlockNotFoundError(block_id)
            Path(output_file).write_bytes(payload)
        except (RoomFormatError, OSError) as e:
            return ToolResult(False, f"Failed to export block: {e}", str(e))

        return ToolResult(True, f"Block {block_id} exported to {output_file} ({len(payload)} bytes)")

    def import_room_block(
        self,
        room_file: str | Path,
        block_id,
        input_file: str | Path,
        output_file: str | Path | None = None,
    ) -> ToolResult:
        """Replace one block's payload with the contents of ``input_file``."""
        target = Path(output_file or room_file)
        try:
            data = self._read(room_file)
            payload = Path(input_file).read_bytes()
            target.write_bytes(codec.replace_block_payload(data, block_id, payload))
        except (RoomFormatError, OSError) as e:
            return ToolResult(False, f"Failed to import block: {e}", str(e))

        return ToolResult(
            True, f"Block {block_id} imported from {input_file} to {target} ({len(payload)} bytes)"
        )

    def get_room_hotspots(self, room_file: str | Path) -> ToolResult:
        """Read the hotspots of a room.

        A failed read still returns the fallback background hotspot.
        """
        try:
            data = self._read(room_file)
        except OSError as e:
            return ToolResult(False, [], str(e))

        table = codec.read_hotspots(data, self.format_config)
        content = [h.to_dict() for h in table.hotspots]
        if not table.success:
            return ToolResult(False, content, "; ".join(table.diagnostics))

        logger.info(
            f"Hotspot parsing: {table.display_names_found} display names, "
            f"{table.script_names_found} script names"
        )
        for note in table.diagnostics:
            logger.warning(note)
        return ToolResult(True, content, "; ".join(table.diagnostics) or None)

    def modify_hotspot_properties(
        self,
        room_file: str | Path,
        modifications: list,
        output_file: str | Path | None = None,
        create_backup: bool | None = None,
        validate_after_write: bool | None = None,
    ) -> ToolResult:
        """Merge partial hotspot updates into the room and write it back."""
        try:
            mods = [_as_modification(m) for m in modifications]
        except (KeyError, TypeError, ValueError) as e:
            return ToolResult(False, f"Validation failed: malformed modification ({e})", str(e))

        errors = validate_modifications(mods)
        if errors:
            message = ", ".join(errors)
            return ToolResult(False, f"Validation failed: {message}", message)

        try:
            data = self._read(room_file)
        except OSError as e:
            return ToolResult(False, f"Failed to read hotspots: {e}", str(e))

        table = codec.read_hotspots(data, self.format_config)
        if not table.success:
            message = "; ".join(table.diagnostics)
            return ToolResult(False, f"Failed to read hotspots: {message}", message)

        merged = apply_modifications(table.hotspots, mods)
        target = Path(output_file or room_file)
        options = WriteOptions(
            create_backup=self.config.writer.create_backup if create_backup is None else create_backup,
            validate_after_write=(
                self.config.writer.validate_after_write
                if validate_after_write is None
                else validate_after_write
            ),
            source_path=room_file,
        )
        result = codec.write_hotspots(data, merged, target, options, self.format_config)
        if not result.success:
            return ToolResult(False, result.message, result.message)

        changes = "\n".join(self._describe_change(table.get(m.id), m) for m in mods)
        message = (
            f"Successfully modified {len(mods)} hotspot(s):\n{changes}\n\nFile: {target}"
        )
        if result.backup_path:
            message += f"\nBackup: {result.backup_path}"
        return ToolResult(True, message)

    def _describe_change(self, hotspot, mod: HotspotModification) -> str:
        label = hotspot.name if hotspot else f"Hotspot {mod.id}"
        details = []
        if mod.name is not None:
            details.append(f'name: "{hotspot.name if hotspot else ""}" -> "{mod.name}"')
        if mod.script_name is not None:
            details.append(
                f'script: "{hotspot.script_name if hotspot else ""}" -> "{mod.script_name}"'
            )
        if mod.walk_to is not None:
            old = hotspot.walk_to if hotspot else None
            details.append(f"walkTo: {old} -> ({mod.walk_to[0]}, {mod.walk_to[1]})")
        if mod.enabled is not None:
            details.append(f"enabled: {hotspot.enabled if hotspot else True} -> {mod.enabled}")
        if mod.description is not None:
            details.append(f'description: "{mod.description}"')
        if mod.properties is not None:
            details.append(f"properties: {', '.join(sorted(mod.properties))}")
        return f"{label} ({mod.id}): {', '.join(details)}"

    def list_hotspot_interactions(self, room_file: str | Path, hotspot_id: int) -> ToolResult:
        """Describe the interaction handlers found for one hotspot."""
        errors = validate_hotspot_id(hotspot_id)
        if errors:
            return ToolResult(False, None, errors[0])

        found = self._find_hotspot(room_file, hotspot_id)
        if isinstance(found, ToolResult):
            return found

        return ToolResult(True, {
            "hotspotId": found.id,
            "name": found.name,
            "scriptName": found.script_name,
            "availableInteractions": list(found.interactions),
            "supportedEvents": [e for e in EVENT_TYPES if e != "Any"],
            "walkTo": {"x": found.walk_to[0], "y": found.walk_to[1]} if found.walk_to else None,
        })

    def _find_hotspot(self, room_file, hotspot_id: int):
        try:
            data = self._read(room_file)
        except OSError as e:
            return ToolResult(False, None, str(e))

        table = codec.read_hotspots(data, self.format_config)
        if not table.success:
            return ToolResult(False, None, "; ".join(table.diagnostics))
        hotspot = table.get(hotspot_id)
        if hotspot is None:
            return ToolResult(False, None, f"Hotspot {hotspot_id} not found")
        return hotspot

    def add_hotspot_interaction(
        self,
        room_file: str | Path,
        hotspot_id: int,
        event: str,
        function_name: str,
        output_file: str | Path | None = None,
    ) -> ToolResult:
        """Report the handler that would be bound; script is not compiled."""
        errors = validate_interaction(hotspot_id, event, function_name)
        if errors:
            message = ", ".join(errors)
            return ToolResult(False, f"Validation failed: {message}", message)

        found = self._find_hotspot(room_file, hotspot_id)
        if isinstance(found, ToolResult):
            return found

        message = (
            f'Added interaction metadata for "{found.name}" (ID: {hotspot_id}):\n'
            f"  Event: {event}\n"
            f"  Function: {function_name}()\n"
            f"  Script name: {found.script_name}\n"
            f"  Current interactions: {', '.join(found.interactions)}\n"
            "Room script is not recompiled; no bytes were written."
        )
        if output_file:
            message += f"\nOutput would be written to: {output_file}"
        return ToolResult(True, message)

    def remove_hotspot_interaction(
        self,
        room_file: str | Path,
        hotspot_id: int,
        event: str,
        output_file: str | Path | None = None,
    ) -> ToolResult:
        """Report the handler that would be unbound; script is not compiled."""
        errors = validate_interaction(hotspot_id, event)
        if errors:
            message = ", ".join(errors)
            return ToolResult(False, message, message)

        found = self._find_hotspot(room_file, hotspot_id)
        if isinstance(found, ToolResult):
            return found

        message = f'Would remove {event} interaction from "{found.name}" (ID: {hotspot_id})'
        if output_file:
            message += f"\nOutput would be written to: {output_file}"
        return ToolResult(True, message)

    def update_hotspot_walkto(
        self,
        room_file: str | Path,
        coordinates: list[dict],
        output_file: str | Path | None = None,
    ) -> ToolResult:
        """Report walk-to changes. Walk-to points are not part of the name tables."""
        errors = []
        for coord in coordinates:
            hotspot_id = coord.get("id")
            errors.extend(validate_hotspot_id(hotspot_id))
            errors.extend(validate_walk_to(hotspot_id, (coord.get("x"), coord.get("y"))))
        if errors:
            message = ", ".join(errors)
            return ToolResult(False, f"Validation failed: {message}", message)

        try:
            data = self._read(room_file)
        except OSError as e:
            return ToolResult(False, f"Failed to read hotspots: {e}", str(e))
        table = codec.read_hotspots(data, self.format_config)

        lines = []
        for coord in coordinates:
            hotspot = table.get(coord["id"])
            label = hotspot.name if hotspot else f"Hotspot {coord['id']}"
            old = f"({hotspot.walk_to[0]}, {hotspot.walk_to[1]})" if hotspot and hotspot.walk_to else "none"
            lines.append(f"{label}: {old} -> ({coord['x']}, {coord['y']})")

        message = f"Would update walk-to coordinates for {len(coordinates)} hotspot(s):\n" + "\n".join(lines)
        if output_file:
            message += f"\nOutput would be written to: {output_file}"
        return ToolResult(True, message)

    def batch_modify_hotspots(
        self,
        room_file: str | Path,
        operations: list[dict],
        output_file: str | Path | None = None,
    ) -> ToolResult:
        """Run several hotspot operations in one write.

        ``modify`` and ``updateWalkTo`` operations are merged into a single
        hotspot write; ``addInteraction`` operations are reported only.
        """
        errors = []
        for op in operations:
            if op.get("type") not in BATCH_OPERATIONS:
                errors.append(f"Invalid operation type: {op.get('type')}")
            errors.extend(validate_hotspot_id(op.get("hotspotId")))
        if errors:
            message = ", ".join(errors)
            return ToolResult(False, f"Validation failed: {message}", message)

        mods = []
        notes = []
        for op in operations:
            op_data = op.get("data") or {}
            hotspot_id = op["hotspotId"]
            if op["type"] == "modify":
                try:
                    mods.append(HotspotModification.from_dict({**op_data, "id": hotspot_id}))
                except (TypeError, ValueError) as e:
                    errors.append(f"Malformed modify data for hotspot {hotspot_id}: {e}")
                    continue
                notes.append(f"Hotspot {hotspot_id}: modify properties ({', '.join(op_data)})")
            elif op["type"] == "updateWalkTo":
                walk_to = (op_data.get("x"), op_data.get("y"))
                mods.append(HotspotModification(id=hotspot_id, walk_to=walk_to))
                notes.append(f"Hotspot {hotspot_id}: set walk-to ({walk_to[0]}, {walk_to[1]})")
            else:
                errors.extend(
                    validate_interaction(hotspot_id, op_data.get("event"), op_data.get("functionName"))
                )
                notes.append(
                    f"Hotspot {hotspot_id}: add {op_data.get('event')} -> "
                    f"{op_data.get('functionName')}() (not compiled)"
                )
        if errors:
            message = ", ".join(errors)
            return ToolResult(False, f"Validation failed: {message}", message)

        summary = f"Performed {len(operations)} batch operation(s):\n" + "\n".join(notes)
        if not mods:
            return ToolResult(True, summary)

        result = self.modify_hotspot_properties(room_file, mods, output_file)
        if not result.success:
            return result
        return ToolResult(True, f"{summary}\n\n{result.content}")
