"""Rewrites hotspot name tables in place.

The display name table is re-emitted at its fixed offset and the script name
table immediately after it. Slots are addressed by hotspot id: hotspot n owns
display slot n - 1 and script slot n, and script slot 0 is the background.

The file never grows: the new tables must fit in the region the old ones
occupied plus any zero padding after them, and must stay clear of the safety
margin at the end of the file. Everything outside that region is copied
through untouched.

Backup and final write are separate file operations and not atomic; a crash
in between leaves a backup with an unmodified target.
"""

import logging
import shutil
import struct
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pyagscrm.config import FormatConfig
from pyagscrm.format.cursor import encode_length_prefixed
from pyagscrm.format.edits import validate_hotspots
from pyagscrm.format.errors import (
    InsufficientSpaceError,
    InvalidLengthError,
    OutOfBoundsError,
    RoomFormatError,
)
from pyagscrm.format.hotspots import (
    SCRIPT_NAME_PREFIX,
    Hotspot,
    HotspotTableReader,
    default_script_name,
    find_script_names_offset,
)
from pyagscrm.format.version import (
    MAX_NAME_LENGTH,
    MAX_ROOM_HOTSPOTS,
    MAX_SCRIPT_NAME_LEN,
    Capabilities,
    capabilities,
    detect,
)

logger = logging.getLogger(__name__)


@dataclass
class WriteOptions:
    """Options for a hotspot write."""

    create_backup: bool = True
    validate_after_write: bool = True
    source_path: str | Path | None = None


@dataclass
class WriteResult:
    """Outcome of a hotspot write."""

    success: bool
    message: str
    backup_path: str | None = None
    bytes_written: int | None = None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        data = {"success": self.success, "message": self.message}
        if self.backup_path is not None:
            data["backupPath"] = self.backup_path
        if self.bytes_written is not None:
            data["bytesWritten"] = self.bytes_written
        return data


def backup_path_for(source: Path) -> Path:
    """Timestamped sibling path used for backups."""
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    return source.with_name(f"{source.name}.backup-{timestamp}")


class RoomPatchWriter:
    """Patches hotspot tables into a copy of a room file."""

    def __init__(self, original: bytes, format_config: FormatConfig | None = None) -> None:
        self.original = bytes(original)
        self.buffer = bytearray(original)
        self.fmt = format_config or FormatConfig()

    def write_data_at(self, offset: int, payload: bytes) -> None:
        """Overwrite bytes of the working copy without growing it.

        Raises:
            OutOfBoundsError: If the payload would run past the end
        """
        if offset < 0 or offset + len(payload) > len(self.buffer):
            raise OutOfBoundsError(
                f"Writing {len(payload)} bytes at 0x{offset:x} exceeds buffer size {len(self.buffer)}"
            )
        self.buffer[offset:offset + len(payload)] = payload

    def _encode_entry(self, value: str, caps: Capabilities) -> bytes:
        raw = value.encode("utf-8")
        if not caps.uses_fixed_strings:
            if len(raw) > MAX_NAME_LENGTH:
                raise InvalidLengthError(
                    f"'{value}' is {len(raw)} bytes, names are limited to {MAX_NAME_LENGTH}"
                )
            return encode_length_prefixed(value)
        # Keep room for the null terminator
        if len(raw) >= caps.legacy_string_length:
            raise InvalidLengthError(
                f"'{value}' does not fit a {caps.legacy_string_length}-byte name field"
            )
        return raw.ljust(caps.legacy_string_length, b"\0")

    def _terminator(self, caps: Capabilities) -> bytes:
        if caps.uses_fixed_strings:
            return bytes(caps.legacy_string_length)
        return struct.pack("<I", 0)

    def slot_names(self, hotspots: list[Hotspot]) -> tuple[list[str], list[str]]:
        """Lay hotspots out by id.

        Hotspot ``n`` takes display slot ``n - 1`` and script slot ``n``.
        Script slot 0 is the room background, which has no display slot.
        Ids missing below the highest one get placeholder names.

        Returns:
            (display names, script names)
        """
        by_id = {h.id: h for h in hotspots if 0 <= h.id < MAX_ROOM_HOTSPOTS}
        background = by_id.pop(0, None)
        if background is not None and background.name and background.name != "Background":
            logger.warning(
                f"Hotspot 0 is the room background; its name '{background.name}' is not stored"
            )

        last = max(by_id, default=0)
        display = []
        if background is not None and background.script_name:
            scripts = [background.script_name]
        else:
            scripts = [default_script_name(0)]
        for hotspot_id in range(1, last + 1):
            hotspot = by_id.get(hotspot_id)
            display.append(hotspot.name if hotspot and hotspot.name else f"Hotspot{hotspot_id}")
            scripts.append(
                hotspot.script_name if hotspot and hotspot.script_name
                else default_script_name(hotspot_id)
            )
        return display, scripts

    def _encode_table(self, names: list[str], caps: Capabilities) -> bytes:
        out = bytearray()
        for name in names:
            out += self._encode_entry(name, caps)
        out += self._terminator(caps)
        return bytes(out)

    def _writable_end(self) -> tuple[int, int]:
        """Find where the existing tables end and how far a rewrite may reach.

        Returns:
            (end of the current tables, limit for the rewritten tables)
        """
        hard_limit = len(self.original) - self.fmt.safety_margin
        table = HotspotTableReader(self.original, self.fmt).parse()
        if not table.success or table.display_names_found == 0:
            # No tables to replace, only zero bytes at the offset are free
            old_end = self.fmt.display_names_offset
        else:
            old_end = max(table.display_names_end, table.script_names_end)
            if table.script_names_offset > table.display_names_end:
                gap = table.script_names_offset - table.display_names_end
                logger.warning(f"{gap} bytes between the name tables will be overwritten")

        # Zero bytes right after the tables are reserved padding
        limit = old_end
        while limit < hard_limit and self.original[limit] == 0:
            limit += 1
        return old_end, min(limit, hard_limit)

    def patch(self, hotspots: list[Hotspot]) -> bytes:
        """Return the room bytes with the hotspot tables rewritten.

        Raises:
            InsufficientSpaceError: If the tables would overrun adjacent data
            OutOfBoundsError: If the tables would run past the end of the file
            RoomFormatError: If the revision is unknown, a name cannot be encoded
                or the script names would not be found again on read
        """
        revision = detect(self.original)
        caps = capabilities(revision)
        start = self.fmt.display_names_offset
        display, scripts = self.slot_names(hotspots)
        encoded = self._encode_table(display, caps)
        script_offset = start + len(encoded)
        if caps.supports_script_names:
            encoded += self._encode_table(scripts, caps)
        end = start + len(encoded)

        if end > len(self.buffer):
            raise OutOfBoundsError(
                f"Hotspot tables ({len(encoded)} bytes at 0x{start:x}) exceed file size {len(self.buffer)}"
            )

        old_end, limit = self._writable_end()
        if end > limit:
            raise InsufficientSpaceError(
                f"Insufficient space in file for hotspot tables: need {len(encoded)} bytes "
                f"at 0x{start:x}, {limit - start} available"
            )

        previous = bytes(self.buffer)
        self.write_data_at(start, encoded)
        if end < old_end:
            # Clear leftovers of longer old tables
            self.write_data_at(end, bytes(old_end - end))

        if caps.supports_script_names and not caps.uses_fixed_strings:
            found = find_script_names_offset(bytes(self.buffer), script_offset, self.fmt)
            if found != script_offset:
                self.buffer = bytearray(previous)
                raise RoomFormatError(
                    "Script names would not be found when the room is read back: "
                    f"they must start with '{SCRIPT_NAME_PREFIX}' and the background "
                    f"name must be at most {MAX_SCRIPT_NAME_LEN} characters"
                )

        return bytes(self.buffer)

    def write(
        self,
        hotspots: list[Hotspot],
        target_path: str | Path,
        options: WriteOptions | None = None,
    ) -> WriteResult:
        """Patch the tables and persist the result to ``target_path``.

        Nothing touches the disk until the hotspot set has been validated and
        the new bytes are fully built in memory.
        """
        options = options or WriteOptions()
        target = Path(target_path)

        errors = validate_hotspots(hotspots)
        if errors:
            return WriteResult(False, f"Validation failed: {', '.join(errors)}")

        try:
            patched = self.patch(hotspots)
        except RoomFormatError as e:
            return WriteResult(False, f"Failed to write hotspot data: {e}")

        backup_path = None
        try:
            if options.create_backup and options.source_path is not None:
                source = Path(options.source_path)
                if source.exists() and source.resolve() == target.resolve():
                    backup = backup_path_for(source)
                    shutil.copy2(source, backup)
                    backup_path = str(backup)
                    logger.info(f"Created backup: {backup_path}")

            target.write_bytes(patched)
        except OSError as e:
            return WriteResult(False, f"Failed to write hotspot data: {e}", backup_path)

        if options.validate_after_write:
            problem = self._validate_written(target)
            if problem:
                return WriteResult(False, f"Validation failed after write: {problem}", backup_path)

        logger.info(f"Wrote {len(hotspots)} hotspot(s) to {target}")
        return WriteResult(
            True,
            f"Successfully wrote {len(hotspots)} hotspot(s) to {target}",
            backup_path,
            len(patched),
        )

    def _validate_written(self, path: Path) -> str | None:
        # Size sanity check only, not a re-parse
        if not path.exists():
            return "written file does not exist"
        size = path.stat().st_size
        if size == 0:
            return "written file is empty"
        if size > len(self.original) * 2:
            return "written file is unexpectedly large"
        return None
