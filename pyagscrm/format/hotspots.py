"""Hotspot name tables.

A room stores its hotspots' display names as a string sequence at a fixed
offset inside the Main block. The script names follow later as a second
sequence whose start is not recorded anywhere, so it has to be found by a
bounded forward scan. Slot 0 of the script name table belongs to the room
background, so display entry ``i`` pairs with script entry ``i + 1`` and
becomes hotspot ``i + 1``.

Which interaction handlers exist is not stored in the tables either. The
compiled script carries the handler names (``hDoor_Look``, ``hDoor_Interact``)
so a byte search of the whole file recovers them.
"""

import copy
import logging
import re
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pyagscrm.config import FormatConfig
from pyagscrm.format.cursor import ByteCursor, clean_text
from pyagscrm.format.errors import RoomFormatError
from pyagscrm.format.version import (
    MAX_NAME_LENGTH,
    MAX_ROOM_HOTSPOTS,
    MAX_SCRIPT_NAME_LEN,
    RoomRevision,
    capabilities,
    detect,
)

logger = logging.getLogger(__name__)

SCRIPT_NAME_PREFIX = "h"
SCRIPT_NAME_PATTERN = re.compile(r"h[A-Za-z0-9_]+")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
DISPLAY_NAME_PATTERN = re.compile(r"[a-zA-Z0-9\s\-_]+")

# Entries checked when confirming a script name table
SEQUENCE_LOOKAHEAD = 5

# Window searched for alternative display-name offsets
CANDIDATE_SCAN_START = 0x100
CANDIDATE_SCAN_END = 0x300


class Interaction(str, Enum):
    """Event kinds a hotspot can handle, named by handler suffix."""

    LOOK = "Look"
    INTERACT = "Interact"
    USE_INV = "UseInv"
    TALK = "Talk"
    WALK = "Walk"
    USE = "Use"
    PICK_UP = "PickUp"
    ANY_CLICK = "AnyClick"
    STAND_ON = "StandOn"


DEFAULT_INTERACTIONS = [Interaction.LOOK.value, Interaction.INTERACT.value]

# Events accepted by the interaction editing operations
EVENT_TYPES = ["Look", "Interact", "UseInv", "Talk", "Walk", "Use", "PickUp", "Any"]


def default_script_name(hotspot_id: int) -> str:
    return f"hHotspot{hotspot_id}"


def is_identifier(value: str) -> bool:
    """Check a script name against the identifier grammar."""
    return bool(IDENTIFIER_PATTERN.fullmatch(value))


@dataclass
class Hotspot:
    """An interactive region of a room."""

    id: int
    name: str = ""
    script_name: str = ""
    walk_to: tuple[int, int] | None = None
    interactions: list[str] = field(default_factory=lambda: list(DEFAULT_INTERACTIONS))
    enabled: bool = True
    description: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def background(cls) -> "Hotspot":
        """The synthetic hotspot standing in for the room background."""
        return cls(id=0, name="Background", script_name=default_script_name(0))

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        data = {
            "id": self.id,
            "name": self.name,
            "script_name": self.script_name,
            "interactions": list(self.interactions),
            "enabled": self.enabled,
        }
        if self.walk_to is not None:
            data["walk_to"] = {"x": self.walk_to[0], "y": self.walk_to[1]}
        if self.description is not None:
            data["description"] = self.description
        if self.properties:
            data["properties"] = copy.deepcopy(self.properties)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Hotspot":
        """Deserialize from dictionary (accepts camelCase keys too)."""
        walk_to = data.get("walk_to", data.get("walkTo"))
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            script_name=data.get("script_name", data.get("scriptName", "")),
            walk_to=(int(walk_to["x"]), int(walk_to["y"])) if walk_to else None,
            interactions=list(data.get("interactions") or DEFAULT_INTERACTIONS),
            enabled=data.get("enabled", True),
            description=data.get("description"),
            properties=dict(data.get("properties") or {}),
        )


@dataclass
class HotspotTable:
    """Outcome of a hotspot table read."""

    hotspots: list[Hotspot]
    success: bool
    revision: RoomRevision | None = None
    display_names_found: int = 0
    script_names_found: int = 0
    display_names_offset: int = -1
    script_names_offset: int = -1
    display_names_end: int = -1
    script_names_end: int = -1
    diagnostics: list[str] = field(default_factory=list)

    def get(self, hotspot_id: int) -> Hotspot | None:
        for hotspot in self.hotspots:
            if hotspot.id == hotspot_id:
                return hotspot
        return None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "hotspots": [h.to_dict() for h in self.hotspots],
            "success": self.success,
            "metadata": {
                "version": int(self.revision) if self.revision is not None else None,
                "displayNamesFound": self.display_names_found,
                "scriptNamesFound": self.script_names_found,
                "displayNamesOffset": self.display_names_offset,
                "scriptNamesOffset": self.script_names_offset,
            },
            "diagnostics": list(self.diagnostics),
        }


def _string_at(data: bytes, pos: int, max_len: int = MAX_NAME_LENGTH) -> str | None:
    """Decode a non-empty length-prefixed string at ``pos`` if it fits."""
    if pos < 0 or pos + 4 > len(data):
        return None
    (length,) = struct.unpack_from("<I", data, pos)
    if not 0 < length <= max_len or pos + 4 + length > len(data):
        return None
    return clean_text(data[pos + 4:pos + 4 + length])


def is_script_name_sequence(data: bytes, offset: int) -> bool:
    """Check that ``offset`` starts a run of script-name-shaped strings.

    Walks up to five entries. Two well-formed names in a row confirm the
    table, as does a zero terminator after at least one name.
    """
    pos = offset
    count = 0

    for _ in range(SEQUENCE_LOOKAHEAD):
        if pos + 4 >= len(data):
            break
        (length,) = struct.unpack_from("<I", data, pos)
        if length == 0:
            return count > 0

        text = _string_at(data, pos)
        if text is None or not SCRIPT_NAME_PATTERN.fullmatch(text):
            break
        count += 1
        pos += 4 + length

    return count >= 2


def find_script_names_offset(
    data: bytes, start: int, format_config: FormatConfig | None = None
) -> int:
    """Scan forward from ``start`` for the script name table.

    Returns:
        Offset of the first entry, or -1 if nothing in the window qualifies
    """
    fmt = format_config or FormatConfig()
    limit = min(len(data) - fmt.safety_margin, start + fmt.script_search_window)

    for pos in range(start, limit, 4):
        if pos + 4 >= len(data):
            break
        text = _string_at(data, pos)
        if text is None:
            continue
        if (
            text.startswith(SCRIPT_NAME_PREFIX)
            and 2 < len(text) <= MAX_SCRIPT_NAME_LEN
            and is_script_name_sequence(data, pos)
        ):
            return pos

    return -1


def find_display_name_candidates(data: bytes) -> list[int]:
    """List offsets that could hold the start of a display name table."""
    candidates = []
    for pos in range(CANDIDATE_SCAN_START, min(len(data) - 100, CANDIDATE_SCAN_END)):
        text = _string_at(data, pos)
        if text and len(text) <= 40 and DISPLAY_NAME_PATTERN.fullmatch(text):
            candidates.append(pos)
    return candidates


def find_interactions(data: bytes, script_name: str) -> list[str]:
    """Find handler functions named ``<script_name>_<Event>`` anywhere in the file."""
    found = [
        event.value
        for event in Interaction
        if f"{script_name}_{event.value}".encode("utf-8") in data
    ]
    return found or list(DEFAULT_INTERACTIONS)


class HotspotTableReader:
    """Two-phase reader for the display name and script name tables."""

    def __init__(self, data: bytes, format_config: FormatConfig | None = None) -> None:
        self.data = data
        self.fmt = format_config or FormatConfig()

    def parse(self) -> HotspotTable:
        """Read the hotspot tables. Never raises.

        On failure the result holds only the background hotspot, with
        ``success`` False and the reason in ``diagnostics``.
        """
        try:
            return self._parse()
        except Exception as e:
            logger.warning(f"Hotspot parsing failed: {e}")
            revision = None
            try:
                revision = detect(self.data)
            except RoomFormatError:
                pass
            return HotspotTable(
                hotspots=[Hotspot.background()],
                success=False,
                revision=revision,
                display_names_offset=self.fmt.display_names_offset,
                diagnostics=[str(e)],
            )

    def _parse(self) -> HotspotTable:
        revision = detect(self.data)
        caps = capabilities(revision)
        cursor = ByteCursor(self.data, caps)
        diagnostics: list[str] = []

        # Phase 1: display names
        display_offset = self.fmt.display_names_offset
        cursor.seek(display_offset)
        names = cursor.read_string_sequence(MAX_ROOM_HOTSPOTS, MAX_NAME_LENGTH)
        display_end = cursor.position

        if not names:
            candidates = [c for c in find_display_name_candidates(self.data) if c != display_offset]
            if candidates:
                shown = ", ".join(f"0x{c:x}" for c in candidates[:5])
                diagnostics.append(
                    f"No display names at 0x{display_offset:x}; strings found at {shown} "
                    "(possible format variant)"
                )
            else:
                diagnostics.append(f"No display names at 0x{display_offset:x}")

        # Phase 2: script names
        script_names: list[str] = []
        script_offset = -1
        script_end = -1
        if caps.supports_script_names:
            script_offset = find_script_names_offset(self.data, display_end, self.fmt)
            if script_offset >= 0:
                cursor.seek(script_offset)
                script_names = cursor.read_string_sequence(MAX_ROOM_HOTSPOTS, MAX_NAME_LENGTH)
                script_end = cursor.position
            elif names:
                diagnostics.append("Script name table not found; using default script names")
        logger.debug(
            f"Hotspot tables: {len(names)} display names at 0x{display_offset:x}, "
            f"{len(script_names)} script names at {script_offset}"
        )

        hotspots = self._combine(names, script_names)
        for hotspot in hotspots:
            hotspot.interactions = find_interactions(self.data, hotspot.script_name)

        return HotspotTable(
            hotspots=hotspots,
            success=True,
            revision=revision,
            display_names_found=len(names),
            script_names_found=len(script_names),
            display_names_offset=display_offset,
            script_names_offset=script_offset,
            display_names_end=display_end,
            script_names_end=script_end,
            diagnostics=diagnostics,
        )

    def _combine(self, names: list[str], script_names: list[str]) -> list[Hotspot]:
        hotspots = []
        for index, name in enumerate(names):
            if not name:
                continue
            hotspot_id = index + 1
            if hotspot_id < len(script_names) and script_names[hotspot_id]:
                script_name = script_names[hotspot_id]
            else:
                script_name = default_script_name(hotspot_id)
            hotspots.append(Hotspot(id=hotspot_id, name=name, script_name=script_name))
        return hotspots
