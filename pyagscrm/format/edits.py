"""Caller-supplied hotspot changes: validation and overlay merge."""

import copy
from dataclasses import dataclass
from typing import Any

from pyagscrm.format.hotspots import (
    EVENT_TYPES,
    Hotspot,
    default_script_name,
    is_identifier,
)
from pyagscrm.format.version import MAX_NAME_LENGTH, MAX_ROOM_HOTSPOTS

MAX_COORDINATE = 9999
MAX_FUNCTION_NAME_LEN = 100


@dataclass
class HotspotModification:
    """Partial update for one hotspot. ``None`` fields are left unchanged."""

    id: int
    name: str | None = None
    script_name: str | None = None
    walk_to: tuple[int, int] | None = None
    enabled: bool | None = None
    description: str | None = None
    properties: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "HotspotModification":
        """Deserialize from dictionary (accepts camelCase keys too)."""
        walk_to = data.get("walk_to", data.get("walkTo"))
        if isinstance(walk_to, dict):
            walk_to = (walk_to.get("x"), walk_to.get("y"))
        elif walk_to is not None:
            walk_to = tuple(walk_to)
        return cls(
            id=data["id"],
            name=data.get("name"),
            script_name=data.get("script_name", data.get("scriptName")),
            walk_to=walk_to,
            enabled=data.get("enabled"),
            description=data.get("description"),
            properties=data.get("properties"),
        )

    def changed_fields(self) -> list[str]:
        return [
            name
            for name in ("name", "script_name", "walk_to", "enabled", "description", "properties")
            if getattr(self, name) is not None
        ]


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_hotspot_id(hotspot_id) -> list[str]:
    if not _is_int(hotspot_id) or not 0 <= hotspot_id < MAX_ROOM_HOTSPOTS:
        return [f"Invalid hotspot ID: {hotspot_id} (must be 0-{MAX_ROOM_HOTSPOTS - 1})"]
    return []


def validate_walk_to(hotspot_id, walk_to) -> list[str]:
    """Check walk-to coordinates are integers within 0-9999."""
    try:
        x, y = walk_to
    except (TypeError, ValueError):
        return [f"Invalid walk-to coordinates for hotspot {hotspot_id}: {walk_to!r}"]
    if not all(_is_int(v) and 0 <= v <= MAX_COORDINATE for v in (x, y)):
        return [f"Invalid walk-to coordinates for hotspot {hotspot_id}: ({x}, {y})"]
    return []


def _fits_name_field(value) -> bool:
    # The reader limits each entry by its UTF-8 byte length
    return isinstance(value, str) and 0 < len(value.encode("utf-8")) <= MAX_NAME_LENGTH


def _validate_fields(hotspot_id, name, script_name, walk_to) -> list[str]:
    errors = []
    if name is not None and not _fits_name_field(name):
        errors.append(
            f"Invalid name for hotspot {hotspot_id}: length must be 1-{MAX_NAME_LENGTH} bytes"
        )
    if script_name is not None:
        if not _fits_name_field(script_name):
            errors.append(
                f"Invalid script name for hotspot {hotspot_id}: "
                f"length must be 1-{MAX_NAME_LENGTH} bytes"
            )
        if not is_identifier(script_name):
            errors.append(
                f"Invalid script name for hotspot {hotspot_id}: must be valid identifier"
            )
    if walk_to is not None:
        errors.extend(validate_walk_to(hotspot_id, walk_to))
    return errors


def validate_modifications(modifications: list[HotspotModification]) -> list[str]:
    """Return every problem found in a modification set (empty if valid)."""
    errors = []
    for mod in modifications:
        errors.extend(validate_hotspot_id(mod.id))
        errors.extend(_validate_fields(mod.id, mod.name, mod.script_name, mod.walk_to))
    return errors


def validate_hotspots(hotspots: list[Hotspot]) -> list[str]:
    """Check a complete hotspot set before it is written."""
    errors = []
    seen = set()
    for hotspot in hotspots:
        errors.extend(validate_hotspot_id(hotspot.id))
        if hotspot.id in seen:
            errors.append(f"Duplicate hotspot ID: {hotspot.id}")
        seen.add(hotspot.id)
        errors.extend(
            _validate_fields(
                hotspot.id,
                hotspot.name or None,
                hotspot.script_name or None,
                hotspot.walk_to,
            )
        )
    return errors


def validate_interaction(hotspot_id, event: str, function_name: str | None = None) -> list[str]:
    """Check an interaction edit request."""
    errors = validate_hotspot_id(hotspot_id)

    if event not in EVENT_TYPES:
        errors.append(f"Invalid event type: {event} (supported: {', '.join(EVENT_TYPES)})")

    if function_name is not None:
        if not function_name:
            errors.append("Function name cannot be empty")
        elif len(function_name) > MAX_FUNCTION_NAME_LEN:
            errors.append(f"Function name too long (max {MAX_FUNCTION_NAME_LEN} characters)")
        elif not is_identifier(function_name):
            errors.append(f"Invalid function name: {function_name} (must be valid identifier)")

    return errors


def apply_modifications(
    hotspots: list[Hotspot], modifications: list[HotspotModification]
) -> list[Hotspot]:
    """Overlay modifications onto copies of ``hotspots``.

    Unknown ids create new hotspots with placeholder names. The input list
    is not mutated.

    Returns:
        The merged hotspots, sorted by id
    """
    result = {h.id: copy.deepcopy(h) for h in hotspots}

    for mod in modifications:
        hotspot = result.get(mod.id)
        if hotspot is None:
            hotspot = Hotspot(
                id=mod.id,
                name=f"Hotspot {mod.id}",
                script_name=default_script_name(mod.id),
            )
            result[mod.id] = hotspot

        if mod.name is not None:
            hotspot.name = mod.name
        if mod.script_name is not None:
            hotspot.script_name = mod.script_name
        if mod.walk_to is not None:
            hotspot.walk_to = (mod.walk_to[0], mod.walk_to[1])
        if mod.enabled is not None:
            hotspot.enabled = mod.enabled
        if mod.description is not None:
            hotspot.description = mod.description
        if mod.properties is not None:
            hotspot.properties = {**hotspot.properties, **mod.properties}

    return sorted(result.values(), key=lambda h: h.id)
