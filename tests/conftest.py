"""Shared fixtures: synthetic room files laid out like real compiled rooms."""

import struct
from pathlib import Path

import pytest

from pyagscrm.config import Config

DISPLAY_NAMES_OFFSET = 0x101

# Display names as stored, control characters included
DEFAULT_NAMES = ["Staff\x01 Door\x1f", "Lock", "Window"]
DEFAULT_SCRIPT_NAMES = ["hHotspot0", "hStaffDoor", "hLock", "hWindow"]
DEFAULT_HANDLERS = b"hStaffDoor_Look\0hStaffDoor_Interact\0hLock_UseInv\0"

SAMPLE_ROOM = Path(__file__).parent / "data" / "room2.crm"


def lp(value: str) -> bytes:
    """Length-prefixed string."""
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def fixed(value: str, length: int = 30) -> bytes:
    return value.encode("utf-8").ljust(length, b"\0")


def block(block_id: int, payload: bytes, wide: bool = True) -> bytes:
    """Old-style block: id, length, payload."""
    length = struct.pack("<Q", len(payload)) if wide else struct.pack("<I", len(payload))
    return bytes([block_id]) + length + payload


def string_block(name: str, payload: bytes) -> bytes:
    """New-style block with a 16-byte string id."""
    return b"\0" + name.encode("ascii").ljust(16, b"\0") + struct.pack("<Q", len(payload)) + payload


def build_room(
    names: list[str] | None = None,
    script_names: list[str] | None = None,
    revision: int = 33,
    padding: int = 64,
    handlers: bytes = DEFAULT_HANDLERS,
    properties: bytes = b"\x01" * 64,
) -> bytes:
    """Build a room file with hotspot tables at 0x101 of the Main block.

    Layout: revision, Main (filler, display names, script names, zero
    padding), CompScript3 (handler names), Properties, end marker.
    """
    names = DEFAULT_NAMES if names is None else names
    script_names = DEFAULT_SCRIPT_NAMES if script_names is None else script_names
    wide = revision >= 25
    legacy = revision < 18

    payload_start = 2 + 1 + (8 if wide else 4)
    tables = bytearray()
    if legacy:
        for name in names:
            tables += fixed(name)
        tables += bytes(30)
    else:
        for name in names:
            tables += lp(name)
        tables += bytes(4)
        if revision >= 14:
            for name in script_names:
                tables += lp(name)
            tables += bytes(4)

    main = bytes(DISPLAY_NAMES_OFFSET - payload_start) + bytes(tables) + bytes(padding)

    data = struct.pack("<H", revision)
    data += block(1, main, wide)
    data += block(7, handlers, wide)
    data += block(8, properties, wide)
    data += b"\xff"
    return data


def legacy_table_file() -> bytes:
    """Room whose sequential stream is broken but has an old block table."""
    data = bytearray(100)
    data[0:2] = struct.pack("<H", 33)
    data[2] = 1
    data[3:11] = struct.pack("<Q", 10**9)
    data[16:20] = struct.pack("<I", 2)
    data[20:32] = struct.pack("<III", 1, 8, 64)
    data[32:44] = struct.pack("<III", 7, 8, 72)
    return bytes(data)


@pytest.fixture
def room_bytes():
    """Revision 3.6.0 room with three hotspots."""
    return build_room()


@pytest.fixture
def room_file(tmp_path, room_bytes):
    """The default synthetic room saved to disk."""
    path = tmp_path / "room2.crm"
    path.write_bytes(room_bytes)
    return path


@pytest.fixture
def config():
    """Default configuration, isolated from the user's config file."""
    return Config()
