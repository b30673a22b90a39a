"""Room file revisions, block ids and per-revision capabilities."""

import struct
from dataclasses import dataclass
from enum import IntEnum

from pyagscrm.format.errors import TooSmallError, UnknownRevisionError


class RoomRevision(IntEnum):
    """Known on-disk room file revisions (from room_version.h)."""

    V250A = 4
    V250B = 5
    V251 = 6
    V253 = 7
    V254 = 8
    V255 = 9
    V255B = 10
    V256 = 11
    V261 = 12
    V262 = 13
    V270 = 14
    V272 = 15
    V300A = 16
    V300B = 17
    V303A = 18
    V303B = 19
    V314 = 20
    V3404 = 21
    V3405 = 22
    V341 = 23
    V3415 = 24
    V350 = 25
    V360 = 33

    @classmethod
    def current(cls) -> "RoomRevision":
        return cls.V360


class RoomBlockId(IntEnum):
    """Old-style numeric block ids."""

    MAIN = 1  # Main room data
    SCRIPT = 2  # Room script text source
    COMP_SCRIPT = 3  # Old compiled script
    COMP_SCRIPT2 = 4  # Old compiled script
    OBJECT_NAMES = 5  # Names of room objects
    ANIM_BG = 6  # Secondary room backgrounds
    COMP_SCRIPT3 = 7  # Contemporary compiled script
    PROPERTIES = 8  # Custom properties
    OBJECT_SCRIPT_NAMES = 9  # Script names of room objects


BLOCK_NAMES = {
    RoomBlockId.MAIN: "Main",
    RoomBlockId.SCRIPT: "TextScript",
    RoomBlockId.COMP_SCRIPT: "CompScript",
    RoomBlockId.COMP_SCRIPT2: "CompScript2",
    RoomBlockId.OBJECT_NAMES: "ObjNames",
    RoomBlockId.ANIM_BG: "AnimBg",
    RoomBlockId.COMP_SCRIPT3: "CompScript3",
    RoomBlockId.PROPERTIES: "Properties",
    RoomBlockId.OBJECT_SCRIPT_NAMES: "ObjectScNames",
}

# Stream markers
BLOCK_END = 0xFF
BLOCK_STRING_ID = 0
STRING_ID_LENGTH = 16

# Room limits
MAX_ROOM_HOTSPOTS = 50
MAX_ROOM_OBJECTS = 256
MAX_ROOM_REGIONS = 16
MAX_WALK_AREAS = 16
LEGACY_HOTSPOT_NAME_LEN = 30
MAX_SCRIPT_NAME_LEN = 20
MAX_NAME_LENGTH = 50


@dataclass(frozen=True)
class Capabilities:
    """Format features derived from a revision."""

    supports_script_names: bool
    uses_length_prefixed_strings: bool
    uses_64bit_offsets: bool
    legacy_string_length: int

    @property
    def uses_fixed_strings(self) -> bool:
        return self.legacy_string_length > 0


def detect(data: bytes) -> RoomRevision:
    """Read the revision stored in the first two bytes.

    Raises:
        TooSmallError: If the buffer holds fewer than two bytes
        UnknownRevisionError: If the value is not a known revision
    """
    if len(data) < 2:
        raise TooSmallError("Buffer too small to contain room version")

    (value,) = struct.unpack_from("<H", data, 0)
    try:
        return RoomRevision(value)
    except ValueError:
        raise UnknownRevisionError(value) from None


def capabilities(revision: RoomRevision) -> Capabilities:
    """Get the parsing parameters for a revision."""
    legacy = revision < RoomRevision.V303A
    return Capabilities(
        supports_script_names=revision >= RoomRevision.V270,
        uses_length_prefixed_strings=revision >= RoomRevision.V3415,
        uses_64bit_offsets=revision >= RoomRevision.V350,
        legacy_string_length=LEGACY_HOTSPOT_NAME_LEN if legacy else 0,
    )


def block_name(block_id: int) -> str:
    """Map an old-style numeric block id to its name."""
    try:
        return BLOCK_NAMES[RoomBlockId(block_id)]
    except ValueError:
        return f"Block{block_id}"
