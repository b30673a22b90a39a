"""AGS compiled room (.crm) format components."""

from pyagscrm.format.errors import (
    RoomFormatError,
    TooSmallError,
    UnknownRevisionError,
    OutOfBoundsError,
    InvalidLengthError,
    InsufficientSpaceError,
    BlockNotFoundError,
)
from pyagscrm.format.version import (
    RoomRevision,
    RoomBlockId,
    Capabilities,
    detect,
    capabilities,
)
from pyagscrm.format.cursor import ByteCursor
from pyagscrm.format.blocks import (
    Block,
    BlockListing,
    BlockDirectoryReader,
    LegacyDirectoryScanner,
    read_block_directory,
)
from pyagscrm.format.hotspots import (
    Hotspot,
    HotspotTable,
    HotspotTableReader,
    Interaction,
    is_script_name_sequence,
    find_script_names_offset,
)
from pyagscrm.format.edits import HotspotModification, apply_modifications, validate_modifications
from pyagscrm.format.writer import RoomPatchWriter, WriteOptions, WriteResult

__all__ = [
    # Errors
    "RoomFormatError",
    "TooSmallError",
    "UnknownRevisionError",
    "OutOfBoundsError",
    "InvalidLengthError",
    "InsufficientSpaceError",
    "BlockNotFoundError",
    # Versions
    "RoomRevision",
    "RoomBlockId",
    "Capabilities",
    "detect",
    "capabilities",
    # Reading
    "ByteCursor",
    "Block",
    "BlockListing",
    "BlockDirectoryReader",
    "LegacyDirectoryScanner",
    "read_block_directory",
    "Hotspot",
    "HotspotTable",
    "HotspotTableReader",
    "Interaction",
    "is_script_name_sequence",
    "find_script_names_offset",
    # Writing
    "HotspotModification",
    "apply_modifications",
    "validate_modifications",
    "RoomPatchWriter",
    "WriteOptions",
    "WriteResult",
]
