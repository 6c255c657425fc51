import logging
from dataclasses import dataclass, field

from chr_tiles import compose_tiles

#########################################
# iNES Container Constants
#########################################

HEADER_SIZE        = 16          # Fixed iNES header length
SIGNATURE          = "NES"       # Bytes 0-2 of every iNES file
PRG_UNIT_SIZE      = 16 * 1024   # Program region unit (header byte 4)
CHR_UNIT_SIZE      = 8 * 1024    # Tile region unit (header byte 5)
PRG_UNITS_OFFSET   = 4
CHR_UNITS_OFFSET   = 5
BAD_SIGNATURE_TEXT = "Magic is wrong!"  # Shown when bytes 0-2 are not text

#########################################
# Errors
#########################################

class CartridgeError(ValueError):
    """Base class for every cartridge load failure"""
    kind = "CartridgeError"


class HeaderTooShort(CartridgeError):
    kind = "HeaderTooShort"


class BadSignature(CartridgeError):
    kind = "BadSignature"

    def __init__(self, signature):
        self.signature = signature
        super().__init__(f"Bad signature: expected {SIGNATURE!r}, got {signature!r}")


class ProgramRegionTruncated(CartridgeError):
    kind = "ProgramRegionTruncated"


class TileRegionTruncated(CartridgeError):
    kind = "TileRegionTruncated"

#########################################
# Cartridge Image
#########################################

@dataclass(frozen=True)
class CartridgeImage:
    """Program and tile regions of a fully loaded cartridge.

    Both buffers are immutable ``bytes`` whose lengths always equal the
    matching ``*_size`` field.
    """
    program_size: int
    tile_size: int
    program_data: bytes = field(repr=False)
    tile_data: bytes = field(repr=False)

    def __post_init__(self):
        if len(self.program_data) != self.program_size:
            raise ValueError(f"Program data is {len(self.program_data)} bytes, "
                             f"expected {self.program_size}")
        if len(self.tile_data) != self.tile_size:
            raise ValueError(f"Tile data is {len(self.tile_data)} bytes, "
                             f"expected {self.tile_size}")

    def read8(self, offset):
        """Return the program byte at ``offset``, or 0 outside the region"""
        if 0 <= offset < self.program_size:
            return self.program_data[offset]
        return 0x00

    def img(self):
        """Composite tile sheet for this cartridge, or None without graphics"""
        return compose_tiles(self.tile_data)

#########################################
# Loading Functions
#########################################

def read_exact(rom_file, size, error_cls, region):
    """
    Read exactly ``size`` bytes from ``rom_file``.

    Args:
        rom_file: Binary file object positioned at the region start.
        size: Number of bytes the header promised.
        error_cls: CartridgeError subclass raised on a short or failed read.
        region: Region name used in the error message.

    Returns:
        bytes of length ``size``.
    """
    try:
        data = rom_file.read(size)
    except OSError as e:
        raise error_cls(f"Failed to read {region}: {e}") from e
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise error_cls(f"Failed to read {region}: expected {size} bytes, got {got}")
    return bytes(data)

def parse_signature(header):
    """Return bytes 0-2 of the header as text, or the sentinel if undecodable"""
    try:
        return header[0:3].decode("utf-8")
    except UnicodeDecodeError:
        return BAD_SIGNATURE_TEXT

def read_cartridge(rom_file):
    """Decode an iNES image from an open binary file object"""
    header = read_exact(rom_file, HEADER_SIZE, HeaderTooShort, "header")

    signature = parse_signature(header)
    if signature != SIGNATURE:
        raise BadSignature(signature)

    program_size = header[PRG_UNITS_OFFSET] * PRG_UNIT_SIZE
    tile_size = header[CHR_UNITS_OFFSET] * CHR_UNIT_SIZE
    logging.debug("Program region: %d bytes", program_size)
    logging.debug("Tile region: %d bytes", tile_size)

    program_data = read_exact(rom_file, program_size, ProgramRegionTruncated, "program area")
    tile_data = read_exact(rom_file, tile_size, TileRegionTruncated, "character rom area")

    logging.info("Loaded cartridge: %d x 16KB program, %d x 8KB tiles",
                 header[PRG_UNITS_OFFSET], header[CHR_UNITS_OFFSET])
    return CartridgeImage(program_size, tile_size, program_data, tile_data)

def load_cartridge(path):
    """Open ``path`` and decode it. Open failures propagate as OSError."""
    with open(path, 'rb') as f:
        cartridge = read_cartridge(f)
    logging.info("Read %s: %r", path, cartridge)
    return cartridge
