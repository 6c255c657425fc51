import logging

import numpy as np
from PIL import Image

#########################################
# Tile Constants
#########################################

TILE_BYTES   = 16       # Two 8-byte bitplanes per tile
PLANE_BYTES  = 8
TILE_WIDTH   = 8
TILE_HEIGHT  = 8
GRID_COLUMNS = 50       # Tiles per row in the composite sheet
# RGBA, indexed by the 2-bit color index
PALETTE = (
    (0, 0, 0, 255),         # black
    (0, 0, 0, 255),         # black
    (0, 0, 0, 255),         # black
    (255, 255, 255, 255),   # white
)
BACKGROUND = (0, 0, 0, 0)   # Grid cells past the last tile

PALETTE_ARRAY = np.array(PALETTE, dtype=np.uint8)

#########################################
# Tile Addressing
#########################################

def tile_count(tile_data):
    """Number of whole tiles in the buffer; a trailing partial tile is ignored"""
    return len(tile_data) // TILE_BYTES

def tile_at(tile_data, index):
    """Zero-copy view of the 16 bytes of tile ``index``"""
    if not 0 <= index < tile_count(tile_data):
        raise IndexError(f"Tile {index} out of range (0-{tile_count(tile_data) - 1})")
    offset = index * TILE_BYTES
    return memoryview(tile_data)[offset:offset + TILE_BYTES]

def grid_shape(count):
    """Return (columns, rows) of the sheet holding ``count`` tiles"""
    rows = count // GRID_COLUMNS + (count % GRID_COLUMNS != 0)
    return GRID_COLUMNS, rows

#########################################
# Bitplane Decoding
#########################################

def decode_tile(sprite):
    """
    Combine the two bitplanes of one tile into color indices.

    Bytes 0-7 hold the low bit of each pixel and bytes 8-15 the high bit,
    one byte per row with the most significant bit as the leftmost pixel.

    Args:
        sprite: 16 bytes (bytes, bytearray or memoryview).

    Returns:
        (8, 8) uint8 array of color indices (0-3), row-major.
    """
    assert len(sprite) == TILE_BYTES, "A tile is exactly 16 bytes"
    indices = np.zeros((TILE_HEIGHT, TILE_WIDTH), dtype=np.uint8)
    for y in range(TILE_HEIGHT):
        b0 = sprite[y]
        b1 = sprite[y + PLANE_BYTES]
        for x in range(TILE_WIDTH):
            shift = 7 - x
            indices[y, x] = ((b1 >> shift) & 1) << 1 | ((b0 >> shift) & 1)
    return indices

def decode_tiles(tile_data):
    """Decode every whole tile at once; returns a (count, 8, 8) uint8 array"""
    count = tile_count(tile_data)
    raw = np.frombuffer(tile_data, dtype=np.uint8, count=count * TILE_BYTES)
    # (tile, plane, row, 1) so each row byte unpacks into its own 8 columns
    planes = raw.reshape(count, 2, PLANE_BYTES, 1)
    # unpackbits is MSB first, so bit 7 lands in column 0
    bits = np.unpackbits(planes, axis=3)
    return bits[:, 0] | (bits[:, 1] << 1)

def apply_palette(indices, palette=PALETTE_ARRAY):
    """Map color indices to RGBA; output gains a trailing axis of 4"""
    return palette[indices]

#########################################
# Compositing
#########################################

def compose_pixels(tile_data):
    """
    Lay every tile out on a fixed-width grid.

    Tile ``i`` lands in cell (i % GRID_COLUMNS, i // GRID_COLUMNS). Cells in
    the last row past the final tile keep BACKGROUND.

    Returns:
        (height, width, 4) uint8 RGBA array, or None when the buffer holds
        no whole tile.
    """
    count = tile_count(tile_data)
    if count == 0:
        logging.warning("No graphics data: %d bytes hold no whole tile", len(tile_data))
        return None

    columns, rows = grid_shape(count)
    cells = np.empty((rows * columns, TILE_HEIGHT, TILE_WIDTH, 4), dtype=np.uint8)
    cells[:] = BACKGROUND
    cells[:count] = apply_palette(decode_tiles(tile_data))

    # (rows, cols, y, x, rgba) -> (rows, y, cols, x, rgba) -> pixel rows
    pixels = (cells.reshape(rows, columns, TILE_HEIGHT, TILE_WIDTH, 4)
                   .transpose(0, 2, 1, 3, 4)
                   .reshape(rows * TILE_HEIGHT, columns * TILE_WIDTH, 4))

    logging.info("Composed %d tiles into %dx%d grid (%dx%d pixels)",
                 count, columns, rows, columns * TILE_WIDTH, rows * TILE_HEIGHT)
    return pixels

def compose_tiles(tile_data):
    """Composite sheet as a Pillow RGBA image, or None without tiles"""
    pixels = compose_pixels(tile_data)
    if pixels is None:
        return None
    return Image.fromarray(pixels)
