#!/usr/bin/env python3
"""
iNES Cartridge Viewer
Loads an iNES ROM, lays its tile graphics out on a 50-wide grid and
shows the sheet in a window and/or saves it as a PNG.
"""

import argparse
import logging
import sys

from colorlog import ColoredFormatter
from PIL import Image

from chr_tiles import BACKGROUND, compose_tiles
from ines import CartridgeError, load_cartridge

#########################################
# Viewer Data Setup
#########################################

VIEWER_VERSION = "v1.0"
VIEWER_CONFIG = {
    'title': f"iNES Cartridge Viewer {VIEWER_VERSION}",
    'scale': 3,                     # Window zoom factor
    'background': "#000000",        # Window clear colour
    'placeholder_size': (200, 100), # Shown when the cartridge has no tiles
}
LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'bold_red',
}

#########################################
# Logging Setup
#########################################

def setup_logging(verbose=False):
    """Attach a coloured stream handler to the root logger"""
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(
        "%(log_color)s%(levelname)s: %(message)s",
        log_colors=LOG_COLORS))
    logger = logging.getLogger()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return handler

#########################################
# Image Functions
#########################################

def placeholder_image():
    """Blank sheet used when a cartridge carries no graphics"""
    return Image.new("RGBA", VIEWER_CONFIG['placeholder_size'], BACKGROUND)

def sheet_for(cartridge):
    image = compose_tiles(cartridge.tile_data)
    if image is None:
        logging.warning("Cartridge has no tile data, using placeholder")
        return placeholder_image()
    return image

def save_png(image, path):
    image.save(path, format="PNG")
    logging.info("Saved %dx%d sheet to %s", image.width, image.height, path)

def show_image(image, scale=None, title=None):
    """
    Show the sheet in a Tkinter window until it is closed or Escape is hit.

    Args:
        image: PIL RGBA image.
        scale: Integer zoom factor (nearest neighbour).
        title: Window title.
    """
    import tkinter as tk
    from PIL import ImageTk

    scale = scale or VIEWER_CONFIG['scale']
    width, height = image.width * scale, image.height * scale

    root = tk.Tk()
    root.title(title or VIEWER_CONFIG['title'])
    root.resizable(False, False)
    root.bind('<Escape>', lambda e: root.destroy())

    canvas = tk.Canvas(root, width=width, height=height,
                       bg=VIEWER_CONFIG['background'], highlightthickness=0)
    canvas.pack()

    photo = ImageTk.PhotoImage(image.resize((width, height), Image.NEAREST))
    canvas.create_image(0, 0, image=photo, anchor="nw")
    canvas.image_refs = [photo]  # Keep reference to avoid garbage collection

    logging.info("Opened viewer window (%dx%d, %dx zoom)", width, height, scale)
    root.mainloop()

def show_error(message):
    """Best-effort error dialog; falls back to the log alone without a display"""
    try:
        import tkinter as tk
        from tkinter import messagebox
        root = tk.Tk()
        root.withdraw()
        messagebox.showerror("Error", message)
        root.destroy()
    except Exception:
        logging.debug("Couldn't show error dialog", exc_info=True)

#########################################
# Main Code
#########################################

def build_parser():
    parser = argparse.ArgumentParser(
        description="Decode the tile graphics of an iNES cartridge image")
    parser.add_argument("rom_file", help="Input iNES ROM (.nes)")
    parser.add_argument("-o", "--save", metavar="PNG",
                        help="Write the tile sheet to this PNG file")
    parser.add_argument("--no-window", action="store_true",
                        help="Don't open the viewer window")
    parser.add_argument("--scale", type=int, default=VIEWER_CONFIG['scale'],
                        help=f"Window zoom factor (default: {VIEWER_CONFIG['scale']})")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    level = logging.getLogger().level
    handler = setup_logging(args.verbose)
    try:
        try:
            cartridge = load_cartridge(args.rom_file)
        except CartridgeError as e:
            logging.error("Invalid cartridge %s (%s): %s", args.rom_file, e.kind, e)
            if not args.no_window:
                show_error(f"Failed to load cartridge:\n{e}")
            return 1
        except OSError as e:
            logging.error("Couldn't open %s: %s", args.rom_file, e)
            if not args.no_window:
                show_error(f"Failed to open cartridge:\n{e}")
            return 1

        image = sheet_for(cartridge)
        if args.save:
            save_png(image, args.save)
        if not args.no_window:
            show_image(image, args.scale)
        return 0
    finally:
        logging.getLogger().removeHandler(handler)
        logging.getLogger().setLevel(level)

if __name__ == "__main__":
    sys.exit(main())
