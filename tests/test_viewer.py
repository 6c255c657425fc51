import logging
import os
import tempfile
import unittest

from PIL import Image

import CartridgeViewer
from chr_tiles import BACKGROUND

from .romfactory import make_rom, write_temp_rom


class ViewerCommandLine(unittest.TestCase):

    def setUp(self):
        self.out_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.out_dir.cleanup)
        self.png = os.path.join(self.out_dir.name, "sheet.png")

    def test_save_png(self):
        rom = write_temp_rom(self, make_rom(1, 1))
        status = CartridgeViewer.main([rom, "--save", self.png, "--no-window"])
        self.assertEqual(status, 0)
        with Image.open(self.png) as image:
            self.assertEqual(image.mode, "RGBA")
            self.assertEqual(image.size, (400, 88))

    def test_placeholder_without_tiles(self):
        rom = write_temp_rom(self, make_rom(1, 0))
        status = CartridgeViewer.main([rom, "-o", self.png, "--no-window"])
        self.assertEqual(status, 0)
        with Image.open(self.png) as image:
            self.assertEqual(image.size, (200, 100))
            self.assertEqual(image.getpixel((0, 0)), BACKGROUND)

    def test_bad_cartridge_exit_status(self):
        rom = write_temp_rom(self, b"GB\x00\x00" + bytes(100))
        with self.assertLogs(level="ERROR") as logs:
            status = CartridgeViewer.main([rom, "-o", self.png, "--no-window"])
        self.assertEqual(status, 1)
        self.assertIn("BadSignature", logs.output[0])
        self.assertFalse(os.path.exists(self.png))

    def test_missing_file_exit_status(self):
        missing = os.path.join(self.out_dir.name, "missing.nes")
        with self.assertLogs(level="ERROR"):
            status = CartridgeViewer.main([missing, "--no-window"])
        self.assertEqual(status, 1)

    def test_handler_removed_after_run(self):
        before = list(logging.getLogger().handlers)
        rom = write_temp_rom(self, make_rom(1, 1))
        CartridgeViewer.main([rom, "--no-window"])
        self.assertEqual(logging.getLogger().handlers, before)

    def test_log_level_restored_after_verbose_run(self):
        root = logging.getLogger()
        level = root.level
        rom = write_temp_rom(self, make_rom(1, 1))
        CartridgeViewer.main([rom, "--no-window", "-v"])
        self.assertEqual(root.level, level)


class ViewerHelpers(unittest.TestCase):

    def test_placeholder_image(self):
        image = CartridgeViewer.placeholder_image()
        self.assertEqual(image.size, CartridgeViewer.VIEWER_CONFIG['placeholder_size'])
        self.assertEqual(image.mode, "RGBA")

    def test_parser_defaults(self):
        args = CartridgeViewer.build_parser().parse_args(["game.nes"])
        self.assertEqual(args.rom_file, "game.nes")
        self.assertEqual(args.scale, 3)
        self.assertIsNone(args.save)
        self.assertFalse(args.no_window)
        self.assertFalse(args.verbose)

    def test_verbose_sets_debug(self):
        root = logging.getLogger()
        level = root.level
        handler = CartridgeViewer.setup_logging(verbose=True)
        try:
            self.assertEqual(root.level, logging.DEBUG)
        finally:
            root.removeHandler(handler)
            root.setLevel(level)


if __name__ == '__main__':
    unittest.main()
