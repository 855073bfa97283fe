#!/usr/bin/env python3
"""Wallified Poster Studio - design a custom photo poster and add it to the cart."""

import argparse
import logging
import sys

from controller import MainWindow, PosterStudioApp


# === Entry Point ===

def main():
    parser = argparse.ArgumentParser(description="Wallified Poster Studio")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("photos", nargs="*", help="Photos to place on the poster (up to 4)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    app = PosterStudioApp(sys.argv[:1])
    app.setApplicationName("Wallified Poster Studio")
    window = MainWindow()
    window.show()

    # macOS file-open events (photos dropped on the Dock icon)
    app.file_open_requested.connect(lambda path: window.open_paths([path]))

    if args.photos:
        window.open_paths(args.photos)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
