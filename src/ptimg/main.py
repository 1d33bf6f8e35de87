"""Subcommand dispatcher for ptimg.

Usage:
    ptimg descramble 0001.jpg --manifest 0001.ptimg.json --output 0001.png
    ptimg descramble --batch pages.yaml --output-dir out/
    ptimg download   https://kirapo.jp/.../viewer --output-dir comics/
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="ptimg",
        description="Reassemble scrambled tiled page images from their coordinate manifests.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("descramble", help="Descramble local pages (single or batch)")
    subparsers.add_parser("download", help="Download and descramble every page of a viewer")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "descramble":
        from .descramble_cli import main as descramble_main
        descramble_main(remaining)
    elif parsed.command == "download":
        from .download_cli import main as download_main
        download_main(remaining)


if __name__ == "__main__":
    main()
