"""Produce 'ipfs files cp' commands that recreate the redirects of a ZIM archive."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path, PurePosixPath

from zimread.archive import Zim
from zimread.errors import ZimError
from zimread.model import RedirectTarget

OUTPUT_FILE = "link.txt"


def link_commands(zim: Zim, root) -> list[str]:
    """One 'ipfs files cp' command per redirect whose source and destination differ."""
    root_path = PurePosixPath(root)
    commands = []
    for entry in zim.iterate_by_urls():
        if not isinstance(entry.target, RedirectTarget):
            continue
        redirect = zim.get_by_url_index(entry.target.index)
        namespace_dir = root_path / redirect.namespace.char()
        src = namespace_dir / redirect.url
        dst = namespace_dir / entry.url
        if src != dst:
            commands.append(f"ipfs files cp {src} {dst}")
    return commands


def main(argv=None) -> int:
    """Command-line entry point: write the link commands to link.txt."""
    parser = argparse.ArgumentParser(
        prog="zim-linkr", description="Link ipfs files via 'ipfs files' api."
    )
    parser.add_argument("root", help="Root of the extracted content in the 'ipfs files' api")
    parser.add_argument("input", help="The zim file with link data in")
    args = parser.parse_args(argv)

    print(f"Linking files using {args.input} into {args.root}:")
    print()

    started = time.monotonic()
    try:
        with Zim(args.input) as zim:
            commands = link_commands(zim, args.root)
    except (ZimError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    with open(Path(OUTPUT_FILE), "w", encoding="utf-8") as handle:
        handle.write("\n".join(commands))
        handle.flush()
        os.fsync(handle.fileno())

    print(f"Linking done in {int((time.monotonic() - started) * 1000)}ms")
    return 0