"""Print a summary of a ZIM archive's header and contents."""

from __future__ import annotations

import argparse
import sys

from zimread.archive import Zim
from zimread.errors import ZimError


def _page(zim: Zim, index) -> tuple[str, int]:
    if index is None:
        return "-", -1
    return zim.get_by_url_index(index).url, index


def describe(zim: Zim) -> str:
    """A multi-line description of the archive."""
    header = zim.header
    compressions = sorted({zim.get_cluster(i).compression for i in range(header.cluster_count)})
    compression_names = ", ".join(c.name.capitalize() for c in compressions)
    main_page, main_index = _page(zim, header.main_page)
    layout_page, layout_index = _page(zim, header.layout_page)

    lines = [
        f"Version {header.version_major}.{header.version_minor}",
        f"UUID: {header.uuid}",
        f"Article Count: {zim.article_count:,}",
        f"Mime List Pos: {header.mime_list_pos:,}",
        f"URL Pointer Pos: {header.url_ptr_pos:,}",
        f"Title Index Pos: {header.title_ptr_pos:,}",
        f"Cluster Count: {header.cluster_count:,}",
        f"Cluster Pointer Pos: {header.cluster_ptr_pos}",
        f"Checksum: {zim.checksum.hex()}",
        f"Checksum Pos: {header.checksum_pos:,}",
        f"Compressions: {{{compression_names}}}",
        f'Main page: "{main_page}" (index: {main_index})',
        f'Layout page: "{layout_page}" (index: {layout_index})',
    ]
    return "\n".join(lines)


def main(argv=None) -> int:
    """Command-line entry point: inspect a ZIM file."""
    parser = argparse.ArgumentParser(prog="zim-info", description="Inspect zim files")
    parser.add_argument("input", help="The zim file to inspect")
    args = parser.parse_args(argv)

    print(f"Inspecting: {args.input}\n")
    try:
        with Zim(args.input) as zim:
            print(describe(zim))
    except (ZimError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0