"""Extract the contents of a ZIM archive into a directory tree."""

from __future__ import annotations

import argparse
import os
import shutil
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from zimread.archive import DirectoryEntry, Zim
from zimread.cluster import Cluster
from zimread.errors import OutOfBoundsError, ZimError
from zimread.model import ClusterTarget, MimeKind, MimeType, Namespace, RedirectTarget

_EXTENSIONS = {
    "text/html": "html",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/svg+xml": "svg",
    "application/javascript": "js",
    "text/css": "css",
    "text/plain": "txt",
}

_WRITE_ATTEMPTS = 3


def _warn(message: str) -> None:
    print(message, file=sys.stderr)


def _report(action: str, exc: OSError) -> None:
    """Report a filesystem failure, staying quiet when the target already exists."""
    if isinstance(exc, FileExistsError):
        return
    _warn(f"skipping: {action}: {exc}")


def make_path(root, namespace: Namespace, url: str, mime_type: MimeType) -> Path:
    """The output path for an entry, with an extension matching its MIME type."""
    if url.startswith("/"):
        url = url[1:]
    path = Path(root) / namespace.char() / url

    if mime_type.kind is MimeKind.TYPE:
        extension = _EXTENSIONS.get(mime_type.name or "")
        if extension is not None and not path.suffix[1:].startswith(extension):
            path = path.with_suffix("." + extension)
    return path


def ensure_dir(path) -> None:
    """Create the directory `path` and its parents unless it exists."""
    path = Path(path)
    if path.exists():
        return
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _report(f"create: {path}", exc)


def safe_write(path, data) -> bool:
    """Write `data` to `path`, retrying the creation a few times; report failures."""
    path = Path(path)
    ensure_dir(path.parent)

    last_error: Optional[OSError] = None
    for _ in range(_WRITE_ATTEMPTS):
        try:
            handle = open(path, "wb")
        except OSError as exc:
            last_error = exc
            continue
        with handle:
            try:
                handle.write(data)
            except OSError as exc:
                _warn(f"skipping: couldn't write to {path}: {exc}")
                return False
        return True

    _warn(f"skipping: failed retry: couldn't create {path}: {last_error}")
    return False


def make_link(src, dst, flatten_link: bool) -> Optional[Path]:
    """Link (or copy, when flattening) `src` to `dst`; return the path created."""
    src = Path(src)
    dst = Path(dst)
    if not src.exists():
        _warn(f"Warning: link source doesn't exist: {src}")
        return None
    if dst.exists():
        return None

    ensure_dir(dst.parent)
    if src.suffix and dst.suffix != src.suffix:
        dst = dst.with_suffix(src.suffix)

    try:
        if flatten_link:
            shutil.copyfile(src, dst)
        else:
            os.link(src, dst)
    except OSError as exc:
        kind = "copy link" if flatten_link else "create link"
        _report(f"{kind}: {src} -> {dst}", exc)
    return dst


def _process_file(root: Path, clusters: dict[int, Cluster], entry: DirectoryEntry) -> None:
    dst = make_path(root, entry.namespace, entry.url, entry.mime_type)
    target = entry.target
    cluster = clusters.get(target.cluster)
    if cluster is None:
        raise OutOfBoundsError(f"missing cluster {target.cluster}")
    try:
        blob = cluster.get_blob(target.blob)
    except ZimError as exc:
        _warn(f"skipping invalid blob: {dst}: {exc}")
        return
    safe_write(dst, blob)


def _process_link(zim: Zim, root: Path, flatten_link: bool, entry: DirectoryEntry) -> bool:
    dst = make_path(root, entry.namespace, entry.url, entry.mime_type)
    if dst.exists():
        return False
    source_entry = zim.get_by_url_index(entry.target.index)
    src = make_path(root, source_entry.namespace, source_entry.url, source_entry.mime_type)
    make_link(src, dst, flatten_link)
    return True


def extract(zim: Zim, root, skip_link: bool = False, flatten_link: bool = False) -> None:
    """Write every entry of `zim` below `root`, then create links for redirects."""
    root = Path(root)
    ensure_dir(root)

    clusters = {index: zim.get_cluster(index) for index in range(zim.header.cluster_count)}
    entries = list(zim.iterate_by_urls())

    with tqdm(total=zim.article_count, disable=None, unit="entry") as bar, ThreadPoolExecutor() as pool:
        bar.set_description("Writing entries to disk")
        files = [entry for entry in entries if isinstance(entry.target, ClusterTarget)]
        for _ in pool.map(partial(_process_file, root, clusters), files):
            bar.update(1)

        if not skip_link:
            bar.set_description("Generating links")
            links = [entry for entry in entries if isinstance(entry.target, RedirectTarget)]
            for linked in pool.map(partial(_process_link, zim, root, flatten_link), links):
                if linked:
                    bar.total += 1
                    bar.update(1)


def main(argv=None) -> int:
    """Command-line entry point: extract a ZIM file to disk."""
    parser = argparse.ArgumentParser(
        prog="extract-zim", description="Extract zim files into their on disk structure."
    )
    parser.add_argument("-o", "--out", default="out", help="Output directory.")
    parser.add_argument("--skip-link", action="store_true", help="Skip generating hard links")
    parser.add_argument(
        "--flatten-link",
        action="store_true",
        help="Write files to disk, instead of using hard links",
    )
    parser.add_argument("input")
    args = parser.parse_args(argv)

    print(f"Extracting file: {args.input} to {args.out}\n")
    print(f"Generating symlinks: {str(not args.skip_link).lower()}")
    print(f"Generating copies for links: {str(args.flatten_link).lower()}")

    started = time.monotonic()
    try:
        with Zim(args.input) as zim:
            if zim.header.main_page is not None:
                page = zim.get_by_url_index(zim.header.main_page)
                print(f"Main page is {page.url}")
            print()
            extract(zim, args.out, args.skip_link, args.flatten_link)
    except (ZimError, OSError) as exc:
        _warn(f"error: {exc}")
        return 1

    print(f"Extraction done in {time.monotonic() - started:.3f}s")
    return 0