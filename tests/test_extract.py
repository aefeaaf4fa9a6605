import hashlib
import itertools
import os
import struct

import pytest

from zimread.archive import Zim
from zimread.extract import ensure_dir, extract, main, make_link, make_path, safe_write
from zimread.model import MimeType, Namespace

REDIRECT = 0xFFFF


def build_zim(path, mimes, entries, blobs, main_page=None):
    mime_block = b"".join(m.encode() + b"\0" for m in mimes) + b"\0"
    dirents = []
    for mime_id, ns, url, title, (kind, value) in entries:
        body = struct.pack("<HBBI", mime_id, 0, ord(ns), 0)
        if kind == "redirect":
            body += struct.pack("<I", value)
        else:
            body += struct.pack("<II", 0, value)
        dirents.append(body + url.encode() + b"\0" + title.encode() + b"\0")

    count = len(blobs)
    offsets = [4 * (count + 1)]
    for blob in blobs:
        offsets.append(offsets[-1] + len(blob))
    cluster = b"\0" + struct.pack(f"<{count + 1}I", *offsets) + b"".join(blobs)

    n = len(entries)
    dir_pos = 80 + len(mime_block)
    entry_offsets = list(itertools.accumulate((len(d) for d in dirents), initial=dir_pos))[:-1]
    url_ptr_pos = dir_pos + sum(len(d) for d in dirents)
    title_ptr_pos = url_ptr_pos + 8 * n
    cluster_ptr_pos = title_ptr_pos + 4 * n
    cluster_pos = cluster_ptr_pos + 8
    checksum_pos = cluster_pos + len(cluster)
    header = struct.pack(
        "<IHH16sIIQQQQIIQ",
        72173914, 5, 0, bytes(range(16)), n, 1,
        url_ptr_pos, title_ptr_pos, cluster_ptr_pos, 80,
        0xFFFFFFFF if main_page is None else main_page, 0xFFFFFFFF, checksum_pos,
    )
    body = (
        header + mime_block + b"".join(dirents)
        + struct.pack(f"<{n}Q", *entry_offsets)
        + struct.pack(f"<{n}I", *range(n))
        + struct.pack("<Q", cluster_pos) + cluster
    )
    path.write_bytes(body + hashlib.md5(body).digest())
    return path


@pytest.fixture
def sample_zim(tmp_path):
    return build_zim(
        tmp_path / "sample.zim",
        ["text/html", "image/png"],
        [
            (0, "A", "Main", "Main Page", ("cluster", 0)),
            (1, "I", "logo.png", "", ("cluster", 1)),
            (REDIRECT, "A", "Home", "", ("redirect", 0)),
        ],
        [b"<p>hello</p>", b"\x89PNGdata"],
        main_page=0,
    )


def test_make_path_adds_extension_and_strips_leading_slash(tmp_path):
    path = make_path(tmp_path, Namespace.ARTICLES, "/wiki/Page", MimeType.of("text/html"))
    assert path == tmp_path / "A" / "wiki" / "Page.html"


def test_make_path_keeps_matching_extension(tmp_path):
    path = make_path(tmp_path, Namespace.IMAGES_FILE, "pic.png", MimeType.of("image/png"))
    assert path == tmp_path / "I" / "pic.png"


def test_make_path_replaces_non_matching_extension(tmp_path):
    path = make_path(tmp_path, Namespace.IMAGES_FILE, "pic.jpeg", MimeType.of("image/jpeg"))
    assert path == tmp_path / "I" / "pic.jpg"


@pytest.mark.parametrize("mime", [MimeType.REDIRECT, MimeType.of("application/octet-stream")])
def test_make_path_leaves_other_types_alone(tmp_path, mime):
    path = make_path(tmp_path, Namespace.METADATA, "Title", mime)
    assert path == tmp_path / "M" / "Title"


def test_ensure_dir_creates_nested(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    ensure_dir(target)
    ensure_dir(target)
    assert target.is_dir()


def test_safe_write_creates_parents(tmp_path):
    target = tmp_path / "x" / "y" / "file.bin"
    assert safe_write(target, b"payload") is True
    assert target.read_bytes() == b"payload"


def test_make_link_missing_source(tmp_path):
    dst = tmp_path / "dst"
    assert make_link(tmp_path / "nope.html", dst, False) is None
    assert not dst.exists()


def test_make_link_hard_link_takes_source_suffix(tmp_path):
    src = tmp_path / "src.html"
    src.write_bytes(b"content")
    created = make_link(src, tmp_path / "sub" / "alias", False)
    assert created == tmp_path / "sub" / "alias.html"
    assert os.path.samefile(src, created)


def test_make_link_flatten_copies(tmp_path):
    src = tmp_path / "src.txt"
    src.write_bytes(b"copy me")
    created = make_link(src, tmp_path / "other.txt", True)
    assert created.read_bytes() == b"copy me"
    assert not os.path.samefile(src, created)


def test_extract_writes_files_and_links(sample_zim, tmp_path):
    out = tmp_path / "out"
    with Zim(sample_zim) as zim:
        extract(zim, out, False, False)
    assert (out / "A" / "Main.html").read_bytes() == b"<p>hello</p>"
    assert (out / "I" / "logo.png").read_bytes() == b"\x89PNGdata"
    assert os.path.samefile(out / "A" / "Home.html", out / "A" / "Main.html")


def test_extract_skip_link(sample_zim, tmp_path):
    out = tmp_path / "out"
    with Zim(sample_zim) as zim:
        extract(zim, out, True, False)
    assert (out / "A" / "Main.html").exists()
    assert not (out / "A" / "Home.html").exists()
    assert not (out / "A" / "Home").exists()


def test_extract_flatten_link(sample_zim, tmp_path):
    out = tmp_path / "out"
    with Zim(sample_zim) as zim:
        extract(zim, out, False, True)
    home = out / "A" / "Home.html"
    assert home.read_bytes() == b"<p>hello</p>"
    assert not os.path.samefile(home, out / "A" / "Main.html")


def test_main_extracts(sample_zim, tmp_path, capsys):
    out = tmp_path / "cli"
    assert main(["-o", str(out), str(sample_zim)]) == 0
    assert (out / "A" / "Main.html").read_bytes() == b"<p>hello</p>"
    assert "Main page is Main" in capsys.readouterr().out


def test_main_reports_bad_file(tmp_path):
    bad = tmp_path / "bad.zim"
    bad.write_bytes(b"\0" * 100)
    assert main(["-o", str(tmp_path / "o"), str(bad)]) == 1