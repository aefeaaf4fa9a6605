# zimread

Read, inspect and extract ZIM archives. ZIM is the file format used to store
offline copies of Wikipedia and other wikis.

Archives are read lazily. Opening one memory-maps the file and parses the header,
the MIME type table, the URL, title and cluster pointer lists, and the stored MD5
checksum. A cluster is decompressed only when one of its blobs is first requested.
Uncompressed clusters are supported, as are clusters compressed with zlib, bzip2,
LZMA2/XZ and Zstandard.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install .[test]
```

## Library use

```python
from zimread.archive import Zim
from zimread.model import ClusterTarget, RedirectTarget

with Zim("wikipedia_ab_all_2017-03.zim") as zim:
    print(zim.header.version_major, zim.header.uuid)
    print("articles:", zim.article_count)

    zim.verify_checksum()  # raises InvalidChecksumError on mismatch

    for entry in zim.iterate_by_urls():
        if isinstance(entry.target, ClusterTarget):
            cluster = zim.get_cluster(entry.target.cluster)
            data = cluster.get_blob(entry.target.blob)
            print(entry.namespace.char(), entry.url, len(data))
        elif isinstance(entry.target, RedirectTarget):
            print(entry.url, "->", zim.get_by_url_index(entry.target.index).url)
```

These are the main pieces:

* `zimread.archive.Zim` is an open archive, and it can be used as a context
  manager. It provides `header` (a `ZimHeader`), `mime_table`, `url_list`,
  `article_list`, `cluster_list`, `checksum`, the `article_count` property, and the
  methods `get_mimetype`, `iterate_by_urls`, `get_by_url_index`, `get_cluster`,
  `verify_checksum` and `close`.
* `zimread.archive.DirectoryEntry` holds the `mime_type`, `namespace`, `revision`,
  `url`, `title` and `target` of an entry. The `target` is one of three things:
  a `RedirectTarget` (an index into the URL list), a `ClusterTarget` (a cluster
  and blob number), or `None` for link targets and deleted entries.
  `iterate_by_urls` stops at the first entry it cannot read.
* `zimread.cluster.Cluster` provides `compression`, `get_blob(index)`,
  `blob_size(index)` and `decompress()`.
* `zimread.model` holds `MimeType`, `MimeKind`, `Namespace`, `RedirectTarget` and
  `ClusterTarget`.

Every error the library raises is a subclass of `zimread.errors.ZimError`. For
example, `InvalidMagicNumberError` means the file is not a ZIM archive,
`InvalidVersionError` means the major version is neither 5 nor 6, and
`UnknownCompressionError` means a cluster uses a compression method the library
does not recognise.

The command-line tools are also available as functions:

* `zimread.extract.extract(zim, root, skip_link, flatten_link)`
* `zimread.info.describe(zim)`, which returns the text that `zim-info` prints
* `zimread.ipfs_link.link_commands(zim, root)`, which returns the list of
  commands

## Command-line tools

Show header information about an archive. This covers the version, UUID, counts,
positions, checksum, the compressions in use, and the main and layout pages:

```
zim-info wikipedia_ab_all_2017-03.zim
```

Extract every entry to disk:

```
extract-zim --out out wikipedia_ab_all_2017-03.zim
```

Each namespace is written to its own directory under the output directory, which
defaults to `out`. A file extension is added to match the MIME type of common
types, for example `html`, `jpg`, `png`, `css` or `js`. Redirects are then created
as hard links to the files they point to. The extractor takes these options:

* `-o`, `--out`: the output directory.
* `--skip-link`: do not create any links for redirects.
* `--flatten-link`: write a copy of the file for each redirect instead of a hard link.

Write an `ipfs files cp` command for every redirect, relative to a root in the
`ipfs files` API. The commands go into `link.txt` in the current directory:

```
ipfs-link /wiki wikipedia_ab_all_2017-03.zim
```

## Limitations

* The package only reads archives. It cannot create or modify ZIM files.
* There is no lookup of entries by URL or title, and no full-text search. Entries
  are reached by their position in the URL pointer list, or by iterating over
  them in URL order.
* `ipfs-link` only writes the commands to a file. It does not run them.