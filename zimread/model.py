"""Value types describing directory entries: MIME types, namespaces and targets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional

from zimread.errors import InvalidNamespaceError


class MimeKind(Enum):
    """The kind of a MIME type slot; special kinds are not real MIME types."""

    REDIRECT = "redirect"
    LINK_TARGET = "link target"
    DELETED_ENTRY = "deleted entry"
    TYPE = "type"


@dataclass(frozen=True)
class MimeType:
    """A MIME type of a directory entry, or one of the special markers."""

    kind: MimeKind
    name: Optional[str] = None

    REDIRECT: ClassVar["MimeType"]
    LINK_TARGET: ClassVar["MimeType"]
    DELETED_ENTRY: ClassVar["MimeType"]

    @classmethod
    def of(cls, name):
        """A regular MIME type with the given name."""
        return cls(MimeKind.TYPE, name)

    def __str__(self) -> str:
        if self.kind is MimeKind.TYPE:
            return self.name or ""
        return self.kind.value


MimeType.REDIRECT = MimeType(MimeKind.REDIRECT)
MimeType.LINK_TARGET = MimeType(MimeKind.LINK_TARGET)
MimeType.DELETED_ENTRY = MimeType(MimeKind.DELETED_ENTRY)


class Namespace(Enum):
    """Namespaces separate different types of directory entries."""

    LAYOUT = ord("-")
    ARTICLES = ord("A")
    ARTICLE_META_DATA = ord("B")
    USER_CONTENT = ord("C")
    IMAGES_FILE = ord("I")
    IMAGES_TEXT = ord("J")
    METADATA = ord("M")
    CATEGORIES_TEXT = ord("U")
    CATEGORIES_ARTICLE_LIST = ord("V")
    CATEGORIES_ARTICLE = ord("W")
    FULLTEXT_INDEX = ord("X")

    @classmethod
    def from_byte(cls, value):
        """The namespace for a raw byte value."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidNamespaceError() from None

    def char(self) -> str:
        """The single character that names this namespace."""
        return chr(self.value)


@dataclass(frozen=True)
class RedirectTarget:
    """A redirect, given as an index into the URL pointer list."""

    index: int


@dataclass(frozen=True)
class ClusterTarget:
    """Content stored as a blob inside a cluster."""

    cluster: int
    blob: int