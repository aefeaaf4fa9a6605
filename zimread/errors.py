"""Exceptions raised while reading ZIM archives."""


class ZimError(Exception):
    """Base class for every error raised by this package."""

    default_message = "zim error"

    def __str__(self) -> str:
        if self.args:
            return str(self.args[0])
        return self.default_message


class UnknownCompressionError(ZimError):
    """A cluster declares a compression type that is not known."""

    def __init__(self, raw):
        self.raw = raw
        super().__init__(f"unknown compression: {raw}")


class UnknownMimeTypeError(ZimError):
    default_message = "unknown mimetype"


class InvalidMagicNumberError(ZimError):
    default_message = "invalid magic number"


class InvalidVersionError(ZimError):
    """The archive's major version is neither 5 nor 6."""

    def __init__(self, version):
        self.version = version
        super().__init__(f"invalid major version: {version}, must be 5 or 6")


class InvalidHeaderError(ZimError):
    default_message = "invalid header"


class InvalidNamespaceError(ZimError):
    default_message = "invalid namespace"


class InvalidClusterExtensionError(ZimError):
    default_message = "cluster extension requires major version 6"


class MissingBlobListError(ZimError):
    default_message = "cluster is missing a blob list"


class MissingChecksumError(ZimError):
    default_message = "missing checksum"


class InvalidChecksumError(ZimError):
    default_message = "invalid checksum"


class OutOfBoundsError(ZimError):
    default_message = "out of bounds access"


class ParsingError(ZimError):
    """Data could not be decoded."""

    default_message = "failed to parse"

    def __str__(self) -> str:
        if self.args:
            return f"{self.default_message}: {self.args[0]}"
        return self.default_message