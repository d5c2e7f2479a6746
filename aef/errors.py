class AefError(Exception):
    """Base class for aef-specific errors."""


# Header
class HeaderError(AefError):
    pass


class TruncatedError(AefError, EOFError):
    pass


# AEAD
class CipherError(AefError):
    pass


class EncryptionError(CipherError):
    pass


class DecryptionError(CipherError):
    """Authentication failed: wrong password or tampered data."""


# Entries / paths
class EntryError(AefError):
    pass


class PathError(AefError):
    pass


class EmptyPathError(PathError):
    pass


class InvalidPathError(PathError):
    pass


# Compression
class CodecError(AefError):
    pass
