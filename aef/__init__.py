"""
aef: password-protected archive container.

Features:

- A file or directory tree becomes one sequential stream of sealed chunks.
- Keys are derived from the password with scrypt; every chunk is sealed with
  AES-256-GCM under a fresh random nonce.
- Optional streaming brotli compression of file contents.
- Stored paths are sanitized (NFC, no traversal, no control characters) both
  when written and when read back.

Wire layout: a fixed header (magic, salt, scrypt parameters, compression flag)
followed by, per member, one entry chunk and, for files, data chunks closed by
a zero-length terminator.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "errors",
    "pathutil",
    "encryption",
    "header",
    "entry",
    "codec",
    "writer",
    "reader",
    "walk",
    "perms",
]
