from __future__ import annotations

import struct
from typing import BinaryIO, Optional, Tuple

from .constants import MAX_CHUNK_LEN, NONCE_SIZE, TAG_SIZE
from .errors import TruncatedError


# Chunk frame (big endian)
#  - length u16 (sealed length incl. tag; 0 = terminator)
#  - nonce[12]            (only when length > 0)
#  - sealed[length]       (ciphertext || tag)
_CHUNK_LEN_STRUCT = struct.Struct(">H")

TERMINATOR = _CHUNK_LEN_STRUCT.pack(0)


def read_exact(f: BinaryIO, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        b = f.read(n - len(buf))
        if not b:
            raise TruncatedError(f"Unexpected EOF: wanted {n} bytes, got {len(buf)}")
        buf += b
    return bytes(buf)


def write_terminator(f: BinaryIO) -> None:
    f.write(TERMINATOR)


def write_chunk_frame(f: BinaryIO, nonce: bytes, sealed: bytes) -> None:
    if len(nonce) != NONCE_SIZE:
        raise ValueError("nonce must be 12 bytes")
    if not TAG_SIZE <= len(sealed) <= MAX_CHUNK_LEN:
        raise ValueError(f"sealed chunk length out of range: {len(sealed)}")
    f.write(_CHUNK_LEN_STRUCT.pack(len(sealed)))
    f.write(nonce)
    f.write(sealed)


def read_chunk_frame(f: BinaryIO) -> Optional[Tuple[bytes, bytes]]:
    """Read one frame.

    Returns None on a clean end of input before the length field,
    ``(b"", b"")`` for a terminator, else ``(nonce, sealed)``.
    """
    first = f.read(_CHUNK_LEN_STRUCT.size)
    if not first:
        return None
    if len(first) < _CHUNK_LEN_STRUCT.size:
        first += read_exact(f, _CHUNK_LEN_STRUCT.size - len(first))
    (length,) = _CHUNK_LEN_STRUCT.unpack(first)
    if length == 0:
        return b"", b""
    nonce = read_exact(f, NONCE_SIZE)
    sealed = read_exact(f, length)
    return nonce, sealed
