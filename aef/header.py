from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

from .constants import COMPRESS_OFF, COMPRESS_ON, HEADER_MAGIC, SALT_SIZE
from .encryption import ScryptParams
from .errors import HeaderError
from .records import read_exact


# Header (big endian, 78 bytes):
#  magic[4], salt[64], log_n u8, r u32, p u32, compress u8
_HEADER_STRUCT = struct.Struct(">4s64sBIIB")


def rand_salt() -> bytes:
    return os.urandom(SALT_SIZE)


@dataclass(frozen=True)
class FileHeader:
    salt: bytes
    params: ScryptParams = field(default_factory=ScryptParams)
    compress: bool = False

    def pack(self) -> bytes:
        if len(self.salt) != SALT_SIZE:
            raise ValueError(f"salt must be {SALT_SIZE} bytes")
        return _HEADER_STRUCT.pack(
            HEADER_MAGIC,
            self.salt,
            self.params.log_n,
            self.params.r,
            self.params.p,
            COMPRESS_ON if self.compress else COMPRESS_OFF,
        )

    def write_to(self, f: BinaryIO) -> None:
        f.write(self.pack())

    @classmethod
    def read_from(cls, f: BinaryIO) -> "FileHeader":
        magic = f.read(len(HEADER_MAGIC))
        if magic != HEADER_MAGIC:
            raise HeaderError("Invalid file: missing magic number, not an aef archive")
        raw = magic + read_exact(f, _HEADER_STRUCT.size - len(HEADER_MAGIC))
        _magic, salt, log_n, r, p, compress = _HEADER_STRUCT.unpack(raw)
        try:
            params = ScryptParams(log_n, r, p)
        except ValueError as exc:
            raise HeaderError(f"Invalid scrypt parameters in header: {exc}") from exc
        if compress not in (COMPRESS_OFF, COMPRESS_ON):
            raise HeaderError(f"Invalid compression flag in header: {compress}")
        return cls(salt=salt, params=params, compress=compress == COMPRESS_ON)


HEADER_SIZE = _HEADER_STRUCT.size
