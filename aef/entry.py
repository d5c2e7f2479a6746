from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Optional

from .constants import FTYPE_DIRECTORY, FTYPE_FILE, NONE_PERMISSIONS
from .errors import EntryError
from .pathutil import RelativePath


# Entry payload: ftype u8, permissions u32 (big endian), path bytes
_ENTRY_PREFIX = struct.Struct(">BI")
_MIN_ENTRY_LEN = _ENTRY_PREFIX.size + 1


class FileType(enum.IntEnum):
    DIRECTORY = FTYPE_DIRECTORY
    FILE = FTYPE_FILE

    @property
    def is_file(self) -> bool:
        return self is FileType.FILE


@dataclass
class FileEntry:
    """One archive member: type, optional permission bits, sanitized path.

    A permission mask of exactly 0 shares its encoding with "none recorded"
    and reads back as None.
    """

    filetype: FileType
    path: RelativePath
    permissions: Optional[int] = None

    def pack(self) -> bytes:
        perms = NONE_PERMISSIONS if self.permissions is None else self.permissions
        if not 0 <= perms <= 0xFFFFFFFF:
            raise ValueError(f"permissions out of u32 range: {perms}")
        return _ENTRY_PREFIX.pack(int(self.filetype), perms) + self.path.to_bytes()

    @classmethod
    def unpack(cls, data: bytes) -> "FileEntry":
        if len(data) < _MIN_ENTRY_LEN:
            raise EntryError(f"Entry record too short: {len(data)} bytes")
        ftype, perms = _ENTRY_PREFIX.unpack_from(data)
        try:
            filetype = FileType(ftype)
        except ValueError as exc:
            raise EntryError(f"Unknown entry type: {ftype}") from exc
        path = RelativePath.from_bytes(data[_ENTRY_PREFIX.size:])
        return cls(
            filetype=filetype,
            path=path,
            permissions=None if perms == NONE_PERMISSIONS else perms,
        )
