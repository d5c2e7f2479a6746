from __future__ import annotations

from typing import BinaryIO, Optional

from .codec import EncodingReader
from .constants import BUF_SIZE
from .encryption import Cipher, ScryptParams
from .entry import FileEntry, FileType
from .header import FileHeader, rand_salt
from .pathutil import PathInput, RelativePath


class Encoder:
    """Streaming writer that produces password-protected aef archives.

    The encoder owns ``output`` for its lifetime; every entry is written as
    one sealed chunk and file contents follow as a run of data chunks closed
    by a terminator.
    """

    def __init__(
        self,
        output: BinaryIO,
        password: str,
        params: Optional[ScryptParams] = None,
        compress_level: Optional[int] = None,
    ):
        self.output = output
        self.compress_level = compress_level
        self.header = FileHeader(
            salt=rand_salt(),
            params=params or ScryptParams(),
            compress=compress_level is not None,
        )
        self.header.write_to(output)
        self.cipher: Optional[Cipher] = Cipher(password, self.header.salt, self.header.params)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _cipher(self) -> Cipher:
        if self.cipher is None:
            raise RuntimeError("Encoder is closed")
        return self.cipher

    def _write_entry(self, entry: FileEntry) -> None:
        self._cipher().write_chunk(self.output, entry.pack())

    def append_directory(self, path: PathInput, permissions: Optional[int] = None) -> RelativePath:
        """Record a directory entry; no data chunks follow it."""
        rel = RelativePath(path)
        self._write_entry(FileEntry(FileType.DIRECTORY, rel, permissions))
        return rel

    def append_file(self, path: PathInput, permissions: Optional[int], source: BinaryIO) -> RelativePath:
        """Record a file entry and stream ``source`` after it, chunk by chunk."""
        rel = RelativePath(path)
        cipher = self._cipher()
        self._write_entry(FileEntry(FileType.FILE, rel, permissions))
        reader = EncodingReader(source, self.compress_level)
        while True:
            buf = reader.read(BUF_SIZE)
            cipher.write_chunk(self.output, buf)
            if not buf:
                return rel

    def close(self) -> None:
        if self.cipher is None:
            return
        try:
            self.output.flush()
        finally:
            self.cipher.close()
            self.cipher = None
