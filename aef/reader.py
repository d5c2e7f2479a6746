from __future__ import annotations

from typing import BinaryIO, Optional

from .codec import DecodingWriter
from .encryption import Cipher
from .entry import FileEntry
from .errors import EntryError
from .header import FileHeader


class _NullSink:
    def write(self, data: bytes) -> int:
        return len(data)

    def flush(self) -> None:
        pass


class Decoder:
    """Sequential reader for aef archives.

    After ``read_entry`` returns a file entry the caller must consume its data
    with ``read_data_to`` (or ``skip_data``) before reading the next entry.
    """

    def __init__(self, input: BinaryIO, password: str):
        self.input = input
        self.header = FileHeader.read_from(input)
        self.compress = self.header.compress
        self.cipher: Optional[Cipher] = Cipher(password, self.header.salt, self.header.params)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _cipher(self) -> Cipher:
        if self.cipher is None:
            raise RuntimeError("Decoder is closed")
        return self.cipher

    def read_entry(self) -> Optional[FileEntry]:
        """Return the next entry, or None once the archive is exhausted."""
        data = self._cipher().read_chunk(self.input)
        if data is None:
            return None
        if not data:
            raise EntryError("Unexpected terminator where an entry was expected")
        return FileEntry.unpack(data)

    def read_data_to(self, sink: BinaryIO) -> None:
        """Decrypt the current file's data chunks into ``sink``."""
        cipher = self._cipher()
        writer = DecodingWriter(sink, self.compress)
        while True:
            data = cipher.read_chunk(self.input)
            if not data:  # terminator or end of input
                break
            writer.write(data)
        writer.finish()

    def skip_data(self) -> None:
        self.read_data_to(_NullSink())  # type: ignore[arg-type]

    def close(self) -> None:
        if self.cipher is not None:
            self.cipher.close()
            self.cipher = None
