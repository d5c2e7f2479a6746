from __future__ import annotations

from typing import BinaryIO, Optional

import brotli

from .constants import BROTLI_LGWIN, BUF_SIZE, MAX_COMPRESS_LEVEL, MIN_COMPRESS_LEVEL
from .errors import CodecError


class EncodingReader:
    """Readable view of ``source``, brotli-compressed when ``level`` is set.

    ``level`` is the brotli quality (0..11); None reads ``source`` unchanged.
    """

    def __init__(self, source: BinaryIO, level: Optional[int] = None):
        self.source = source
        self._compressor = None
        if level is not None:
            if not MIN_COMPRESS_LEVEL <= level <= MAX_COMPRESS_LEVEL:
                raise ValueError(f"compression level must be in {MIN_COMPRESS_LEVEL}..{MAX_COMPRESS_LEVEL}, got {level}")
            self._compressor = brotli.Compressor(mode=brotli.MODE_GENERIC, quality=level, lgwin=BROTLI_LGWIN)
        self._pending = bytearray()
        self._eof = False

    def read(self, size: int = BUF_SIZE) -> bytes:
        if self._compressor is None:
            return self.source.read(size)
        # Brotli may hold back output for several input blocks
        while not self._pending and not self._eof:
            raw = self.source.read(BUF_SIZE)
            if raw:
                self._pending += self._compressor.process(raw)
            else:
                self._pending += self._compressor.finish()
                self._eof = True
        out = bytes(self._pending[:size])
        del self._pending[:size]
        return out


class DecodingWriter:
    """Writable wrapper around ``sink`` that decompresses when ``compressed``.

    ``finish()`` must run before the caller finalizes ``sink``.
    """

    def __init__(self, sink: BinaryIO, compressed: bool):
        self.sink = sink
        self._decompressor = brotli.Decompressor() if compressed else None
        self._fed = False

    def _process(self, data: bytes) -> None:
        try:
            out = self._decompressor.process(data, output_buffer_limit=BUF_SIZE)
        except brotli.error as exc:
            raise CodecError(f"brotli decompression failed: {exc}") from exc
        if out:
            self.sink.write(out)

    def write(self, data: bytes) -> int:
        if self._decompressor is None:
            self.sink.write(data)
            return len(data)
        if data:
            self._fed = True
            # at most BUF_SIZE bytes of output per step, whatever the ratio
            self._process(data)
            while not self._decompressor.can_accept_more_data():
                self._process(b"")
        return len(data)

    def finish(self) -> None:
        if self._decompressor is not None and self._fed and not self._decompressor.is_finished():
            raise CodecError("brotli stream is incomplete")
        flush = getattr(self.sink, "flush", None)
        if flush is not None:
            flush()
