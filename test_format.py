from __future__ import annotations

import io
import struct
import unittest

from aef.constants import HEADER_MAGIC, MAX_CHUNK_PLAINTEXT, NONCE_SIZE, SALT_SIZE, TAG_SIZE
from aef.encryption import Cipher, ScryptParams, SecretBuffer, derive_key
from aef.entry import FileEntry, FileType
from aef.errors import (
    CipherError,
    DecryptionError,
    EntryError,
    HeaderError,
    InvalidPathError,
    TruncatedError,
)
from aef.header import HEADER_SIZE, FileHeader
from aef.pathutil import RelativePath


FAST = ScryptParams(log_n=4, r=1, p=1)
ZERO_SALT = b"\x00" * SALT_SIZE


def _cipher(password: str = "secret", salt: bytes = ZERO_SALT) -> Cipher:
    return Cipher(password, salt, FAST)


class ScryptParamsTests(unittest.TestCase):
    def test_defaults(self):
        p = ScryptParams()
        self.assertEqual((p.log_n, p.r, p.p), (20, 8, 1))
        self.assertEqual(p.n, 1 << 20)

    def test_invalid_combinations(self):
        for log_n, r, p in ((0, 8, 1), (64, 8, 1), (10, 0, 1), (10, 8, 0), (10, 1 << 15, 1 << 15), (16, 1, 1)):
            with self.subTest(log_n=log_n, r=r, p=p):
                with self.assertRaises(ValueError):
                    ScryptParams(log_n, r, p)

    def test_derivation_is_deterministic(self):
        a = derive_key("pw", ZERO_SALT, FAST)
        b = derive_key("pw", ZERO_SALT, FAST)
        c = derive_key("pw", b"\x01" * SALT_SIZE, FAST)
        self.assertEqual(len(a), 32)
        self.assertEqual(a.value, b.value)
        self.assertNotEqual(a.value, c.value)


class SecretBufferTests(unittest.TestCase):
    def test_wiped_on_exit(self):
        buf = SecretBuffer(b"key material")
        with buf:
            self.assertEqual(bytes(buf.value), b"key material")
        self.assertEqual(buf.value, bytearray(len(b"key material")))

    def test_wiped_on_error(self):
        buf = SecretBuffer("p\u00e4ssword")
        with self.assertRaises(RuntimeError):
            with buf:
                raise RuntimeError("boom")
        self.assertFalse(any(buf.value))

    def test_cipher_close_drops_key(self):
        c = _cipher()
        key = c._key
        c.close()
        self.assertIsNone(c._key)
        self.assertFalse(any(key.value))
        with self.assertRaises(RuntimeError):
            c.write_chunk(io.BytesIO(), b"x")


class ChunkFramingTests(unittest.TestCase):
    def test_empty_payload_is_terminator(self):
        out = io.BytesIO()
        _cipher().write_chunk(out, b"")
        self.assertEqual(out.getvalue(), b"\x00\x00")

    def test_chunk_length(self):
        c = _cipher()
        for n in (1, 100, 8192, MAX_CHUNK_PLAINTEXT):
            with self.subTest(n=n):
                out = io.BytesIO()
                c.write_chunk(out, b"a" * n)
                raw = out.getvalue()
                self.assertEqual(len(raw), 2 + NONCE_SIZE + n + TAG_SIZE)
                self.assertEqual(struct.unpack(">H", raw[:2])[0], n + TAG_SIZE)

    def test_oversized_plaintext_rejected(self):
        with self.assertRaises(ValueError):
            _cipher().write_chunk(io.BytesIO(), b"a" * (MAX_CHUNK_PLAINTEXT + 1))

    def test_fresh_nonce_per_chunk(self):
        c = _cipher()
        out = io.BytesIO()
        c.write_chunk(out, b"same")
        c.write_chunk(out, b"same")
        raw = out.getvalue()
        size = 2 + NONCE_SIZE + 4 + TAG_SIZE
        self.assertNotEqual(raw[2:2 + NONCE_SIZE], raw[size + 2:size + 2 + NONCE_SIZE])
        self.assertNotEqual(raw[:size], raw[size:])

    def test_read_sequence(self):
        c = _cipher()
        out = io.BytesIO()
        c.write_chunk(out, b"first")
        c.write_chunk(out, b"")
        c.write_chunk(out, b"second")
        src = io.BytesIO(out.getvalue())
        self.assertEqual(c.read_chunk(src), b"first")
        self.assertEqual(c.read_chunk(src), b"")
        self.assertEqual(c.read_chunk(src), b"second")
        self.assertIsNone(c.read_chunk(src))

    def test_wrong_password(self):
        out = io.BytesIO()
        _cipher("right").write_chunk(out, b"payload")
        with self.assertRaises(DecryptionError):
            _cipher("wrong").read_chunk(io.BytesIO(out.getvalue()))

    def test_tampering_detected(self):
        c = _cipher()
        out = io.BytesIO()
        c.write_chunk(out, b"payload bytes")
        raw = out.getvalue()
        for pos in range(2, len(raw)):
            with self.subTest(pos=pos):
                bad = bytearray(raw)
                bad[pos] ^= 0x01
                with self.assertRaises(DecryptionError):
                    c.read_chunk(io.BytesIO(bytes(bad)))

    def test_short_sealed_payload(self):
        raw = struct.pack(">H", 4) + b"\x00" * NONCE_SIZE + b"abcd"
        with self.assertRaises(CipherError):
            _cipher().read_chunk(io.BytesIO(raw))

    def test_truncation(self):
        c = _cipher()
        out = io.BytesIO()
        c.write_chunk(out, b"payload")
        raw = out.getvalue()
        for cut in (1, 5, len(raw) - 1):
            with self.subTest(cut=cut):
                with self.assertRaises(TruncatedError):
                    c.read_chunk(io.BytesIO(raw[:cut]))


class FileHeaderTests(unittest.TestCase):
    def test_concrete_layout(self):
        hdr = FileHeader(salt=ZERO_SALT, params=ScryptParams(log_n=10, r=8, p=1), compress=False)
        raw = hdr.pack()
        expected = HEADER_MAGIC + ZERO_SALT + bytes([10]) + (8).to_bytes(4, "big") + (1).to_bytes(4, "big") + b"\x00"
        self.assertEqual(raw, expected)
        self.assertEqual(len(raw), 4 + 64 + 1 + 4 + 4 + 1)
        self.assertEqual(HEADER_SIZE, len(raw))
        self.assertEqual(raw[:4], b"\xffAEF")

    def test_roundtrip(self):
        hdr = FileHeader(salt=bytes(range(64)), params=ScryptParams(log_n=14, r=8, p=2), compress=True)
        out = io.BytesIO()
        hdr.write_to(out)
        self.assertEqual(out.getvalue()[-1], 1)
        self.assertEqual(FileHeader.read_from(io.BytesIO(out.getvalue())), hdr)

    def _raw(self, log_n=10, r=8, p=1, flag=0) -> bytes:
        return HEADER_MAGIC + ZERO_SALT + struct.pack(">BIIB", log_n, r, p, flag)

    def test_bad_magic(self):
        with self.assertRaises(HeaderError):
            FileHeader.read_from(io.BytesIO(b"PK\x03\x04" + self._raw()[4:]))
        with self.assertRaises(HeaderError):
            FileHeader.read_from(io.BytesIO(b""))

    def test_invalid_params(self):
        for kwargs in ({"log_n": 0}, {"r": 0}, {"p": 0}, {"r": 1 << 16, "p": 1 << 16}):
            with self.subTest(**kwargs):
                with self.assertRaises(HeaderError):
                    FileHeader.read_from(io.BytesIO(self._raw(**kwargs)))

    def test_invalid_compress_flag(self):
        with self.assertRaises(HeaderError):
            FileHeader.read_from(io.BytesIO(self._raw(flag=2)))

    def test_truncated(self):
        with self.assertRaises(TruncatedError):
            FileHeader.read_from(io.BytesIO(self._raw()[:40]))


class FileEntryTests(unittest.TestCase):
    def test_pack_layout(self):
        entry = FileEntry(FileType.FILE, RelativePath("docs/a.txt"), 0o644)
        self.assertEqual(entry.pack(), b"\x01" + (0o644).to_bytes(4, "big") + b"docs\x1fa.txt")

    def test_none_permissions_sentinel(self):
        entry = FileEntry(FileType.DIRECTORY, RelativePath("d"))
        raw = entry.pack()
        self.assertEqual(raw, b"\x00\x00\x00\x00\x00d")
        self.assertIsNone(FileEntry.unpack(raw).permissions)
        # a real mask of 0 shares the sentinel encoding
        self.assertIsNone(FileEntry.unpack(FileEntry(FileType.FILE, RelativePath("f"), 0).pack()).permissions)

    def test_roundtrip(self):
        entry = FileEntry(FileType.FILE, RelativePath("a/b/c.bin"), 0o100755)
        back = FileEntry.unpack(entry.pack())
        self.assertEqual(back, entry)
        self.assertTrue(back.filetype.is_file)

    def test_too_short(self):
        for raw in (b"", b"\x01", b"\x01\x00\x00\x00\x00"):
            with self.subTest(raw=raw):
                with self.assertRaises(EntryError):
                    FileEntry.unpack(raw)

    def test_unknown_type(self):
        with self.assertRaises(EntryError):
            FileEntry.unpack(b"\x07\x00\x00\x00\x00name")

    def test_path_errors_propagate(self):
        with self.assertRaises(InvalidPathError):
            FileEntry.unpack(b"\x01\x00\x00\x00\x00a\x00b")

    def test_permissions_range(self):
        with self.assertRaises(ValueError):
            FileEntry(FileType.FILE, RelativePath("f"), 1 << 32).pack()


if __name__ == "__main__":
    unittest.main()
