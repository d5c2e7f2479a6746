from __future__ import annotations

import os
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from Cryptodome.Cipher import AES
from Cryptodome.Protocol.KDF import scrypt as _scrypt

from .constants import (
    DEFAULT_SCRYPT_LOG_N,
    DEFAULT_SCRYPT_P,
    DEFAULT_SCRYPT_R,
    KEY_SIZE,
    MAX_CHUNK_PLAINTEXT,
    NONCE_SIZE,
    SALT_SIZE,
    TAG_SIZE,
)
from .errors import DecryptionError, EncryptionError
from .records import read_chunk_frame, write_chunk_frame, write_terminator


@dataclass(frozen=True)
class ScryptParams:
    log_n: int = DEFAULT_SCRYPT_LOG_N
    r: int = DEFAULT_SCRYPT_R
    p: int = DEFAULT_SCRYPT_P

    def __post_init__(self):
        self.validate()

    @property
    def n(self) -> int:
        return 1 << self.log_n

    def validate(self) -> None:
        """Reject parameter sets scrypt cannot run with (RFC 7914 limits)."""
        if not 1 <= self.log_n <= 63:
            raise ValueError(f"scrypt log_n must be in 1..63, got {self.log_n}")
        if not 1 <= self.r <= 0xFFFFFFFF or not 1 <= self.p <= 0xFFFFFFFF:
            raise ValueError(f"scrypt r and p must be positive u32 values, got r={self.r} p={self.p}")
        if self.r * self.p >= 1 << 30:
            raise ValueError(f"scrypt r*p must be below 2^30, got {self.r * self.p}")
        if self.log_n >= 16 * self.r:
            raise ValueError(f"scrypt N must be below 2^(16*r), got log_n={self.log_n} r={self.r}")


class SecretBuffer:
    """Mutable byte buffer that is zeroed when released.

    Use as a context manager; the buffer is also wiped on ``wipe()`` and when
    the object is garbage collected.
    """

    __slots__ = ("_buf",)

    def __init__(self, data: Union[bytes, bytearray, memoryview, str]):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buf = bytearray(data)

    @property
    def value(self) -> bytearray:
        return self._buf

    def wipe(self) -> None:
        buf = getattr(self, "_buf", None)
        if buf:
            buf[:] = bytes(len(buf))

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.wipe()

    def __del__(self):
        self.wipe()


def derive_key(password: str, salt: bytes, params: ScryptParams) -> SecretBuffer:
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes")
    with SecretBuffer(password) as pw:
        raw = _scrypt(pw.value, salt, KEY_SIZE, N=params.n, r=params.r, p=params.p)
    key = SecretBuffer(raw)
    del raw
    return key


class Cipher:
    """AES-256-GCM chunk sealer keyed by scrypt(password, salt)."""

    def __init__(self, password: str, salt: bytes, params: ScryptParams):
        self._key: Optional[SecretBuffer] = derive_key(password, salt, params)

    def _aes(self, nonce: bytes):
        if self._key is None:
            raise RuntimeError("Cipher is closed")
        return AES.new(self._key.value, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)

    def seal(self, nonce: bytes, plaintext: bytes) -> bytes:
        try:
            ciphertext, tag = self._aes(nonce).encrypt_and_digest(plaintext)
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"AES-GCM seal failed: {exc}") from exc
        return ciphertext + tag

    def open(self, nonce: bytes, sealed: bytes) -> bytes:
        if len(sealed) < TAG_SIZE:
            raise DecryptionError("Chunk shorter than authentication tag")
        try:
            return self._aes(nonce).decrypt_and_verify(sealed[:-TAG_SIZE], sealed[-TAG_SIZE:])
        except ValueError as exc:
            raise DecryptionError("Decryption failed: wrong password or corrupted data") from exc

    def write_chunk(self, f: BinaryIO, plaintext: bytes) -> None:
        """Seal ``plaintext`` as one chunk; empty plaintext writes the terminator."""
        if not plaintext:
            write_terminator(f)
            return
        if len(plaintext) > MAX_CHUNK_PLAINTEXT:
            raise ValueError(f"chunk plaintext too large: {len(plaintext)} > {MAX_CHUNK_PLAINTEXT}")
        nonce = os.urandom(NONCE_SIZE)
        write_chunk_frame(f, nonce, self.seal(nonce, plaintext))

    def read_chunk(self, f: BinaryIO) -> Optional[bytes]:
        """Return the next chunk's plaintext.

        None means the input ended cleanly; ``b""`` is the terminator.
        """
        frame = read_chunk_frame(f)
        if frame is None:
            return None
        nonce, sealed = frame
        if not sealed:
            return b""
        return self.open(nonce, sealed)

    def close(self) -> None:
        if self._key is not None:
            self._key.wipe()
            self._key = None

    def __enter__(self) -> "Cipher":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
