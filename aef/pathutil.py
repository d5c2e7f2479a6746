from __future__ import annotations

import os
import unicodedata
from pathlib import Path, PurePath
from typing import Tuple, Union

from .constants import PATH_SEP
from .errors import EmptyPathError, InvalidPathError


PathInput = Union[str, bytes, "os.PathLike[str]"]

_SEPARATOR_CATEGORIES = ("Zs", "Zl", "Zp")


def check_component(component: str) -> bool:
    """Return True when ``component`` may be stored as a path component.

    Rejects components that are blank after trimming, or that contain a
    backslash, a control character, or any Unicode separator other than a
    plain space.
    """
    if not component.strip():
        return False
    for ch in component:
        if ch == "\\":
            return False
        cat = unicodedata.category(ch)
        if cat == "Cc":
            return False
        if cat in _SEPARATOR_CATEGORIES and ch != " ":
            return False
    try:
        component.encode("utf-8")
    except UnicodeEncodeError:  # lone surrogates from undecodable file names
        return False
    return True


class RelativePath:
    """A sanitized, platform-independent archive member path.

    Construction resolves ``..`` lexically (popping past the root is a no-op),
    drops ``.``, roots and drive prefixes, and NFC-normalizes every component.
    The serialized form joins components with ``\\x1f``.
    """

    __slots__ = ("_components",)

    def __init__(self, path: PathInput):
        if isinstance(path, bytes):
            try:
                path = path.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise InvalidPathError("Path is not valid UTF-8") from exc
        pure = PurePath(path)
        parts = pure.parts[1:] if pure.anchor else pure.parts
        components = []
        for part in parts:
            if part == "..":
                if components:
                    components.pop()
                continue
            if part == ".":
                continue
            if not check_component(part):
                raise InvalidPathError(f"Invalid path component: {part!r}")
            components.append(unicodedata.normalize("NFC", part))
        if not components:
            raise EmptyPathError(f"Path is empty after normalization: {str(path)!r}")
        self._components: Tuple[str, ...] = tuple(components)

    @classmethod
    def from_bytes(cls, data: bytes) -> "RelativePath":
        """Rebuild a path read from an archive, re-running full validation."""
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidPathError("Stored path is not valid UTF-8") from exc
        return cls(text.replace(PATH_SEP, os.sep))

    @property
    def components(self) -> Tuple[str, ...]:
        return self._components

    def to_bytes(self) -> bytes:
        return PATH_SEP.join(self._components).encode("utf-8")

    def to_path(self) -> Path:
        return Path(*self._components)

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __str__(self) -> str:
        return os.sep.join(self._components)

    def __repr__(self) -> str:
        return f"RelativePath({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelativePath):
            return NotImplemented
        return self._components == other._components

    def __hash__(self) -> int:
        return hash(self._components)
