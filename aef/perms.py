from __future__ import annotations

import os
import stat
import sys
from typing import Optional

_SUPPORTED = os.name != "nt"


def get_permissions(path: str | os.PathLike) -> Optional[int]:
    """Permission bits of ``path``; None where the platform has no such concept."""
    if not _SUPPORTED:
        return None
    return stat.S_IMODE(os.stat(path).st_mode)


def set_permissions(path: str | os.PathLike, mode: Optional[int]) -> None:
    """Best-effort chmod that never raises.

    Args:
        path: Destination filesystem path to update.
        mode: POSIX mode to apply (e.g., 0o755). If None, no change is made.
    """
    if mode is None or not _SUPPORTED:
        return
    try:
        os.chmod(path, mode)
    except OSError as exc:
        print(f"Warning: failed to set mode on {path}: {exc}", file=sys.stderr)
