from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, NamedTuple


class WalkRecord(NamedTuple):
    absolute_path: Path
    is_directory: bool
    relative_suffix: Path


def walk(root: str | os.PathLike) -> Iterator[WalkRecord]:
    """Yield archive candidates under ``root`` in a stable order.

    The suffix of every record starts with the root's own name. Directories
    are reported before their contents; symlinked directories and special
    files are skipped. A filesystem root has no name to store and raises
    ValueError.
    """
    root_path = Path(root).absolute()
    name = Path(root).resolve().name
    if not name:
        raise ValueError(f"Cannot archive a filesystem root: {root}")
    base = Path(name)
    if not root_path.is_dir():
        yield WalkRecord(root_path, False, base)
        return
    yield WalkRecord(root_path, True, base)
    for dirpath, dirnames, filenames in os.walk(root_path):
        # prune symlink directories to avoid walking into them
        dirnames[:] = sorted(d for d in dirnames if not os.path.islink(os.path.join(dirpath, d)))
        rel = Path(os.path.relpath(dirpath, root_path))
        for d in dirnames:
            yield WalkRecord(Path(dirpath, d), True, base / rel / d)
        for f in sorted(filenames):
            full = Path(dirpath, f)
            if not full.is_file():
                continue
            yield WalkRecord(full, False, base / rel / f)
