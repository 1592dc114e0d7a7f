"""Zip extraction with path-traversal protection."""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path

from tfbox.errors import PathTraversalError


def safe_destination(dest_dir: Path, entry_name: str) -> Path:
    """Resolve ``entry_name`` under ``dest_dir``.

    Raises ``PathTraversalError`` if the entry would land outside
    ``dest_dir`` (``../`` segments, absolute names, symlinked parents).
    """
    root = dest_dir.resolve()
    target = (root / entry_name).resolve()
    if not target.is_relative_to(root):
        raise PathTraversalError(entry_name)
    return target


def extract_zip(archive: Path, dest_dir: Path) -> list[Path]:
    """Extract ``archive`` into ``dest_dir`` and return the written file paths.

    Every entry is validated before anything is written, so a rejected
    archive leaves ``dest_dir`` untouched.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(archive) as zf:
        members = [(info, safe_destination(dest_dir, info.filename)) for info in zf.infolist()]

        written: list[Path] = []
        for info, target in members:
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
            written.append(target)
    return written
