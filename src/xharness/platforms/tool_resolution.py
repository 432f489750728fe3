"""Locate external executables such as adb, mlaunch or JS engines."""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def resolve_executable(name_or_path: str | Path, search_path: str) -> Path | None:
    """Resolve a bare name through ``search_path``; check explicit paths directly."""
    candidate = Path(name_or_path)
    if candidate.parent != Path(".") or candidate.is_absolute():
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return candidate
        return None
    found = shutil.which(str(name_or_path), path=search_path or None)
    return Path(found) if found else None
