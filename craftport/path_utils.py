"""
path_utils.py - Shared path utilities for craftport

Flat directory listing and folder creation used by the migration, the asset
cache and the output validator.
"""

from pathlib import Path
from typing import Iterable, List, Optional


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing; return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def list_files_in_folder(folder: Path, extensions: Optional[Iterable[str]] = None) -> List[Path]:
    """
    List regular files directly inside a folder, sorted by name.

    Args:
        folder: Directory to list (missing directories yield an empty list)
        extensions: Optional extensions without the dot, e.g. ["md"].
                    Matching is case-insensitive.

    Returns:
        Sorted list of file paths
    """
    if not folder.is_dir():
        return []

    wanted = None
    if extensions is not None:
        wanted = {ext.lower().lstrip(".") for ext in extensions}

    files = []
    for entry in folder.iterdir():
        if not entry.is_file():
            continue
        if wanted is not None and entry.suffix.lower().lstrip(".") not in wanted:
            continue
        files.append(entry)
    return sorted(files)


def file_ext(path: Path) -> str:
    """Extension without the leading dot ('' when there is none)."""
    return path.suffix.lstrip(".")


def relative_posix(path: Path, start: Path) -> str:
    """Path relative to start, always with forward slashes (for markdown)."""
    return path.relative_to(start).as_posix()
