import os
from pathlib import Path
from typing import Callable


def format_file_size(size_in_bytes: int) -> str:
    """Format bytes to a human-readable string."""
    if size_in_bytes < 1024:
        return f"{size_in_bytes} B"
    elif size_in_bytes < 1024 * 1024:
        return f"{size_in_bytes / 1024:.1f} KB"
    elif size_in_bytes < 1024 * 1024 * 1024:
        return f"{size_in_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_in_bytes / (1024 * 1024 * 1024):.2f} GB"


def has_read_write_access(path: Path) -> bool:
    return os.access(path, os.R_OK | os.W_OK)


def files_matching(directory: Path, condition: Callable[[Path], bool]) -> list[Path]:
    """
    List regular files directly inside ``directory`` that satisfy ``condition``.

    A missing directory yields an empty list.
    """
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and condition(p))
