"""Staging directory helpers."""

import shutil
from pathlib import Path
from typing import List


def create_or_clean_directory(directory: Path) -> Path:
    """Ensure a directory exists and is empty.

    Args:
        directory: Directory to create or clean

    Returns:
        The directory path
    """
    directory = Path(directory)
    if directory.is_dir():
        for child in directory.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    else:
        if directory.exists():
            directory.unlink()
        directory.mkdir(parents=True)
    return directory


def list_all_files(directory: Path) -> List[Path]:
    """List every regular file under a directory, sorted by path."""
    return sorted(p for p in Path(directory).rglob("*") if p.is_file())


def relativize(root: Path, path: Path) -> str:
    """Path of a file relative to a root, in the platform's separators."""
    return str(Path(path).relative_to(Path(root)))


def to_store_key(relative_path: str) -> str:
    """Normalize a relative path into a store key.

    Backslashes become "/" and a leading or trailing separator is removed.
    """
    key = relative_path.replace("\\", "/")
    if key.startswith("/"):
        key = key[1:]
    if key.endswith("/"):
        key = key[:-1]
    return key


def staging_path(root: Path, key: str) -> Path:
    """Local path in the staging area for a store key.

    Raises:
        ValueError: If the key would resolve outside the staging root
    """
    root = Path(root).resolve()
    target = (root / key.lstrip("/")).resolve()
    if root not in target.parents:
        raise ValueError(f"Key resolves outside staging directory: {key}")
    return target
