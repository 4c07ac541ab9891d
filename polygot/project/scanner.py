"""
Source scanner for finding UI markup files.

This module provides utilities to:
- Recognise UI files by extension (.tsx, .jsx, .html)
- Read a single UI file
- Recursively scan a directory, skipping hidden and dependency directories
"""

from pathlib import Path
from typing import List, Union

from polygot.exceptions import InvalidInputError, PersistenceError
from polygot.logger import get_logger

logger = get_logger(__name__)

UI_EXTENSIONS = (".tsx", ".jsx", ".html")
SKIPPED_DIRECTORIES = {"node_modules"}


def _require_path(path: Union[str, Path], name: str) -> Path:
    if isinstance(path, Path):
        return path
    if not isinstance(path, str) or not path.strip():
        raise InvalidInputError(f"{name} must be a non-empty string")
    return Path(path)


def is_ui_file(file_path: Union[str, Path]) -> bool:
    """Check if a file has a UI markup extension (case-insensitive)."""
    return Path(file_path).suffix.lower() in UI_EXTENSIONS


def read_ui_file(file_path: Union[str, Path]) -> str:
    """
    Read a single UI file.

    Raises:
        InvalidInputError: If the path is empty or not a UI file
        PersistenceError: If the file cannot be read
    """
    path = _require_path(file_path, "file_path")

    if not is_ui_file(path):
        raise InvalidInputError(
            f"File {path} is not a valid UI file. Only {', '.join(UI_EXTENSIONS)} files are supported.",
            details={"path": str(path)}
        )

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceError(f"Error reading file {path}: {e}", details={"path": str(path)})


def _is_skipped_directory(path: Path) -> bool:
    return path.name in SKIPPED_DIRECTORIES or path.name.startswith(".")


def scan_ui_directory(dir_path: Union[str, Path]) -> List[Path]:
    """
    Recursively find UI files under a directory.

    Args:
        dir_path: Directory to scan

    Returns:
        Sorted list of UI file paths

    Raises:
        InvalidInputError: If the path is empty
        PersistenceError: If the directory cannot be listed
    """
    root = _require_path(dir_path, "dir_path")
    ui_files = []

    try:
        entries = sorted(root.iterdir())
    except OSError as e:
        raise PersistenceError(f"Error scanning directory {root}: {e}", details={"path": str(root)})

    for entry in entries:
        if entry.is_dir():
            if _is_skipped_directory(entry):
                continue
            ui_files.extend(scan_ui_directory(entry))
        elif entry.is_file() and is_ui_file(entry):
            ui_files.append(entry)

    return ui_files
