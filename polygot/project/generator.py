"""
Locale file generator module.

This module handles writing the JSON files produced by a run:
- Atomic file writing (shared with the memory and glossary stores)
- Locale file loading and writing (flat original -> translated mapping)
"""

import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

import polygot.language_codes as lc
from polygot.exceptions import PersistenceError
from polygot.logger import get_logger

logger = get_logger(__name__)


def atomic_write_json(file_path: Union[str, Path], data: Any):
    """
    Write JSON to file atomically.

    Writes to a temporary file in the target directory, then renames it over
    the target. A failed write leaves the previous file untouched.

    Args:
        file_path: Target file path
        data: Data to write as JSON

    Raises:
        PersistenceError: If write fails
    """
    file_path = Path(file_path)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent,
            prefix=f".{file_path.stem}_",
            suffix=".json.tmp"
        )
    except OSError as e:
        raise PersistenceError(f"Cannot prepare write of {file_path}: {e}", details={"path": str(file_path)})

    temp_path = Path(temp_path)

    try:
        with open(temp_fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.write('\n')

        temp_path.replace(file_path)
        logger.debug(f"Atomic write successful: {file_path}")

    except (OSError, TypeError, ValueError) as e:
        if temp_path.exists():
            temp_path.unlink()
        raise PersistenceError(f"Atomic write failed for {file_path}: {e}", details={"path": str(file_path)})


def read_json_file(file_path: Union[str, Path]) -> Any:
    """
    Read a JSON document.

    Raises:
        FileNotFoundError: If the file does not exist (callers decide whether that is fine)
        PersistenceError: If the file cannot be read or parsed
    """
    file_path = Path(file_path)
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        raise
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Invalid JSON in {file_path}: {e}", details={"path": str(file_path)})
    except OSError as e:
        raise PersistenceError(f"Error reading {file_path}: {e}", details={"path": str(file_path)})


def get_locale_path(output_dir: Union[str, Path], language_code: str) -> Path:
    return Path(output_dir) / lc.get_language_file_name(language_code)


def load_locale_file(file_path: Union[str, Path]) -> Dict[str, str]:
    """
    Load an existing locale file.

    Returns:
        The flat mapping, or an empty dict if the file does not exist

    Raises:
        PersistenceError: If the file exists but is unreadable or not a JSON object
    """
    try:
        data = read_json_file(file_path)
    except FileNotFoundError:
        return {}

    if not isinstance(data, dict):
        raise PersistenceError(f"Locale file {file_path} is not a JSON object", details={"path": str(file_path)})

    return data


def write_locale_file(output_dir: Union[str, Path], language_code: str, translations: Dict[str, str]) -> Path:
    """
    Write one language's flat mapping to <output_dir>/<language_code>.json.

    Returns:
        Path of the written file

    Raises:
        PersistenceError: If the file cannot be written
    """
    output_path = get_locale_path(output_dir, language_code)
    logger.info(f"Writing {len(translations)} entries to {output_path}")
    atomic_write_json(output_path, translations)
    return output_path
