"""
Project module - Source and locale file handling

This module provides:
- scanner: UI source file discovery and reading
- generator: Locale file writing and atomic JSON writes
"""

from polygot.project.scanner import (
    UI_EXTENSIONS,
    is_ui_file,
    read_ui_file,
    scan_ui_directory,
)

from polygot.project.generator import (
    atomic_write_json,
    load_locale_file,
    write_locale_file,
)
