"""
Translation Validation Module

Checks that a translation kept the markers it must carry over verbatim:
- Glossary placeholder tokens (__GLOSSARY_N__)
- Formatting variables ({name}, ${value}, %s, %d)

Violations are reported, not raised; the caller decides what to do.
"""

import re
from typing import Dict, List, Set

from polygot.logger import get_logger
from polygot.protection.terms import find_placeholders

logger = get_logger(__name__)

VARIABLE_PATTERNS = [
    r'\$\{[^}]+\}',
    r'\{\{?[a-zA-Z0-9_.]+\}?\}',
    r'%[sd]',
]


def extract_variables(text: str, variable_patterns: List[str] = None) -> Set[str]:
    """
    Extract all formatting variables from text.

    Args:
        text: Text to extract variables from
        variable_patterns: Regex patterns to match variables (default: VARIABLE_PATTERNS)

    Returns:
        Set of variable strings found in text
    """
    variables = set()
    for pattern in variable_patterns or VARIABLE_PATTERNS:
        try:
            variables.update(re.findall(pattern, text))
        except re.error:
            continue
    return variables


def find_missing_placeholders(sent: str, translated: str) -> Set[str]:
    """Glossary placeholders present in the sent text but absent from the translation."""
    return find_placeholders(sent) - find_placeholders(translated)


def find_missing_variables(source: str, translation: str, variable_patterns: List[str] = None) -> Set[str]:
    return extract_variables(source, variable_patterns) - extract_variables(translation, variable_patterns)


def validate_chunk_result(sent_to_original: Dict[str, str], translations: Dict[str, str],
                          preserve_formatting: bool = True) -> Dict[str, List[str]]:
    """
    Check a chunk's translations and log what was lost.

    Args:
        sent_to_original: Text as sent to the API -> original input string
        translations: Text as sent -> translation returned
        preserve_formatting: Also check formatting variables

    Returns:
        Mapping of original string -> list of lost markers (only strings with losses)
    """
    problems: Dict[str, List[str]] = {}

    for sent, original in sent_to_original.items():
        translated = translations.get(sent)
        if not isinstance(translated, str):
            continue

        lost = find_missing_placeholders(sent, translated)
        if preserve_formatting:
            lost |= find_missing_variables(sent, translated)

        if lost:
            problems[original] = sorted(lost)
            logger.warning(f"Translation of {original[:50]!r} lost markers: {', '.join(sorted(lost))}")

    return problems
