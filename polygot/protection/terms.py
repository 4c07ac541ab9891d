"""
Glossary Placeholder Module - Core Functions

This module handles swapping glossary terms for placeholder tokens before a
string is sent for translation, and swapping the tokens back afterwards.

For glossary storage and term matching, see protection/glossary.py
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Sequence, Set, Tuple

from polygot.logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER_TEMPLATE = "__GLOSSARY_{index}__"
PLACEHOLDER_PATTERN = re.compile(r'__GLOSSARY_\d+__')


@dataclass
class Span:
    """A region of text to replace: [start, start + len(text))."""
    start: int
    text: str

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def make_placeholder(index: int) -> str:
    return PLACEHOLDER_TEMPLATE.format(index=index)


def select_non_overlapping(spans: Sequence[Span]) -> List[Span]:
    """
    Order spans for right-to-left replacement and drop overlapping ones.

    Spans are sorted by start descending, then by length descending, so at
    equal start the longest wins. A span reaching into an already accepted
    span is dropped.
    """
    ordered = sorted(spans, key=lambda s: (s.start, len(s.text)), reverse=True)

    accepted: List[Span] = []
    boundary = None
    for span in ordered:
        if boundary is not None and span.end > boundary:
            continue
        accepted.append(span)
        boundary = span.start

    return accepted


def apply_placeholders(text: str, spans: Sequence[Span], start_index: int = 0) -> Tuple[str, List[Tuple[str, Span]], int]:
    """
    Replace spans of text with placeholder tokens.

    Replacement runs from the end of the string to the start so earlier
    offsets stay valid after each splice.

    Args:
        text: The text to protect
        spans: Regions to replace
        start_index: First placeholder number to use

    Returns:
        Tuple of (protected_text, [(placeholder, span), ...], next_index)

    Example:
        >>> apply_placeholders("Welcome to Acme", [Span(11, "Acme")])
        ('Welcome to __GLOSSARY_0__', [('__GLOSSARY_0__', Span(start=11, text='Acme'))], 1)
    """
    if not spans:
        return text, [], start_index

    protected_text = text
    replaced = []
    index = start_index

    for span in select_non_overlapping(spans):
        placeholder = make_placeholder(index)
        protected_text = protected_text[:span.start] + placeholder + protected_text[span.end:]
        replaced.append((placeholder, span))
        index += 1

    return protected_text, replaced, index


def restore_placeholders(text: str, placeholder_map: Dict[str, str]) -> str:
    """
    Restore final terms from placeholders.

    Every occurrence of each placeholder is replaced, not just the first.

    Args:
        text: Text with placeholders
        placeholder_map: Mapping of placeholders to final term translations

    Returns:
        Text with placeholders restored
    """
    if not placeholder_map:
        return text

    restored_text = text

    for placeholder, final_term in placeholder_map.items():
        if placeholder in restored_text:
            restored_text = restored_text.replace(placeholder, final_term)

    return restored_text


def find_placeholders(text: str) -> Set[str]:
    """Return the placeholder tokens present in text."""
    return set(PLACEHOLDER_PATTERN.findall(text or ""))
