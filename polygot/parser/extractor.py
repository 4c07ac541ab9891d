"""
String extraction for JSX/TSX and HTML sources.

Finds user-visible strings with regular expressions rather than a real
parser:
- Text between tags
- String literals inside {...} expressions (static parts of templates too)
- Values of visible attributes (title, alt, placeholder, aria-*, ...)

Strings inside excluded subtrees are dropped (see parser/exclusion.py).
"""

import re
from typing import Iterable, List, Optional, Set, Tuple

from polygot.logger import get_logger
from polygot.parser.exclusion import ExclusionMatcher, parse_exclude_rules

logger = get_logger(__name__)

DEFAULT_VISIBLE_ATTRIBUTES = ["title", "alt", "placeholder"]

BLOCK_COMMENT_PATTERN = re.compile(r'/\*[\s\S]*?\*/')
LINE_COMMENT_PATTERN = re.compile(r'//.*')

TEXT_RUN_PATTERN = re.compile(r'>([^<>{}]+)<')
INLINE_SELF_CLOSING_PATTERN = re.compile(r'<[^>]+\/>')
EXPRESSION_PATTERN = re.compile(r'\{([^}]+)\}')

DOUBLE_QUOTED_PATTERN = re.compile(r'"([^"\\]*(\\.[^"\\]*)*)"')
SINGLE_QUOTED_PATTERN = re.compile(r"'([^'\\]*(\\.[^'\\]*)*)'")
BACKTICK_PATTERN = re.compile(r'`([^`\\]*(\\.[^`\\]*)*)`')
TEMPLATE_PATTERN = re.compile(r'`([^`]*)`')
INTERPOLATION_PATTERN = re.compile(r'\$\{[^}]+\}')

ATTR_ESCAPE_PATTERN = re.compile(r'[.+?^${}()|\[\]\\]')
WHITESPACE_ONLY_PATTERN = re.compile(r'^\s*$')
PUNCTUATION_ONLY_PATTERN = re.compile(r'^[{}()\[\];,]+$')

# Decoded in this order
HTML_ENTITIES = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
}


def strip_comments(code: str) -> str:
    """Remove block and line comments so commented-out markup is not extracted."""
    code = BLOCK_COMMENT_PATTERN.sub("", code)
    return LINE_COMMENT_PATTERN.sub("", code)


def build_attribute_pattern(visible_attributes: Iterable[str]) -> re.Pattern:
    """
    Build the regex matching name="value" / name='value' for the attributes.

    A '*' in an attribute name is a wildcard for [a-zA-Z0-9-]*, so 'aria*'
    matches aria-label, aria-description, ...
    """
    alternatives = []
    for attr in visible_attributes:
        escaped = ATTR_ESCAPE_PATTERN.sub(lambda m: "\\" + m.group(0), attr)
        alternatives.append(escaped.replace("*", r"[a-zA-Z0-9\-]*"))

    attr_pattern = f"(?:{'|'.join(alternatives)})"
    return re.compile(rf'({attr_pattern})\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)


def decode_entities(text: str) -> str:
    for entity, char in HTML_ENTITIES.items():
        text = text.replace(entity, char)
    return text


def is_translatable(text: str) -> bool:
    """Reject empty, whitespace-only and bracket/punctuation-only strings."""
    return (
        len(text) > 0
        and not WHITESPACE_ONLY_PATTERN.match(text)
        and not PUNCTUATION_ONLY_PATTERN.match(text)
    )


def _extract_text_runs(code: str, matcher: ExclusionMatcher, strings: Set[str]):
    for match in TEXT_RUN_PATTERN.finditer(code):
        raw_text = match.group(1)

        for segment in INLINE_SELF_CLOSING_PATTERN.split(raw_text):
            text = segment.strip()
            if text and not WHITESPACE_ONLY_PATTERN.match(text) and not matcher.is_excluded(match.start()):
                strings.add(text)


def _extract_expression_literals(code: str, matcher: ExclusionMatcher, strings: Set[str]):
    for match in EXPRESSION_PATTERN.finditer(code):
        if matcher.is_excluded(match.start()):
            continue

        expr = match.group(1)

        for pattern in (DOUBLE_QUOTED_PATTERN, SINGLE_QUOTED_PATTERN, BACKTICK_PATTERN):
            for literal in pattern.finditer(expr):
                text = literal.group(1).strip()
                if text:
                    strings.add(text)

        # Static parts of template literals, interpolations dropped
        for template in TEMPLATE_PATTERN.finditer(expr):
            for part in INTERPOLATION_PATTERN.split(template.group(1)):
                cleaned = part.strip()
                if cleaned:
                    strings.add(cleaned)


def _extract_attributes(code: str, visible_attributes: List[str], matcher: ExclusionMatcher,
                        strings: Set[str]):
    if not visible_attributes:
        return

    pattern = build_attribute_pattern(visible_attributes)
    for match in pattern.finditer(code):
        text = match.group(2).strip()
        if text and not matcher.is_excluded(match.start()):
            strings.add(text)


def extract_strings(
    code: str,
    visible_attributes: Optional[List[str]] = None,
    exclude_tags: Optional[List[str]] = None,
) -> Set[str]:
    """
    Extract user-visible strings from JSX/TSX or HTML code.

    The result depends only on the arguments; parsing the same code twice
    yields the same set.

    Args:
        code: The JSX/TSX or HTML source
        visible_attributes: Attribute names to extract values from
            (default: title, alt, placeholder). '*' acts as a wildcard.
        exclude_tags: Tags/selectors whose subtrees are skipped
            (e.g. ['script', 'style', 'h1.container', 'div#header'])

    Returns:
        Set of unique strings

    Example:
        >>> sorted(extract_strings('<div title="Tip"><p>Hello</p></div>'))
        ['Hello', 'Tip']
    """
    if visible_attributes is None:
        visible_attributes = DEFAULT_VISIBLE_ATTRIBUTES

    code = strip_comments(code)
    matcher = ExclusionMatcher(code, parse_exclude_rules(exclude_tags))

    strings: Set[str] = set()
    _extract_text_runs(code, matcher, strings)
    _extract_expression_literals(code, matcher, strings)
    _extract_attributes(code, visible_attributes, matcher, strings)

    return {decoded for decoded in (decode_entities(s) for s in strings) if is_translatable(decoded)}


def filter_skip_patterns(strings: Iterable[str], patterns: Optional[List[str]] = None) -> Tuple[List[str], List[str]]:
    """
    Split strings by case-insensitive regex skip patterns.

    Args:
        strings: Candidate strings
        patterns: Regex strings; a string matching any of them is skipped

    Returns:
        Tuple of (translatable_strings, skipped_strings)
    """
    strings = list(strings)
    if not patterns:
        return strings, []

    regexes = []
    for pattern in patterns:
        try:
            regexes.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            logger.warning(f"Ignoring invalid skip pattern {pattern!r}: {e}")

    translatable = []
    skipped = []
    for text in strings:
        if any(regex.search(text) for regex in regexes):
            skipped.append(text)
        else:
            translatable.append(text)

    return translatable, skipped
