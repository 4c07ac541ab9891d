"""
Parser module - String extraction from UI markup

This module provides:
- exclusion: Selector rules and the tag-stack exclusion matcher
- extractor: Regex-based extraction of visible strings, skip-pattern filter
"""

from polygot.parser.exclusion import (
    ExcludeRule,
    ExclusionMatcher,
    is_excluded,
    parse_exclude_rules,
)

from polygot.parser.extractor import (
    DEFAULT_VISIBLE_ATTRIBUTES,
    extract_strings,
    filter_skip_patterns,
)
