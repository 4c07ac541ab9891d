"""
Locale Runtime

Applies a locale file to displayed content. The state lives on a
LocaleRuntime instance:
- current_language
- translation_table (original string -> translated string)
- original_content: index of every translatable piece of content seen

Content is referenced by opaque handles (a DOM node, a widget, a row id...).
Pushing values back to the UI is delegated to an injected render callback,
and loading a table to an injected loader, so no UI or browser state is
touched here.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple, Union

from polygot.config import DEFAULT_SOURCE_LANGUAGE
from polygot.exceptions import PolygotError
from polygot.logger import get_logger
from polygot.project.generator import get_locale_path, load_locale_file

logger = get_logger(__name__)

LEADING_SPACE_PATTERN = re.compile(r'^\s*')
TRAILING_SPACE_PATTERN = re.compile(r'\s*$')


@dataclass(frozen=True)
class TextNode:
    """A text node; original keeps its surrounding whitespace."""
    ref: Hashable
    original: str

    @property
    def key(self) -> Tuple:
        return ("text", self.ref)


@dataclass(frozen=True)
class Attribute:
    """An attribute value (title, alt, placeholder, ...) of an element."""
    element_ref: Hashable
    name: str
    original: str

    @property
    def key(self) -> Tuple:
        return ("attribute", self.element_ref, self.name)


ContentRef = Union[TextNode, Attribute]


@dataclass
class ApplyResult:
    """Values to display per content key, with counts."""
    values: Dict[Tuple, str] = field(default_factory=dict)
    translated: int = 0
    fallbacks: int = 0
    missing: List[str] = field(default_factory=list)


def _translate_text_node(node: TextNode, table: Dict[str, str]) -> Optional[str]:
    trimmed = node.original.strip()
    translation = table.get(trimmed)
    if not translation:
        return None

    leading = LEADING_SPACE_PATTERN.match(node.original).group(0)
    trailing = TRAILING_SPACE_PATTERN.search(node.original).group(0)
    return leading + translation + trailing


def _translate_attribute(attribute: Attribute, table: Dict[str, str]) -> Optional[str]:
    return table.get(attribute.original) or None


def apply_translations(index: Iterable[ContentRef], table: Dict[str, str]) -> ApplyResult:
    """
    Compute the displayed value of every indexed piece of content.

    Content without a translation falls back to its original value.

    Example:
        >>> result = apply_translations([TextNode("n1", "  Hello ")], {"Hello": "Hola"})
        >>> result.values[("text", "n1")]
        '  Hola '
    """
    result = ApplyResult()

    for content in index:
        if isinstance(content, TextNode):
            value = _translate_text_node(content, table)
            label = content.original.strip()
        elif isinstance(content, Attribute):
            value = _translate_attribute(content, table)
            label = content.original
        else:
            raise TypeError(f"Unknown content reference: {content!r}")

        if value is None:
            result.values[content.key] = content.original
            result.fallbacks += 1
            if label:
                result.missing.append(label)
        else:
            result.values[content.key] = value
            result.translated += 1

    return result


def file_loader(locales_path: Union[str, Path]) -> Callable[[str], Dict[str, str]]:
    """Loader reading <locales_path>/<lang>.json."""
    def load(lang: str) -> Dict[str, str]:
        return load_locale_file(get_locale_path(locales_path, lang))
    return load


class LocaleRuntime:
    """Per-instance translation state for displayed content."""

    def __init__(
        self,
        locales_path: Union[str, Path] = "locales",
        default_language: str = DEFAULT_SOURCE_LANGUAGE,
        loader: Optional[Callable[[str], Dict[str, str]]] = None,
        render: Optional[Callable[[ContentRef, str], None]] = None,
    ):
        self.locales_path = Path(locales_path)
        self.default_language = default_language
        self.current_language = default_language
        self.translation_table: Dict[str, str] = {}
        self.original_content: Dict[Tuple, ContentRef] = {}
        self._loader = loader or file_loader(self.locales_path)
        self._render = render

    def index_content(self, refs: Iterable[ContentRef]) -> int:
        """Remember the original value of content not seen before. Returns how many were added."""
        added = 0
        for content in refs:
            if isinstance(content, TextNode) and not content.original.strip():
                continue
            if isinstance(content, Attribute) and not content.original.strip():
                continue
            if content.key not in self.original_content:
                self.original_content[content.key] = content
                added += 1
        return added

    def load_language(self, lang: str) -> Dict[str, str]:
        """
        Switch language and load its table.

        The default language displays originals. A table that cannot be
        loaded is replaced by an empty one, so originals are shown.
        """
        self.current_language = lang

        if lang == self.default_language:
            self.translation_table = {}
            return self.translation_table

        try:
            table = self._loader(lang)
        except (PolygotError, OSError, ValueError) as e:
            logger.error(f"Failed to load translations for {lang}: {e}")
            table = {}

        self.translation_table = table if isinstance(table, dict) else {}
        logger.debug(f"Loaded {len(self.translation_table)} translations for {lang}")
        return self.translation_table

    def apply(self) -> ApplyResult:
        """Re-apply the current table over the whole content index."""
        result = apply_translations(self.original_content.values(), self.translation_table)

        if self._render is not None:
            for key, value in result.values.items():
                self._render(self.original_content[key], value)

        if result.missing and self.current_language != self.default_language:
            logger.debug(f"{len(result.missing)} strings have no {self.current_language} translation")

        return result

    def change_language(self, lang: str) -> ApplyResult:
        self.load_language(lang)
        return self.apply()

    def on_content_added(self, refs: Iterable[ContentRef]) -> Optional[ApplyResult]:
        """Callback for newly displayed content: index it and re-apply."""
        if self.index_content(refs) == 0:
            return None
        return self.apply()
