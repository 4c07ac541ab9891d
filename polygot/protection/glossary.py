"""
Glossary Manager

Curated terms with a fixed translation policy:
- do-not-translate terms (brand, product, technical names)
- terms with an official translation per target language

Before translation, strings that are exactly a glossary term are resolved
without an API call, and terms inside longer strings are swapped for
__GLOSSARY_<n>__ placeholders so the model cannot reword them. After
translation the placeholders are swapped back for the final term.

The glossary is persisted as one JSON document; every mutation rewrites it.
"""

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from polygot.config import DEFAULT_GLOSSARY_PATH
from polygot.exceptions import InvalidInputError, PersistenceError
from polygot.logger import get_logger
from polygot.project.generator import atomic_write_json, read_json_file
from polygot.protection.terms import Span, apply_placeholders, restore_placeholders

logger = get_logger(__name__)

GLOSSARY_FORMAT_VERSION = "1.0.0"
DEFAULT_CATEGORY = "general"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _generate_key(term: str, case_sensitive: bool = True) -> str:
    return term if case_sensitive else term.lower()


@dataclass
class GlossaryEntry:
    """A glossary term and its translation policy."""
    term: str
    translations: Dict[str, str] = field(default_factory=dict)
    category: str = DEFAULT_CATEGORY
    description: str = ""
    case_sensitive: bool = True
    do_not_translate: bool = False
    context: str = ""
    created_at: int = field(default_factory=_now_ms)
    updated_at: int = field(default_factory=_now_ms)

    @property
    def key(self) -> str:
        return _generate_key(self.term, self.case_sensitive)

    def final_translation(self, target_lang: str) -> Optional[str]:
        """The term's fixed rendering in target_lang, or None if it has none."""
        if self.do_not_translate:
            return self.term
        return self.translations.get(target_lang) or None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "translations": self.translations,
            "category": self.category,
            "description": self.description,
            "caseSensitive": self.case_sensitive,
            "doNotTranslate": self.do_not_translate,
            "context": self.context,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlossaryEntry":
        return cls(
            term=data["term"],
            translations=dict(data.get("translations") or {}),
            category=data.get("category") or DEFAULT_CATEGORY,
            description=data.get("description") or "",
            case_sensitive=data.get("caseSensitive", True) is not False,
            do_not_translate=bool(data.get("doNotTranslate", False)),
            context=data.get("context") or "",
            created_at=data.get("createdAt") or _now_ms(),
            updated_at=data.get("updatedAt") or _now_ms(),
        )


@dataclass
class GlossaryMatch:
    """One occurrence of a glossary term inside a text."""
    term: str
    position: int
    matched_text: str
    entry: GlossaryEntry


@dataclass
class GlossaryPlaceholder:
    """What a placeholder stands for."""
    original: str
    term: str
    translation: str
    position: int
    case_sensitive: bool = True


@dataclass
class GlossaryPreparation:
    """
    Everything needed to translate a batch with glossary protection.

    strings_for_api[i] is the processed form of original_strings[i].
    """
    strings_for_api: List[str]
    glossary_map: Dict[str, GlossaryPlaceholder]
    skip_translation: Dict[str, str]
    original_strings: List[str]


class GlossaryManager:
    """
    Glossary of protected terms.

    Pass glossary_path=None for a glossary that lives only in memory
    (e.g. do-not-translate terms given on the command line).
    """

    def __init__(self, glossary_path: Optional[Union[str, Path]] = DEFAULT_GLOSSARY_PATH):
        self.glossary_path = Path(glossary_path) if glossary_path is not None else None
        self.terms: Dict[str, GlossaryEntry] = {}
        self.metadata = {
            "version": GLOSSARY_FORMAT_VERSION,
            "created": None,
            "lastModified": None,
        }

    @classmethod
    def from_terms(cls, terms: Iterable[str]) -> "GlossaryManager":
        """Build an in-memory glossary of do-not-translate terms."""
        manager = cls(glossary_path=None)
        for term in terms:
            if isinstance(term, str) and term.strip():
                manager.add(term, do_not_translate=True)
        return manager

    def initialize(self) -> "GlossaryManager":
        """Create the storage directory and load existing terms."""
        if self.glossary_path is not None:
            try:
                self.glossary_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PersistenceError(f"Cannot create glossary directory {self.glossary_path.parent}: {e}")
            self.load()

        logger.info(f"Glossary initialized with {len(self.terms)} terms")
        return self

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(
        self,
        term: str,
        translations: Optional[Dict[str, str]] = None,
        *,
        category: Optional[str] = None,
        description: str = "",
        case_sensitive: bool = True,
        do_not_translate: bool = False,
        context: str = "",
    ) -> GlossaryEntry:
        """Add a term, replacing any entry with the same key."""
        if not isinstance(term, str) or not term.strip():
            raise InvalidInputError("Glossary term must be a non-empty string")

        entry = GlossaryEntry(
            term=term.strip(),
            translations=dict(translations or {}),
            category=category or DEFAULT_CATEGORY,
            description=description or "",
            case_sensitive=case_sensitive is not False,
            do_not_translate=bool(do_not_translate),
            context=context or "",
        )

        self.terms[entry.key] = entry
        self.metadata["lastModified"] = _now_ms()
        self.save()

        return entry

    def get(self, term: str, case_sensitive: bool = True) -> Optional[GlossaryEntry]:
        return self.terms.get(_generate_key(term, case_sensitive))

    def update(
        self,
        term: str,
        *,
        translations: Optional[Dict[str, str]] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        do_not_translate: Optional[bool] = None,
        context: Optional[str] = None,
        case_sensitive: bool = True,
    ) -> bool:
        """Update a term; translations are merged into the existing ones."""
        entry = self.get(term, case_sensitive)
        if entry is None:
            return False

        if translations:
            entry.translations = {**entry.translations, **translations}
        if category:
            entry.category = category
        if description:
            entry.description = description
        if do_not_translate is not None:
            entry.do_not_translate = do_not_translate
        if context:
            entry.context = context

        entry.updated_at = _now_ms()
        self.metadata["lastModified"] = _now_ms()
        self.save()
        return True

    def delete(self, term: str, case_sensitive: bool = True) -> bool:
        key = _generate_key(term, case_sensitive)
        if key not in self.terms:
            return False

        del self.terms[key]
        self.metadata["lastModified"] = _now_ms()
        self.save()
        return True

    def clear(self):
        self.terms.clear()
        self.metadata["lastModified"] = _now_ms()
        self.save()

    def get_by_category(self, category: str) -> List[GlossaryEntry]:
        return [entry for entry in self.terms.values() if entry.category == category]

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            "total": len(self.terms),
            "by_category": {},
            "do_not_translate": 0,
            "with_translations": 0,
        }

        for entry in self.terms.values():
            stats["by_category"][entry.category] = stats["by_category"].get(entry.category, 0) + 1
            if entry.do_not_translate:
                stats["do_not_translate"] += 1
            if entry.translations:
                stats["with_translations"] += 1

        return stats

    # ------------------------------------------------------------------
    # Matching and translation preparation
    # ------------------------------------------------------------------

    def find_in_text(self, text: str) -> List[GlossaryMatch]:
        """
        Find every occurrence of every term, whole words only.

        Returns:
            Matches sorted by position ascending
        """
        found = []

        for entry in self.terms.values():
            flags = 0 if entry.case_sensitive else re.IGNORECASE
            pattern = re.compile(rf'\b{re.escape(entry.term)}\b', flags)

            for match in pattern.finditer(text):
                found.append(GlossaryMatch(
                    term=entry.term,
                    position=match.start(),
                    matched_text=match.group(0),
                    entry=entry,
                ))

        return sorted(found, key=lambda m: m.position)

    def filter_strings(self, strings: Iterable[str], target_lang: str) -> Tuple[List[str], Dict[str, str]]:
        """
        Resolve strings that are exactly a glossary term.

        Returns:
            Tuple of (need_translation, skip_translation)
        """
        need_translation = []
        skip_translation: Dict[str, str] = {}

        for text in strings:
            trimmed = text.strip()
            entry = self.get(trimmed, True) or self.get(trimmed, False)

            final = entry.final_translation(target_lang) if entry else None
            if final is not None:
                skip_translation[text] = final
            else:
                need_translation.append(text)

        return need_translation, skip_translation

    def preprocess_strings(self, strings: Iterable[str], target_lang: str) -> Tuple[List[str], Dict[str, GlossaryPlaceholder]]:
        """
        Replace protected terms inside strings with placeholders.

        Only terms that are do-not-translate or have a target_lang translation
        are replaced. Placeholder numbers increase across the whole batch.

        Returns:
            Tuple of (processed_strings, glossary_map)
        """
        processed = []
        glossary_map: Dict[str, GlossaryPlaceholder] = {}
        next_index = 0

        for text in strings:
            candidates = [m for m in self.find_in_text(text) if m.entry.final_translation(target_lang) is not None]
            by_span = {(m.position, m.matched_text): m for m in candidates}

            processed_text, replaced, next_index = apply_placeholders(
                text,
                [Span(m.position, m.matched_text) for m in candidates],
                next_index,
            )

            for placeholder, span in replaced:
                match = by_span[(span.start, span.text)]
                glossary_map[placeholder] = GlossaryPlaceholder(
                    original=match.matched_text,
                    term=match.entry.term,
                    translation=match.entry.final_translation(target_lang),
                    position=match.position,
                    case_sensitive=match.entry.case_sensitive,
                )

            processed.append(processed_text)

        return processed, glossary_map

    def prepare_for_translation(self, strings: Iterable[str], target_lang: str) -> GlossaryPreparation:
        """Filter whole-term strings, then placeholder the rest."""
        need_translation, skip_translation = self.filter_strings(strings, target_lang)
        logger.debug(f"Glossary filtered: {len(skip_translation)} strings need no translation")

        processed, glossary_map = self.preprocess_strings(need_translation, target_lang)
        logger.debug(f"Glossary preprocessed: {len(glossary_map)} term replacements")

        return GlossaryPreparation(
            strings_for_api=processed,
            glossary_map=glossary_map,
            skip_translation=skip_translation,
            original_strings=need_translation,
        )

    def postprocess_translations(self, api_translations: Dict[str, str],
                                 glossary_map: Dict[str, GlossaryPlaceholder]) -> Dict[str, str]:
        """Swap every placeholder in the translations for its final term."""
        replacements = {placeholder: info.translation for placeholder, info in glossary_map.items()}
        return {
            original: restore_placeholders(translated, replacements)
            for original, translated in api_translations.items()
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self):
        """Write the whole glossary to disk atomically."""
        if self.glossary_path is None:
            return

        data = {
            "metadata": {**self.metadata, "lastModified": _now_ms()},
            "terms": [entry.to_dict() for entry in self.terms.values()],
        }

        try:
            atomic_write_json(self.glossary_path, data)
        except PersistenceError as e:
            logger.error(f"Glossary save error: {e}")
            raise

    def load(self):
        """Load terms from disk, creating the file on first run."""
        if self.glossary_path is None:
            return

        try:
            data = read_json_file(self.glossary_path)
        except FileNotFoundError:
            self.metadata["created"] = _now_ms()
            self.save()
            return
        except PersistenceError as e:
            logger.error(f"Glossary load error: {e}")
            raise

        if not isinstance(data, dict):
            raise PersistenceError(f"Glossary file {self.glossary_path} is not a JSON object")

        self.metadata = {**self.metadata, **(data.get("metadata") or {})}

        try:
            for item in data.get("terms") or []:
                entry = GlossaryEntry.from_dict(item)
                self.terms[entry.key] = entry
        except (KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Malformed term in glossary file {self.glossary_path}: {e}")

    def export_to(self, output_path: Union[str, Path]) -> int:
        data = {
            "version": self.metadata.get("version", GLOSSARY_FORMAT_VERSION),
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "totalTerms": len(self.terms),
            "terms": [entry.to_dict() for entry in self.terms.values()],
        }
        atomic_write_json(output_path, data)
        return len(data["terms"])

    def import_from(self, input_path: Union[str, Path]) -> int:
        """Import terms written by export_to. Returns the number imported."""
        try:
            data = read_json_file(input_path)
        except FileNotFoundError:
            raise PersistenceError(f"Glossary import file not found: {input_path}")

        imported = 0
        for item in (data.get("terms") or []) if isinstance(data, dict) else []:
            if not isinstance(item, dict) or not item.get("term"):
                continue
            self.add(
                item["term"],
                item.get("translations"),
                category=item.get("category"),
                description=item.get("description", ""),
                case_sensitive=item.get("caseSensitive", True),
                do_not_translate=item.get("doNotTranslate", False),
                context=item.get("context", ""),
            )
            imported += 1

        return imported

    def __len__(self) -> int:
        return len(self.terms)
