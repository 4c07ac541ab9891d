"""
Translation Memory Store

Content-addressed cache of previous translations, keyed by language pair and
source text. Loaded wholesale at initialisation and flushed to
<storage_path>/memory.json on save() and after every N additions.

Entries are never expired; they are only removed by delete() or clear().
A single process is expected to own a store path at a time.
"""

import hashlib
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from polygot.config import MEMORY_AUTOSAVE_EVERY, DEFAULT_MEMORY_DIR
from polygot.exceptions import InvalidInputError, PersistenceError
from polygot.logger import get_logger
from polygot.project.generator import atomic_write_json, read_json_file

logger = get_logger(__name__)

MEMORY_FILE_NAME = "memory.json"
MEMORY_FORMAT_VERSION = "1.0.0"


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_key(source_text: str, source_lang: str, target_lang: str) -> str:
    """
    Build the cache key: '<source_lang>:<target_lang>:<sha256 prefix>'.

    The text is trimmed before hashing.

    Example:
        >>> generate_key(' Save ', 'en', 'es') == generate_key('Save', 'en', 'es')
        True
    """
    normalized = source_text.strip()
    digest = hashlib.sha256(normalized.encode('utf-8')).hexdigest()[:16]
    return f"{source_lang}:{target_lang}:{digest}"


@dataclass
class MemoryEntry:
    """One cached translation."""
    source_text: str
    translation: str
    source_lang: str
    target_lang: str
    created_at: int = field(default_factory=_now_ms)
    last_used: int = field(default_factory=_now_ms)
    use_count: int = 1
    verified: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, key: str) -> Dict[str, Any]:
        return {
            "key": key,
            "sourceText": self.source_text,
            "translation": self.translation,
            "sourceLang": self.source_lang,
            "targetLang": self.target_lang,
            "createdAt": self.created_at,
            "lastUsed": self.last_used,
            "useCount": self.use_count,
            "verified": self.verified,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryEntry":
        metadata = dict(data.get("metadata") or {})
        # Older files kept the verified flag inside metadata
        verified = data.get("verified", metadata.pop("verified", False))
        return cls(
            source_text=data["sourceText"],
            translation=data["translation"],
            source_lang=data["sourceLang"],
            target_lang=data["targetLang"],
            created_at=data.get("createdAt") or _now_ms(),
            last_used=data.get("lastUsed") or _now_ms(),
            use_count=data.get("useCount", 1),
            verified=bool(verified),
            metadata=metadata,
        )


@dataclass
class BatchLookupResult:
    """Result of batch_lookup: hits keyed by the text as given, and misses."""
    found: Dict[str, str]
    missing: List[str]


class TranslationMemoryStore:
    """
    Persistent translation memory.

    Features:
    - O(1) lookup by (source_lang, target_lang, trimmed text)
    - Hash collisions resolved by comparing the stored source text
    - Hit/miss/addition counters
    - Batched flushing to disk
    """

    def __init__(self, storage_path: Union[str, Path] = DEFAULT_MEMORY_DIR,
                 autosave_every: int = MEMORY_AUTOSAVE_EVERY):
        self.storage_path = Path(storage_path)
        self.file_path = self.storage_path / MEMORY_FILE_NAME
        self.autosave_every = autosave_every
        self.cache: Dict[str, MemoryEntry] = {}
        self.metadata = {
            "version": MEMORY_FORMAT_VERSION,
            "created": None,
            "lastModified": None,
            "totalEntries": 0,
        }
        self.stats = {"hits": 0, "misses": 0, "additions": 0}

    def initialize(self) -> "TranslationMemoryStore":
        """Create the storage directory and load existing entries."""
        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create memory directory {self.storage_path}: {e}")

        self.load()
        logger.info(f"Translation memory initialized with {len(self.cache)} cached translations")
        return self

    def lookup(self, source_text: str, source_lang: str, target_lang: str) -> Optional[str]:
        """
        Look up a translation.

        Returns:
            The cached translation, or None on a miss (including hash collisions)
        """
        key = generate_key(source_text, source_lang, target_lang)
        entry = self.cache.get(key)

        if entry is not None and entry.source_text == source_text.strip():
            entry.last_used = _now_ms()
            entry.use_count += 1
            self.stats["hits"] += 1
            return entry.translation

        self.stats["misses"] += 1
        return None

    def store(self, source_text: str, translation: str, source_lang: str, target_lang: str,
              metadata: Optional[Dict[str, Any]] = None, verified: bool = False) -> MemoryEntry:
        """
        Store a translation, replacing any entry for the same key.

        Flushes to disk after every `autosave_every` additions.
        """
        if not isinstance(source_text, str) or not source_text.strip():
            raise InvalidInputError("source_text must be a non-empty string")

        metadata = metadata or {}
        key = generate_key(source_text, source_lang, target_lang)
        entry = MemoryEntry(
            source_text=source_text.strip(),
            translation=translation.strip(),
            source_lang=source_lang,
            target_lang=target_lang,
            verified=verified,
            metadata={
                "model": metadata.get("model"),
                "context": metadata.get("context") or None,
                "tone": metadata.get("tone"),
            },
        )

        self.cache[key] = entry
        self.stats["additions"] += 1
        self.metadata["lastModified"] = _now_ms()
        self.metadata["totalEntries"] = len(self.cache)

        if self.autosave_every and self.stats["additions"] % self.autosave_every == 0:
            logger.debug(f"Auto-saving translation memory after {self.stats['additions']} additions")
            self.save()

        return entry

    def batch_lookup(self, source_texts: Iterable[str], source_lang: str, target_lang: str) -> BatchLookupResult:
        found: Dict[str, str] = {}
        missing: List[str] = []

        for text in source_texts:
            translation = self.lookup(text, source_lang, target_lang)
            if translation is not None:
                found[text] = translation
            else:
                missing.append(text)

        return BatchLookupResult(found=found, missing=missing)

    def batch_store(self, translations: Dict[str, str], source_lang: str, target_lang: str,
                    metadata: Optional[Dict[str, Any]] = None):
        for source, target in translations.items():
            self.store(source, target, source_lang, target_lang, metadata)

    def get_entry(self, source_text: str, source_lang: str, target_lang: str) -> Optional[MemoryEntry]:
        """Return the entry without touching usage counters."""
        entry = self.cache.get(generate_key(source_text, source_lang, target_lang))
        if entry is not None and entry.source_text == source_text.strip():
            return entry
        return None

    def verify(self, source_text: str, source_lang: str, target_lang: str) -> bool:
        """Mark a translation as verified."""
        entry = self.get_entry(source_text, source_lang, target_lang)
        if entry is None:
            return False

        entry.verified = True
        entry.metadata["verifiedAt"] = _now_ms()
        self.save()
        return True

    def update(self, source_text: str, new_translation: str, source_lang: str, target_lang: str) -> bool:
        """Replace the translation of an existing entry."""
        entry = self.get_entry(source_text, source_lang, target_lang)
        if entry is None:
            return False

        entry.translation = new_translation.strip()
        entry.metadata["updatedAt"] = _now_ms()
        self.save()
        return True

    def delete(self, source_text: str, source_lang: str, target_lang: str) -> bool:
        """Remove an entry. A key held by a different source text is left alone."""
        if self.get_entry(source_text, source_lang, target_lang) is None:
            return False

        del self.cache[generate_key(source_text, source_lang, target_lang)]
        self.metadata["totalEntries"] = len(self.cache)
        self.save()
        return True

    def clear(self):
        """Remove every entry and reset counters."""
        self.cache.clear()
        self.metadata["totalEntries"] = 0
        self.metadata["lastModified"] = _now_ms()
        self.stats = {"hits": 0, "misses": 0, "additions": 0}
        self.save()

    def get_stats(self) -> Dict[str, Any]:
        total = self.stats["hits"] + self.stats["misses"]
        hit_rate = (self.stats["hits"] / total) * 100 if total > 0 else 0.0

        return {
            "total_entries": len(self.cache),
            "hits": self.stats["hits"],
            "misses": self.stats["misses"],
            "hit_rate": f"{hit_rate:.2f}%",
            "additions": self.stats["additions"],
            "estimated_savings": self.stats["hits"],  # Each hit = one string not sent
        }

    def get_by_language_pair(self, source_lang: str, target_lang: str) -> List[Dict[str, Any]]:
        return [
            {
                "source": entry.source_text,
                "translation": entry.translation,
                "use_count": entry.use_count,
                "verified": entry.verified,
            }
            for entry in self.cache.values()
            if entry.source_lang == source_lang and entry.target_lang == target_lang
        ]

    def get_most_used(self, limit: int = 10) -> List[Dict[str, Any]]:
        entries = sorted(self.cache.values(), key=lambda e: e.use_count, reverse=True)[:limit]
        return [
            {
                "source": entry.source_text,
                "translation": entry.translation,
                "use_count": entry.use_count,
                "languages": f"{entry.source_lang} -> {entry.target_lang}",
            }
            for entry in entries
        ]

    def save(self):
        """Write the whole cache to disk atomically."""
        data = {
            "metadata": {
                **self.metadata,
                "lastModified": _now_ms(),
                "totalEntries": len(self.cache),
            },
            "stats": self.stats,
            "entries": [entry.to_dict(key) for key, entry in self.cache.items()],
        }

        try:
            atomic_write_json(self.file_path, data)
        except PersistenceError as e:
            logger.error(f"Translation memory save error: {e}")
            raise

    def load(self):
        """Load the cache from disk, creating the file on first run."""
        try:
            data = read_json_file(self.file_path)
        except FileNotFoundError:
            self.metadata["created"] = _now_ms()
            self.save()
            return
        except PersistenceError as e:
            logger.error(f"Translation memory load error: {e}")
            raise

        if not isinstance(data, dict):
            raise PersistenceError(f"Memory file {self.file_path} is not a JSON object")

        self.metadata = {**self.metadata, **(data.get("metadata") or {})}
        self.stats = {**self.stats, **(data.get("stats") or {})}

        try:
            for item in data.get("entries") or []:
                entry = MemoryEntry.from_dict(item)
                key = item.get("key") or generate_key(entry.source_text, entry.source_lang, entry.target_lang)
                self.cache[key] = entry
        except (KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Malformed entry in memory file {self.file_path}: {e}")

    def export_to(self, output_path: Union[str, Path]) -> int:
        """Export entries in a portable format. Returns the number exported."""
        data = {
            "version": self.metadata.get("version", MEMORY_FORMAT_VERSION),
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "totalEntries": len(self.cache),
            "entries": [
                {
                    "source": entry.source_text,
                    "translation": entry.translation,
                    "sourceLang": entry.source_lang,
                    "targetLang": entry.target_lang,
                    "useCount": entry.use_count,
                    "verified": entry.verified,
                }
                for entry in self.cache.values()
            ],
        }
        atomic_write_json(output_path, data)
        return len(data["entries"])

    def import_from(self, input_path: Union[str, Path]) -> int:
        """Import entries written by export_to. Returns the number imported."""
        try:
            data = read_json_file(input_path)
        except FileNotFoundError:
            raise PersistenceError(f"Memory import file not found: {input_path}")

        imported = 0
        for item in (data.get("entries") or []) if isinstance(data, dict) else []:
            if not item.get("source") or not isinstance(item.get("translation"), str) or not item["translation"].strip():
                continue
            self.store(
                item["source"],
                item["translation"],
                item["sourceLang"],
                item["targetLang"],
                verified=bool(item.get("verified", False)),
            )
            imported += 1

        self.save()
        return imported

    def __len__(self) -> int:
        return len(self.cache)
