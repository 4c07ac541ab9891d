"""
Memory module - Persistent translation memory
"""

from polygot.memory.store import (
    BatchLookupResult,
    MemoryEntry,
    TranslationMemoryStore,
    generate_key,
)
