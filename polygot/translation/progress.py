"""
Translation Progress Data Class

Contains the TranslationProgress dataclass passed to progress callbacks.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class TranslationProgress:
    """Progress information for an ongoing translation run."""
    current_language: str
    current_language_name: str
    total_items: int
    success_count: int
    failure_count: int
    # Batch progress fields
    current_batch: int = 0           # Current chunk number (1-indexed)
    total_batches: int = 0           # Total chunks for current language
    batch_keys_count: int = 0        # Number of strings in current chunk
    phase: str = "translating"       # "translating", "batch_done", "batch_failed"
    # Token usage for the current chunk
    token_usage: Optional[Dict[str, int]] = None
