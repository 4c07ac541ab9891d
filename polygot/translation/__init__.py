"""
Translation module - Core translation functionality

This module provides:
- translate_strings: Memory/glossary/API tiered translation of a string batch
- TranslationProgress: Progress tracking dataclass
- Processing utilities for chunk-based translation
"""

from polygot.translation.progress import TranslationProgress
from polygot.translation.orchestrator import TranslationResult, translate_strings
from polygot.translation.processor import ChunkResult, translate_chunks_sequential
