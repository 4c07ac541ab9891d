"""
Translation Processing Module

Contains functions for processing translation chunks:
- Sequential chunk translation with a courtesy delay between chunks
- Per-chunk failure isolation (a failed chunk never aborts the run)
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from polygot.logger import get_logger
from polygot.translation.progress import TranslationProgress
from polygot.translation.utils import empty_token_usage

logger = get_logger(__name__)


@dataclass
class ChunkResult:
    """Outcome of one chunk. translations is None when the chunk failed."""
    index: int
    texts: List[str]
    translations: Optional[Dict[str, str]] = None
    token_usage: Dict[str, int] = field(default_factory=empty_token_usage)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.translations is not None


def normalize_token_usage(usage: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """
    Convert a provider usage report into {input, output, total}.

    Accepts both prompt_tokens/completion_tokens and input/output key styles.
    """
    usage = usage or {}
    input_tokens = int(usage.get("prompt_tokens", usage.get("input", 0)) or 0)
    output_tokens = int(usage.get("completion_tokens", usage.get("output", 0)) or 0)
    total_tokens = int(usage.get("total_tokens", usage.get("total", 0)) or 0) or input_tokens + output_tokens
    return {"input": input_tokens, "output": output_tokens, "total": total_tokens}


def translate_chunks_sequential(
    chunks: List[List[str]],
    target_language: str,
    system_prompt: str,
    translator,
    chunk_delay: float = 0.0,
    progress_callback: Optional[Callable[[TranslationProgress], None]] = None,
    language_name: str = "",
    total_items: int = 0,
) -> List[ChunkResult]:
    """
    Translate multiple chunks sequentially.

    On failure of one chunk, records the error and continues with the next
    (graceful degradation). The delay is slept between chunks only.

    Args:
        chunks: List of chunks, each a list of strings to send
        target_language: Target language code
        system_prompt: System instruction for every chunk
        translator: Object with translate_chunk(texts, target_language, system_prompt)
            returning (mapping, usage)
        chunk_delay: Seconds to pause between chunks
        progress_callback: Optional callback invoked after every chunk
        language_name: Display name of the target language (for progress)
        total_items: Total number of strings in the run (for progress)

    Returns:
        One ChunkResult per chunk, in order
    """
    results = []
    success_count = 0
    failure_count = 0

    for chunk_idx, texts in enumerate(chunks):
        if chunk_idx > 0 and chunk_delay > 0:
            time.sleep(chunk_delay)

        try:
            logger.debug(f"Chunk {chunk_idx + 1}/{len(chunks)}: Starting translation of {len(texts)} strings")
            translations, usage = translator.translate_chunk(texts, target_language, system_prompt)
            result = ChunkResult(
                index=chunk_idx,
                texts=texts,
                translations=translations if isinstance(translations, dict) else {},
                token_usage=normalize_token_usage(usage),
            )
            success_count += len(texts)
            logger.debug(f"Chunk {chunk_idx + 1}/{len(chunks)}: Translation completed ({result.token_usage['total']} tokens)")
        except Exception as e:
            logger.error(f"Chunk {chunk_idx + 1}/{len(chunks)} translation failed: {e}. Returning originals.")
            result = ChunkResult(index=chunk_idx, texts=texts, error=str(e))
            failure_count += len(texts)

        results.append(result)

        if progress_callback:
            progress_callback(TranslationProgress(
                current_language=target_language,
                current_language_name=language_name,
                total_items=total_items,
                success_count=success_count,
                failure_count=failure_count,
                current_batch=chunk_idx + 1,
                total_batches=len(chunks),
                batch_keys_count=len(texts),
                phase="batch_done" if result.succeeded else "batch_failed",
                token_usage=dict(result.token_usage),
            ))

    return results
