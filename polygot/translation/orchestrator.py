"""
Translation Orchestrator

Resolves every input string to a translation through three tiers, cheapest
first:

1. Translation memory (previous runs)
2. Glossary (whole-string terms, then placeholders for embedded terms)
3. The remote translation capability, chunk by chunk

A failed chunk falls back to identity for its strings, so the returned
mapping always covers every unique non-empty input string.
"""

from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import polygot.language_codes as lc
from polygot.config import DEFAULT_CHUNK_DELAY, DEFAULT_CHUNK_SIZE, DEFAULT_MODEL, DEFAULT_SOURCE_LANGUAGE
from polygot.exceptions import InvalidInputError, MissingCredentialError, UnsupportedLanguageError
from polygot.logger import get_logger
from polygot.translation.processor import translate_chunks_sequential
from polygot.translation.progress import TranslationProgress
from polygot.translation.utils import chunk_strings, unique_non_empty
from polygot.translation.validator import validate_chunk_result

logger = get_logger(__name__)


@dataclass
class TranslationResult:
    """Result of translating a batch of strings to one language."""
    translations: Dict[str, str]
    tokens_used: Dict[str, Any] = field(default_factory=lambda: {"input": 0, "output": 0, "total": 0, "chunks": []})
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def language(self) -> Dict[str, str]:
        return self.metadata.get("language", {})


def validate_request(strings, target_language: str, api_key: Optional[str], max_chunk_size: int):
    """
    Validate a translation request, failing fast.

    Order: language, strings, API key, chunk size.
    """
    if not lc.is_language_supported(target_language):
        supported = lc.get_supported_language_codes()
        raise UnsupportedLanguageError(
            f"Unsupported language: {target_language}. Supported languages: {', '.join(supported)}",
            details={"language": target_language, "supported": supported}
        )

    if isinstance(strings, (str, bytes)) or not isinstance(strings, Collection) or len(strings) == 0:
        raise InvalidInputError("Strings must be a non-empty list")

    if not api_key:
        raise MissingCredentialError("API key is required")

    if not isinstance(max_chunk_size, int) or max_chunk_size < 1:
        raise InvalidInputError(f"max_chunk_size must be a positive integer, got {max_chunk_size!r}")


def _build_metadata(target_language: str, model: str, total: int, from_memory: int, from_glossary: int,
                    from_api: int, failed_strings: int = 0, chunks: int = 0, failed_chunks: int = 0) -> Dict[str, Any]:
    return {
        "language": {"code": target_language, "name": lc.get_language_name(target_language)},
        "total_strings": total,
        "from_memory": from_memory,
        "from_glossary": from_glossary,
        "from_api": from_api,
        "failed_strings": failed_strings,
        "chunks": chunks,
        "failed_chunks": failed_chunks,
        "model": model,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def translate_strings(
    strings: Collection[str],
    target_language: str,
    api_key: Optional[str],
    *,
    model: str = DEFAULT_MODEL,
    context: str = "",
    tone: str = "neutral",
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    preserve_formatting: bool = True,
    memory=None,
    glossary=None,
    source_lang: str = DEFAULT_SOURCE_LANGUAGE,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    translator=None,
    progress_callback: Optional[Callable[[TranslationProgress], None]] = None,
) -> TranslationResult:
    """
    Translate strings to one target language.

    Args:
        strings: Strings to translate (duplicates and blanks are dropped)
        target_language: Target language code
        api_key: Credential for the translation capability
        model: Model name
        context: Free-text context added to the prompt
        tone: Tone directive ('neutral' adds nothing)
        max_chunk_size: Maximum strings per remote call
        preserve_formatting: Ask the model to keep placeholders/variables verbatim
        memory: Optional TranslationMemoryStore
        glossary: Optional GlossaryManager
        source_lang: Source language code (memory key)
        chunk_delay: Seconds to pause between chunks
        translator: Object with translate_chunk(texts, target_language, system_prompt)
            returning (mapping, usage); defaults to an AIService
        progress_callback: Called with a TranslationProgress after every chunk

    Returns:
        TranslationResult with translations, tokens_used and metadata

    Raises:
        UnsupportedLanguageError, InvalidInputError, MissingCredentialError
    """
    from polygot.ai.service import build_system_prompt

    validate_request(strings, target_language, api_key, max_chunk_size)

    unique_strings = unique_non_empty(strings)
    language_name = lc.get_language_name(target_language)

    logger.info(f"Starting translation to {language_name}: {len(unique_strings)} unique strings, model {model}")

    translations: Dict[str, str] = {}
    tokens_used: Dict[str, Any] = {"input": 0, "output": 0, "total": 0, "chunks": []}

    # Tier 1: translation memory
    work_set = unique_strings
    from_memory = 0
    if memory is not None and work_set:
        lookup = memory.batch_lookup(work_set, source_lang, target_language)
        translations.update(lookup.found)
        from_memory = len(lookup.found)
        work_set = lookup.missing
        logger.info(f"Translation memory: {from_memory} hits, {len(work_set)} misses")

    # Tier 2: glossary
    from_glossary = 0
    glossary_map = {}
    sent_strings = list(work_set)
    original_of = {text: text for text in work_set}
    if glossary is not None and work_set:
        preparation = glossary.prepare_for_translation(work_set, target_language)
        translations.update(preparation.skip_translation)
        from_glossary = len(preparation.skip_translation)
        glossary_map = preparation.glossary_map
        sent_strings = preparation.strings_for_api
        original_of = dict(zip(preparation.strings_for_api, preparation.original_strings))
        logger.info(f"Glossary: {from_glossary} strings resolved, {len(glossary_map)} term placeholders")

    if not sent_strings:
        logger.info("All strings resolved locally - no API calls needed")
        return TranslationResult(
            translations=translations,
            tokens_used=tokens_used,
            metadata=_build_metadata(target_language, model, len(unique_strings), from_memory, from_glossary, 0),
        )

    # Tier 3: remote translation
    if translator is None:
        from polygot.ai.service import AIService
        translator = AIService(api_key=api_key, model_override=model)

    chunks = chunk_strings(sent_strings, max_chunk_size)
    if len(chunks) > 1:
        logger.info(f"Split into {len(chunks)} chunks (max {max_chunk_size} strings per chunk)")

    system_prompt = build_system_prompt(
        target_language,
        preserve_formatting=preserve_formatting,
        tone=tone,
        context=context,
        use_glossary=bool(glossary_map),
    )

    chunk_results = translate_chunks_sequential(
        chunks,
        target_language,
        system_prompt,
        translator,
        chunk_delay=chunk_delay,
        progress_callback=progress_callback,
        language_name=language_name,
        total_items=len(sent_strings),
    )

    api_translations: Dict[str, str] = {}
    failed_strings = 0
    failed_chunks = 0
    unanswered = set()

    for result in chunk_results:
        if not result.succeeded:
            failed_chunks += 1
            failed_strings += len(result.texts)
            for sent in result.texts:
                original = original_of.get(sent, sent)
                translations[original] = original
            continue

        usage = result.token_usage
        tokens_used["input"] += usage["input"]
        tokens_used["output"] += usage["output"]
        tokens_used["total"] += usage["total"]
        tokens_used["chunks"].append({"chunk": result.index + 1, **usage})

        validate_chunk_result(
            {sent: original_of.get(sent, sent) for sent in result.texts},
            result.translations,
            preserve_formatting,
        )

        for sent in result.texts:
            original = original_of.get(sent, sent)
            translated = result.translations.get(sent)
            if not isinstance(translated, str) or not translated.strip():
                logger.warning(f"No translation returned for {sent[:50]!r}, keeping original")
                translated = sent
                unanswered.add(original)
            api_translations[original] = translated

    # Restore glossary placeholders in API output only
    if glossary is not None and glossary_map:
        api_translations = glossary.postprocess_translations(api_translations, glossary_map)

    translations.update(api_translations)

    if memory is not None and api_translations:
        for original, translated in api_translations.items():
            if original in unanswered:
                continue
            memory.store(original, translated, source_lang, target_language,
                         {"model": model, "context": context, "tone": tone})

    from_api = len(sent_strings)
    logger.info(
        f"Translation to {language_name} complete: {from_memory} memory, {from_glossary} glossary, "
        f"{from_api} API ({failed_strings} failed). Tokens: {tokens_used['total']} "
        f"({tokens_used['input']} input + {tokens_used['output']} output)"
    )

    return TranslationResult(
        translations=translations,
        tokens_used=tokens_used,
        metadata=_build_metadata(
            target_language, model, len(unique_strings), from_memory, from_glossary, from_api,
            failed_strings=failed_strings, chunks=len(chunks), failed_chunks=failed_chunks,
        ),
    )
