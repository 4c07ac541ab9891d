"""
Workflow Driver

End-to-end runs over a source tree:
- parse_and_extract: write the source-language file with identity entries
- parse_and_translate: extract once, translate to each language, write one
  locale file per language
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import polygot.language_codes as lc
from polygot.config import DEFAULT_CHUNK_DELAY, DEFAULT_CHUNK_SIZE, DEFAULT_MODEL, DEFAULT_SOURCE_LANGUAGE
from polygot.exceptions import (
    InvalidInputError,
    MissingCredentialError,
    PersistenceError,
    PolygotError,
    UnsupportedLanguageError,
)
from polygot.logger import get_logger
from polygot.parser.extractor import extract_strings, filter_skip_patterns
from polygot.project.generator import get_locale_path, load_locale_file, write_locale_file
from polygot.project.scanner import read_ui_file, scan_ui_directory
from polygot.translation.orchestrator import TranslationResult, translate_strings
from polygot.translation.progress import TranslationProgress

logger = get_logger(__name__)


@dataclass
class ExtractResult:
    """Outcome of parse_and_extract."""
    file: Path
    language: str
    strings_extracted: int
    strings_skipped: int
    total_strings: int

    @property
    def message(self) -> str:
        if self.strings_extracted == 0:
            return "No new strings found - all strings already exist"
        return f"Added {self.strings_extracted} new strings"


@dataclass
class TranslateRunResult:
    """Outcome of parse_and_translate."""
    success: bool
    files: List[Path] = field(default_factory=list)
    strings_extracted: int = 0
    strings_skipped: int = 0
    languages: List[str] = field(default_factory=list)
    results: Dict[str, TranslationResult] = field(default_factory=dict)
    tokens_used: Dict[str, int] = field(default_factory=lambda: {"input": 0, "output": 0, "total": 0})
    message: str = ""


def parse_file(file_path: Union[str, Path], visible_attributes: Optional[List[str]] = None,
               exclude_tags: Optional[List[str]] = None) -> List[str]:
    """Extract the unique strings of one UI file."""
    if not file_path or not isinstance(file_path, (str, Path)):
        raise InvalidInputError("file_path must be a non-empty string")

    content = read_ui_file(file_path)
    return sorted(extract_strings(content, visible_attributes, exclude_tags))


def parse_dir(dir_path: Union[str, Path], visible_attributes: Optional[List[str]] = None,
              exclude_tags: Optional[List[str]] = None) -> List[str]:
    """
    Extract the union of strings over every UI file in a directory tree.

    A file that cannot be read or parsed is logged and skipped.
    """
    if not dir_path or not isinstance(dir_path, (str, Path)):
        raise InvalidInputError("dir_path must be a non-empty string")

    merged = set()
    for file_path in scan_ui_directory(dir_path):
        try:
            merged.update(extract_strings(read_ui_file(file_path), visible_attributes, exclude_tags))
        except PolygotError as e:
            logger.error(f"Failed to process {file_path}: {e}")

    return sorted(merged)


def extract_from_path(source_path: Union[str, Path], visible_attributes: Optional[List[str]] = None,
                      exclude_tags: Optional[List[str]] = None) -> List[str]:
    """Extract strings from a file or a directory."""
    if not source_path or not isinstance(source_path, (str, Path)):
        raise InvalidInputError("source_path must be a non-empty string")

    path = Path(source_path)
    if path.is_dir():
        return parse_dir(path, visible_attributes, exclude_tags)
    if path.is_file():
        return parse_file(path, visible_attributes, exclude_tags)

    raise InvalidInputError(f"Invalid source path: {source_path}", details={"path": str(source_path)})


def parse_and_extract(
    source_path: Union[str, Path],
    source_language: str,
    output_dir: Union[str, Path],
    visible_attributes: Optional[List[str]] = None,
    exclude_tags: Optional[List[str]] = None,
) -> ExtractResult:
    """
    Extract strings into <output_dir>/<source_language>.json without translating.

    Strings already present in the file are kept as they are; only new
    strings are added, as identity entries.
    """
    if not source_language or not isinstance(source_language, str):
        raise InvalidInputError("source_language must be a non-empty string")

    file_path = get_locale_path(output_dir, source_language)
    existing = load_locale_file(file_path)
    if existing:
        logger.info(f"Found {len(existing)} existing strings in {file_path}")

    extracted = extract_from_path(source_path, visible_attributes, exclude_tags)
    new_strings = [s for s in extracted if s not in existing]
    skipped = len(extracted) - len(new_strings)

    logger.info(f"Extracted {len(extracted)} strings: {len(new_strings)} new, {skipped} already present")

    if not new_strings:
        return ExtractResult(file=file_path, language=source_language, strings_extracted=0,
                             strings_skipped=skipped, total_strings=len(existing))

    final_data = dict(existing)
    for text in new_strings:
        final_data[text] = text

    write_locale_file(output_dir, source_language, final_data)

    return ExtractResult(
        file=file_path,
        language=source_language,
        strings_extracted=len(new_strings),
        strings_skipped=skipped,
        total_strings=len(final_data),
    )


def _normalize_languages(target_languages: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(target_languages, str):
        languages = [code.strip() for code in target_languages.split(",")]
    else:
        languages = [code.strip() for code in target_languages if isinstance(code, str)]

    languages = [code for code in dict.fromkeys(languages) if code]
    if not languages:
        raise InvalidInputError("At least one target language is required")
    return languages


def parse_and_translate(
    source_path: Union[str, Path],
    target_languages: Union[str, Iterable[str]],
    api_key: Optional[str],
    output_dir: Union[str, Path],
    *,
    visible_attributes: Optional[List[str]] = None,
    exclude_tags: Optional[List[str]] = None,
    skip_patterns: Optional[List[str]] = None,
    source_lang: str = DEFAULT_SOURCE_LANGUAGE,
    model: str = DEFAULT_MODEL,
    context: str = "",
    tone: str = "neutral",
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    preserve_formatting: bool = True,
    memory=None,
    glossary=None,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    translator=None,
    progress_callback: Optional[Callable[[TranslationProgress], None]] = None,
) -> TranslateRunResult:
    """
    Extract strings once and write a translated locale file per language.

    Languages are processed one after another. The source language gets an
    identity mapping without API calls. Strings matching a skip pattern are
    written untranslated.

    Raises:
        InvalidInputError, UnsupportedLanguageError, MissingCredentialError:
            before any translation starts
        PersistenceError: If a locale file or the memory cannot be written
    """
    languages = _normalize_languages(target_languages)
    unsupported = [code for code in languages if code != source_lang and not lc.is_language_supported(code)]
    if unsupported:
        supported = lc.get_supported_language_codes()
        raise UnsupportedLanguageError(
            f"Unsupported language: {', '.join(unsupported)}. Supported languages: {', '.join(supported)}",
            details={"language": unsupported, "supported": supported}
        )

    if not api_key and any(code != source_lang for code in languages):
        raise MissingCredentialError("API key is required")

    logger.info(f"Starting parse and translate: {source_path} -> {', '.join(languages)} in {output_dir}")

    extracted = extract_from_path(source_path, visible_attributes, exclude_tags)
    if not extracted:
        logger.warning("No strings found to translate")
        return TranslateRunResult(success=False, languages=languages, message="No strings extracted")

    translatable, skipped = filter_skip_patterns(extracted, skip_patterns)
    if skipped:
        logger.info(f"Skipping {len(skipped)} strings matching skip patterns")

    logger.info(f"Extracted {len(extracted)} unique strings")

    run = TranslateRunResult(
        success=True,
        strings_extracted=len(extracted),
        strings_skipped=len(skipped),
        languages=languages,
    )

    for lang in languages:
        if lang == source_lang or not translatable:
            translations = {text: text for text in extracted}
        else:
            result = translate_strings(
                translatable,
                lang,
                api_key,
                model=model,
                context=context,
                tone=tone,
                max_chunk_size=max_chunk_size,
                preserve_formatting=preserve_formatting,
                memory=memory,
                glossary=glossary,
                source_lang=source_lang,
                chunk_delay=chunk_delay,
                translator=translator,
                progress_callback=progress_callback,
            )
            run.results[lang] = result
            for key in ("input", "output", "total"):
                run.tokens_used[key] += result.tokens_used[key]

            translations = dict(result.translations)
            for text in skipped:
                translations[text] = text

        run.files.append(write_locale_file(output_dir, lang, translations))
        logger.info(f"Written {lang}.json ({len(translations)} entries)")

    if memory is not None:
        try:
            memory.save()
        except PersistenceError:
            logger.error("Translation memory could not be saved after the run")
            raise

    logger.info(f"Translation workflow complete. Total tokens used: {run.tokens_used['total']}")
    return run


def summarize_run(run: TranslateRunResult) -> Dict[str, Any]:
    """Per-language provenance counts, for reporting."""
    return {
        lang: {
            "from_memory": result.metadata.get("from_memory", 0),
            "from_glossary": result.metadata.get("from_glossary", 0),
            "from_api": result.metadata.get("from_api", 0),
            "failed_strings": result.metadata.get("failed_strings", 0),
            "tokens": result.tokens_used.get("total", 0),
        }
        for lang, result in run.results.items()
    }
