"""Command line interface for polygot using Typer."""

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

import polygot.language_codes as lc
from polygot import __version__
from polygot.config import DEFAULT_MODEL, create_default_config, get_config_path, load_config, resolve_api_key
from polygot.exceptions import PolygotError
from polygot.logger import get_logger
from polygot.memory.store import TranslationMemoryStore
from polygot.protection.glossary import GlossaryManager

logger = get_logger(__name__)

app = typer.Typer(
    name="polygot",
    help="Extract UI strings from JSX/TSX/HTML and translate them into locale JSON files.",
    add_completion=False,
)
glossary_app = typer.Typer(help="Manage glossary terms.", add_completion=False)
memory_app = typer.Typer(help="Manage the translation memory.", add_completion=False)
app.add_typer(glossary_app, name="glossary")
app.add_typer(memory_app, name="memory")

console = Console()


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_glossary_file_terms(path: Path) -> List[str]:
    """Terms from a JSON file: a list of strings, an exported glossary, or an object's keys."""
    try:
        content = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[yellow]Warning:[/yellow] Could not load glossary file: {e}")
        return []

    if isinstance(content, list):
        return [t for t in content if isinstance(t, str)]
    if isinstance(content, dict) and isinstance(content.get("terms"), list):
        return [t["term"] for t in content["terms"] if isinstance(t, dict) and t.get("term")]
    if isinstance(content, dict):
        return list(content.keys())
    return []


def _open_glossary(config) -> GlossaryManager:
    return GlossaryManager(config["storage"]["glossary_path"]).initialize()


def _open_memory(config) -> TranslationMemoryStore:
    storage = config["storage"]
    return TranslationMemoryStore(storage["memory_dir"], storage["memory_autosave_every"]).initialize()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"polygot {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """polygot: Extract and translate UI strings with an LLM."""


@app.command()
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file."),
) -> None:
    """Create a default configuration file."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"Config already exists: [cyan]{config_path}[/cyan] (use --force to overwrite)")
        raise typer.Exit()

    try:
        create_default_config(config_path)
    except PolygotError as e:
        _fail(e)

    console.print(f"Created [cyan]{config_path}[/cyan]")
    console.print("Next steps:")
    console.print("  1. Set your API key in the config file or the OPENAI_API_KEY environment variable")
    console.print("  2. Add glossary terms that should not be translated: polygot glossary add <term> --dnt")
    console.print("  3. Set project.source, project.output and project.languages, then run: polygot run")


@app.command()
def extract(
    source: Path = typer.Argument(..., help="UI file or directory to scan."),
    language: str = typer.Argument(..., help="Source language code (e.g. en)."),
    output: Path = typer.Argument(..., help="Output directory for <language>.json."),
    attributes: Optional[str] = typer.Option(
        None, "--attributes", "-a", help="Comma-separated visible attributes ('*' wildcard allowed).",
    ),
    exclude: Optional[str] = typer.Option(
        None, "--exclude", "-e", help="Comma-separated selectors to skip (e.g. script,div.no-translate).",
    ),
) -> None:
    """Extract strings into a source-language file without translating."""
    from polygot.workflow import parse_and_extract

    config = load_config()
    parser_config = config["parser"]

    try:
        with console.status("Extracting..."):
            result = parse_and_extract(
                source,
                language,
                output,
                visible_attributes=_split_csv(attributes) or parser_config["visible_attributes"],
                exclude_tags=_split_csv(exclude) or parser_config["exclude_tags"],
            )
    except PolygotError as e:
        _fail(e)

    console.print(result.message)
    console.print(f"File: [cyan]{result.file}[/cyan]")
    console.print(
        f"New strings: [green]{result.strings_extracted}[/green], "
        f"already present: {result.strings_skipped}, total: {result.total_strings}"
    )


def _needs_translator(languages: List[str], source_lang: str) -> bool:
    return any(code != source_lang for code in languages)


def _as_list(value) -> List[str]:
    """Accept a comma-separated string or a list of strings from the config file."""
    if isinstance(value, str):
        return _split_csv(value)
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def _execute_translation(
    config,
    source: Path,
    languages: List[str],
    output: Path,
    *,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    context: Optional[str] = None,
    tone: Optional[str] = None,
    attributes: Optional[List[str]] = None,
    exclude: Optional[List[str]] = None,
    skip: Optional[List[str]] = None,
    glossary_terms: Optional[List[str]] = None,
    chunk_size: Optional[int] = None,
    preserve_formatting: bool = True,
    use_memory: bool = True,
    source_lang: Optional[str] = None,
) -> None:
    """Run parse_and_translate with config fallbacks and print the summary."""
    from polygot.ai.service import AIService
    from polygot.workflow import parse_and_translate, summarize_run

    translation_config = config["translation"]
    parser_config = config["parser"]
    source_lang = source_lang or translation_config["source_language"]

    try:
        resolved_key = resolve_api_key(api_key, config)

        # Only the source language requested: identity files, no provider needed
        service = None
        if _needs_translator(languages, source_lang):
            service = AIService(api_key=resolved_key, model_override=model, config=config)

        glossary = _open_glossary(config)
        extra_terms = list(dict.fromkeys(glossary_terms or []))
        if extra_terms:
            run_glossary = GlossaryManager.from_terms(extra_terms)
            run_glossary.terms = {**glossary.terms, **run_glossary.terms}
            glossary = run_glossary
            console.print(f"Glossary terms (will not be translated): {', '.join(extra_terms)}")

        memory = _open_memory(config) if use_memory else None

        with console.status(f"Translating to {', '.join(languages)}..."):
            run = parse_and_translate(
                source,
                languages,
                resolved_key,
                output,
                visible_attributes=attributes or parser_config["visible_attributes"],
                exclude_tags=exclude or parser_config["exclude_tags"],
                skip_patterns=skip or parser_config["skip_patterns"],
                source_lang=source_lang,
                model=service.get_model() if service is not None else (model or DEFAULT_MODEL),
                context=context if context is not None else translation_config["context"],
                tone=tone or translation_config["tone"],
                max_chunk_size=chunk_size or translation_config["chunk_size"],
                preserve_formatting=preserve_formatting and translation_config["preserve_formatting"],
                memory=memory,
                glossary=glossary if len(glossary) else None,
                chunk_delay=translation_config["chunk_delay"],
                translator=service,
            )
    except PolygotError as e:
        _fail(e)

    if service is not None:
        usage = service.get_total_token_usage()
        logger.info(
            f"Provider usage: {usage['prompt_tokens']} prompt + {usage['completion_tokens']} completion tokens"
        )

    if not run.success:
        console.print(f"[yellow]Warning:[/yellow] {run.message}")
        raise typer.Exit()

    table = Table(title="Translation Summary")
    table.add_column("Language")
    table.add_column("Memory", justify="right")
    table.add_column("Glossary", justify="right")
    table.add_column("API", justify="right")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Tokens", justify="right")
    for lang, counts in summarize_run(run).items():
        table.add_row(
            lang,
            str(counts["from_memory"]),
            str(counts["from_glossary"]),
            str(counts["from_api"]),
            str(counts["failed_strings"]),
            str(counts["tokens"]),
        )

    console.print(f"Extracted [green]{run.strings_extracted}[/green] strings ({run.strings_skipped} skipped by pattern)")
    if run.results:
        console.print(table)
    console.print(f"Total tokens used: {run.tokens_used['total']}")
    for file_path in run.files:
        console.print(f"  - [cyan]{file_path}[/cyan]")


@app.command()
def translate(
    source: Path = typer.Argument(..., help="UI file or directory to scan."),
    languages: str = typer.Argument(..., help="Comma-separated target language codes."),
    output: Path = typer.Argument(..., help="Output directory for the locale files."),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="API key for the provider."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name."),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Context for the translator."),
    tone: Optional[str] = typer.Option(None, "--tone", "-t", help="Tone: neutral, formal, casual..."),
    attributes: Optional[str] = typer.Option(None, "--attributes", "-a", help="Comma-separated visible attributes."),
    exclude: Optional[str] = typer.Option(None, "--exclude", "-e", help="Comma-separated selectors to skip."),
    skip: Optional[str] = typer.Option(None, "--skip", help="Comma-separated regex patterns of strings to leave untranslated."),
    glossary_terms: Optional[str] = typer.Option(
        None, "--glossary", "-g", help="Comma-separated terms that must not be translated.",
    ),
    glossary_file: Optional[Path] = typer.Option(None, "--glossary-file", help="JSON file of glossary terms."),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Strings per API call."),
    no_formatting: bool = typer.Option(False, "--no-formatting", help="Do not ask to preserve placeholders."),
    no_memory: bool = typer.Option(False, "--no-memory", help="Disable the translation memory."),
    source_lang: Optional[str] = typer.Option(None, "--source-lang", "-s", help="Source language code."),
) -> None:
    """Extract strings and translate them into one locale file per language."""
    terms = _split_csv(glossary_terms)
    if glossary_file is not None:
        terms += _load_glossary_file_terms(glossary_file)

    _execute_translation(
        load_config(),
        source,
        _split_csv(languages),
        output,
        api_key=api_key,
        model=model,
        context=context,
        tone=tone,
        attributes=_split_csv(attributes),
        exclude=_split_csv(exclude),
        skip=_split_csv(skip),
        glossary_terms=terms,
        chunk_size=chunk_size,
        preserve_formatting=not no_formatting,
        use_memory=not no_memory,
        source_lang=source_lang,
    )


@app.command("run")
def run_from_config(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: .polygot/config.json or POLYGOT_CONFIG).",
    ),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="API key for the provider."),
    no_memory: bool = typer.Option(False, "--no-memory", help="Disable the translation memory."),
) -> None:
    """Translate the project described in the config file."""
    config_path = config_file or get_config_path()
    if not config_path.exists():
        console.print(f"[red]Error:[/red] {config_path} does not exist")
        console.print("Run 'polygot init' to create a config file")
        raise typer.Exit(1)

    config = load_config(config_path)
    project = config["project"]

    terms = _as_list(project.get("glossary"))
    if project.get("glossary_file"):
        terms += _load_glossary_file_terms(Path(project["glossary_file"]))

    _execute_translation(
        config,
        Path(project["source"]),
        _as_list(project.get("languages")),
        Path(project["output"]),
        api_key=api_key,
        model=project.get("model") or None,
        glossary_terms=terms,
        use_memory=not no_memory,
    )


@app.command("languages")
def list_languages() -> None:
    """List the supported language codes."""
    table = Table(title="Supported Languages")
    table.add_column("Code", style="green")
    table.add_column("Language")
    codes = lc.get_supported_language_codes()
    for code in codes:
        table.add_row(code, lc.get_language_name(code))

    console.print(table)
    console.print(f"Total: {len(codes)} languages")


# ----------------------------------------------------------------------
# Glossary commands
# ----------------------------------------------------------------------

@glossary_app.command("add")
def glossary_add(
    term: str = typer.Argument(..., help="The term."),
    translation: Optional[List[str]] = typer.Option(
        None, "--translation", "-t", help="Translation as lang=text (repeatable).",
    ),
    dnt: bool = typer.Option(False, "--dnt", help="Never translate this term."),
    category: Optional[str] = typer.Option(None, "--category", help="Category (default: general)."),
    description: str = typer.Option("", "--description", help="Description."),
    context: str = typer.Option("", "--context", help="Usage context."),
    case_insensitive: bool = typer.Option(False, "--case-insensitive", help="Match regardless of case."),
) -> None:
    """Add a glossary term."""
    translations = {}
    for item in translation or []:
        lang, sep, text = item.partition("=")
        if not sep or not lang.strip() or not text.strip():
            _fail(PolygotError(f"Invalid translation {item!r}, expected lang=text"))
        translations[lang.strip()] = text.strip()

    try:
        glossary = _open_glossary(load_config())
        entry = glossary.add(
            term,
            translations,
            category=category,
            description=description,
            case_sensitive=not case_insensitive,
            do_not_translate=dnt,
            context=context,
        )
    except PolygotError as e:
        _fail(e)

    console.print(f"Added [cyan]{entry.term}[/cyan]")


@glossary_app.command("remove")
def glossary_remove(
    term: str = typer.Argument(..., help="The term."),
    case_insensitive: bool = typer.Option(False, "--case-insensitive", help="The term was added case-insensitive."),
) -> None:
    """Remove a glossary term."""
    try:
        removed = _open_glossary(load_config()).delete(term, case_sensitive=not case_insensitive)
    except PolygotError as e:
        _fail(e)

    if not removed:
        _fail(PolygotError(f"Term not found: {term}"))
    console.print(f"Removed [cyan]{term}[/cyan]")


@glossary_app.command("list")
def glossary_list(
    category: Optional[str] = typer.Option(None, "--category", help="Only this category."),
) -> None:
    """List glossary terms."""
    try:
        glossary = _open_glossary(load_config())
    except PolygotError as e:
        _fail(e)

    entries = glossary.get_by_category(category) if category else list(glossary.terms.values())

    table = Table(title="Glossary")
    table.add_column("Term")
    table.add_column("Category", style="dim")
    table.add_column("Do not translate")
    table.add_column("Translations")
    for entry in sorted(entries, key=lambda e: e.term.lower()):
        table.add_row(
            entry.term,
            entry.category,
            "yes" if entry.do_not_translate else "",
            ", ".join(f"{lang}={text}" for lang, text in sorted(entry.translations.items())),
        )
    console.print(table)


@glossary_app.command("stats")
def glossary_stats() -> None:
    """Show glossary statistics."""
    try:
        stats = _open_glossary(load_config()).get_stats()
    except PolygotError as e:
        _fail(e)

    console.print(f"Total terms: [green]{stats['total']}[/green]")
    console.print(f"Do not translate: {stats['do_not_translate']}")
    console.print(f"With translations: {stats['with_translations']}")
    for category, count in sorted(stats["by_category"].items()):
        console.print(f"  {category}: {count}")


@glossary_app.command("export")
def glossary_export(path: Path = typer.Argument(..., help="Output JSON file.")) -> None:
    """Export the glossary."""
    try:
        count = _open_glossary(load_config()).export_to(path)
    except PolygotError as e:
        _fail(e)
    console.print(f"Exported {count} terms to [cyan]{path}[/cyan]")


@glossary_app.command("import")
def glossary_import(path: Path = typer.Argument(..., help="JSON file written by 'glossary export'.")) -> None:
    """Import glossary terms."""
    try:
        count = _open_glossary(load_config()).import_from(path)
    except PolygotError as e:
        _fail(e)
    console.print(f"Imported {count} terms from [cyan]{path}[/cyan]")


# ----------------------------------------------------------------------
# Memory commands
# ----------------------------------------------------------------------

@memory_app.command("stats")
def memory_stats() -> None:
    """Show translation memory statistics."""
    try:
        memory = _open_memory(load_config())
    except PolygotError as e:
        _fail(e)

    stats = memory.get_stats()
    console.print(f"Entries: [green]{stats['total_entries']}[/green]")
    console.print(f"Hits: {stats['hits']}, misses: {stats['misses']} (hit rate {stats['hit_rate']})")
    console.print(f"Additions: {stats['additions']}")

    most_used = memory.get_most_used(10)
    if most_used:
        table = Table(title="Most used")
        table.add_column("Source")
        table.add_column("Translation")
        table.add_column("Languages", style="dim")
        table.add_column("Uses", justify="right")
        for item in most_used:
            table.add_row(item["source"][:60], item["translation"][:60], item["languages"], str(item["use_count"]))
        console.print(table)


@memory_app.command("clear")
def memory_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Remove every cached translation."""
    if not yes:
        typer.confirm("Clear the whole translation memory?", abort=True)

    try:
        _open_memory(load_config()).clear()
    except PolygotError as e:
        _fail(e)
    console.print("Translation memory cleared")


@memory_app.command("export")
def memory_export(path: Path = typer.Argument(..., help="Output JSON file.")) -> None:
    """Export the translation memory."""
    try:
        count = _open_memory(load_config()).export_to(path)
    except PolygotError as e:
        _fail(e)
    console.print(f"Exported {count} entries to [cyan]{path}[/cyan]")


@memory_app.command("import")
def memory_import(path: Path = typer.Argument(..., help="JSON file written by 'memory export'.")) -> None:
    """Import translation memory entries."""
    try:
        count = _open_memory(load_config()).import_from(path)
    except PolygotError as e:
        _fail(e)
    console.print(f"Imported {count} entries from [cyan]{path}[/cyan]")


if __name__ == "__main__":
    app()
