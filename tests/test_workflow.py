"""Test suite for the extract and translate workflows."""

import json

import pytest

from conftest import FakeTranslator
from polygot.exceptions import InvalidInputError, MissingCredentialError, UnsupportedLanguageError
from polygot.project.scanner import is_ui_file, scan_ui_directory
from polygot.workflow import (
    extract_from_path,
    parse_and_extract,
    parse_and_translate,
    parse_file,
    summarize_run,
)

ALL_STRINGS = ['Contact us', 'Main area', 'Save', 'Welcome to Acme', 'v1.2.3']


def _read(path):
    return json.loads(path.read_text(encoding='utf-8'))


class TestScanner:
    """Test cases for finding UI files."""

    def test_extensions(self):
        assert is_ui_file('App.JSX')
        assert is_ui_file('index.html')
        assert not is_ui_file('notes.txt')

    def test_hidden_and_dependency_directories_skipped(self, ui_tree):
        names = [p.name for p in scan_ui_directory(ui_tree)]
        assert names == ['App.jsx', 'Footer.tsx']


class TestExtraction:
    """Test cases for extracting from files and directories."""

    def test_directory_union(self, ui_tree):
        assert extract_from_path(ui_tree) == ALL_STRINGS

    def test_single_file(self, ui_tree):
        assert parse_file(ui_tree / 'App.jsx') == ['Main area', 'Save', 'Welcome to Acme']

    def test_non_ui_file_rejected(self, ui_tree):
        with pytest.raises(InvalidInputError):
            parse_file(ui_tree / 'components' / 'notes.txt')

    def test_missing_path(self, tmp_path):
        with pytest.raises(InvalidInputError):
            extract_from_path(tmp_path / 'missing')

    def test_unreadable_file_skipped_in_directory(self, ui_tree):
        (ui_tree / 'Broken.html').write_bytes(b'<p>\xff\xfe bad</p>')
        assert extract_from_path(ui_tree) == ALL_STRINGS


class TestParseAndExtract:
    """Test cases for writing the source-language file."""

    def test_identity_file_written(self, ui_tree, tmp_path):
        result = parse_and_extract(ui_tree, 'en', tmp_path / 'locales')

        assert result.strings_extracted == 5
        assert _read(tmp_path / 'locales' / 'en.json') == {s: s for s in ALL_STRINGS}

    def test_existing_entries_preserved(self, ui_tree, tmp_path):
        locales = tmp_path / 'locales'
        locales.mkdir()
        (locales / 'en.json').write_text(json.dumps({'Save': 'Save changes', 'Old': 'Old'}), encoding='utf-8')

        result = parse_and_extract(ui_tree, 'en', locales)
        data = _read(locales / 'en.json')

        assert data['Save'] == 'Save changes'
        assert data['Old'] == 'Old'
        assert result.strings_extracted == 4
        assert result.strings_skipped == 1
        assert result.total_strings == 6

    def test_second_run_adds_nothing(self, ui_tree, tmp_path):
        parse_and_extract(ui_tree, 'en', tmp_path / 'locales')
        result = parse_and_extract(ui_tree, 'en', tmp_path / 'locales')
        assert result.strings_extracted == 0
        assert result.message == 'No new strings found - all strings already exist'


class TestParseAndTranslate:
    """Test cases for the full translation run."""

    def test_one_file_per_language(self, ui_tree, tmp_path, fake_translator):
        out = tmp_path / 'locales'
        run = parse_and_translate(ui_tree, 'es,fr', 'key', out, translator=fake_translator, chunk_delay=0)

        assert run.success
        assert [p.name for p in run.files] == ['es.json', 'fr.json']
        assert _read(out / 'es.json') == {s: f'es:{s}' for s in ALL_STRINGS}
        assert _read(out / 'fr.json')['Save'] == 'fr:Save'
        assert run.tokens_used['total'] == 30

    def test_source_language_is_identity(self, ui_tree, tmp_path, fake_translator):
        out = tmp_path / 'locales'
        parse_and_translate(ui_tree, ['en', 'es'], 'key', out, translator=fake_translator, chunk_delay=0)

        assert _read(out / 'en.json') == {s: s for s in ALL_STRINGS}
        assert all(call['target_language'] == 'es' for call in fake_translator.calls)

    def test_skip_patterns_written_untranslated(self, ui_tree, tmp_path, fake_translator):
        out = tmp_path / 'locales'
        run = parse_and_translate(ui_tree, 'es', 'key', out, skip_patterns=[r'^v\d'],
                                  translator=fake_translator, chunk_delay=0)

        data = _read(out / 'es.json')
        assert data['v1.2.3'] == 'v1.2.3'
        assert data['Save'] == 'es:Save'
        assert 'v1.2.3' not in fake_translator.sent_strings
        assert run.strings_skipped == 1

    def test_glossary_and_memory(self, ui_tree, tmp_path, fake_translator, memory, glossary):
        glossary.add('Acme', do_not_translate=True)
        memory.store('Save', 'Guardar', 'en', 'es')

        out = tmp_path / 'locales'
        run = parse_and_translate(ui_tree, 'es', 'key', out, memory=memory, glossary=glossary,
                                  translator=fake_translator, chunk_delay=0)

        data = _read(out / 'es.json')
        assert data['Save'] == 'Guardar'
        assert data['Welcome to Acme'] == 'es:Welcome to Acme'
        assert summarize_run(run)['es']['from_memory'] == 1

        saved = _read(memory.file_path)
        assert len(saved['entries']) == 5

    def test_failed_chunk_still_writes_file(self, ui_tree, tmp_path):
        out = tmp_path / 'locales'
        parse_and_translate(ui_tree, 'es', 'key', out, max_chunk_size=2,
                            translator=FakeTranslator(fail_on={0}), chunk_delay=0)

        data = _read(out / 'es.json')
        assert set(data) == set(ALL_STRINGS)
        assert data['Contact us'] == 'Contact us'
        assert data['Welcome to Acme'] == 'es:Welcome to Acme'

    def test_unsupported_language_fails_before_writing(self, ui_tree, tmp_path, fake_translator):
        out = tmp_path / 'locales'
        with pytest.raises(UnsupportedLanguageError):
            parse_and_translate(ui_tree, 'es,xx', 'key', out, translator=fake_translator)
        assert not out.exists()

    def test_missing_api_key(self, ui_tree, tmp_path, fake_translator):
        with pytest.raises(MissingCredentialError):
            parse_and_translate(ui_tree, 'es', None, tmp_path / 'locales', translator=fake_translator)

    def test_source_only_needs_no_key(self, ui_tree, tmp_path):
        run = parse_and_translate(ui_tree, 'en', None, tmp_path / 'locales')
        assert run.success
        assert run.tokens_used['total'] == 0

    def test_no_strings(self, tmp_path, fake_translator):
        empty = tmp_path / 'empty'
        empty.mkdir()
        run = parse_and_translate(empty, 'es', 'key', tmp_path / 'locales', translator=fake_translator)
        assert not run.success
        assert run.files == []

    def test_no_languages(self, ui_tree, tmp_path):
        with pytest.raises(InvalidInputError):
            parse_and_translate(ui_tree, ' , ', 'key', tmp_path / 'locales')
