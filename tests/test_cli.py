"""Test suite for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from conftest import FakeTranslator
from polygot import __version__
from polygot.cli import app

runner = CliRunner()


class StubService(FakeTranslator):
    """FakeTranslator with the AIService constructor and get_model."""

    def __init__(self, api_key=None, model_override=None, config=None, **kwargs):
        super().__init__()
        self.api_key = api_key
        self.model = model_override or 'gpt-4o-mini'

    def get_model(self):
        return self.model

    def get_total_token_usage(self):
        return {"prompt_tokens": 0, "completion_tokens": 0}


@pytest.fixture
def stub_service(monkeypatch):
    monkeypatch.setattr('polygot.ai.service.AIService', StubService)


class TestGeneralCommands:
    """Test cases for version and init."""

    def test_version(self):
        result = runner.invoke(app, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_creates_config(self, isolated_cwd):
        result = runner.invoke(app, ['init'])
        assert result.exit_code == 0

        config = json.loads((isolated_cwd / '.polygot' / 'config.json').read_text(encoding='utf-8'))
        assert config['ai_provider'] == 'openai'
        assert config['translation']['chunk_size'] == 50

    def test_init_keeps_existing_config(self, isolated_cwd):
        runner.invoke(app, ['init'])
        result = runner.invoke(app, ['init'])
        assert result.exit_code == 0
        assert 'already exists' in result.output


class TestExtractCommand:
    """Test cases for 'polygot extract'."""

    def test_extract(self, ui_tree, tmp_path):
        result = runner.invoke(app, ['extract', str(ui_tree), 'en', str(tmp_path / 'locales')])

        assert result.exit_code == 0
        assert 'Added 5 new strings' in result.output
        data = json.loads((tmp_path / 'locales' / 'en.json').read_text(encoding='utf-8'))
        assert data['Save'] == 'Save'

    def test_extract_with_exclusion(self, tmp_path):
        page = tmp_path / 'page.html'
        page.write_text('<div class="legal"><p>Terms</p></div><p>Home</p>', encoding='utf-8')

        result = runner.invoke(app, ['extract', str(page), 'en', str(tmp_path / 'out'), '-e', 'div.legal'])
        assert result.exit_code == 0
        data = json.loads((tmp_path / 'out' / 'en.json').read_text(encoding='utf-8'))
        assert data == {'Home': 'Home'}

    def test_invalid_source(self, tmp_path):
        result = runner.invoke(app, ['extract', str(tmp_path / 'missing'), 'en', str(tmp_path / 'out')])
        assert result.exit_code == 1
        assert 'Error' in result.output


class TestTranslateCommand:
    """Test cases for 'polygot translate'."""

    def test_translate(self, ui_tree, tmp_path, stub_service):
        out = tmp_path / 'locales'
        result = runner.invoke(app, ['translate', str(ui_tree), 'es', str(out), '--api-key', 'k', '--no-memory'])

        assert result.exit_code == 0, result.output
        data = json.loads((out / 'es.json').read_text(encoding='utf-8'))
        assert data['Save'] == 'es:Save'
        assert 'Total tokens used: 15' in result.output

    def test_glossary_option_protects_terms(self, ui_tree, tmp_path, stub_service):
        out = tmp_path / 'locales'
        result = runner.invoke(app, [
            'translate', str(ui_tree), 'es', str(out), '--api-key', 'k', '--no-memory', '-g', 'Acme',
        ])

        assert result.exit_code == 0, result.output
        data = json.loads((out / 'es.json').read_text(encoding='utf-8'))
        assert data['Welcome to Acme'] == 'es:Welcome to Acme'

    def test_unsupported_language(self, ui_tree, tmp_path, stub_service):
        result = runner.invoke(app, ['translate', str(ui_tree), 'xx', str(tmp_path / 'out'), '--api-key', 'k'])
        assert result.exit_code == 1
        assert 'Unsupported language' in result.output

    def test_missing_api_key(self, ui_tree, tmp_path):
        result = runner.invoke(app, ['translate', str(ui_tree), 'es', str(tmp_path / 'out')])
        assert result.exit_code == 1
        assert 'API key' in result.output

    def test_source_language_only_needs_no_key(self, ui_tree, tmp_path):
        """Translating into the source language writes identity entries without a provider."""
        out = tmp_path / 'locales'
        result = runner.invoke(app, ['translate', str(ui_tree), 'en', str(out), '--no-memory'])

        assert result.exit_code == 0, result.output
        data = json.loads((out / 'en.json').read_text(encoding='utf-8'))
        assert data['Save'] == 'Save'
        assert all(key == value for key, value in data.items())


class TestRunCommand:
    """Test cases for 'polygot run' driven by the project block."""

    def _write_config(self, path, ui_tree, output, **project):
        config = {'project': {'source': str(ui_tree), 'output': str(output), 'languages': ['es'], **project}}
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config), encoding='utf-8')

    def test_run_from_project_config(self, isolated_cwd, ui_tree, tmp_path, stub_service):
        out = tmp_path / 'locales'
        self._write_config(isolated_cwd / '.polygot' / 'config.json', ui_tree, out, glossary=['Acme'])

        result = runner.invoke(app, ['run', '--api-key', 'k', '--no-memory'])

        assert result.exit_code == 0, result.output
        data = json.loads((out / 'es.json').read_text(encoding='utf-8'))
        assert data['Save'] == 'es:Save'
        assert data['Welcome to Acme'] == 'es:Welcome to Acme'

    def test_run_with_custom_config_path(self, isolated_cwd, ui_tree, tmp_path, stub_service):
        out = tmp_path / 'custom-out'
        config_path = isolated_cwd / 'polygot.json'
        self._write_config(config_path, ui_tree, out, languages=['fr', 'en'])

        result = runner.invoke(app, ['run', '--config', str(config_path), '--api-key', 'k', '--no-memory'])

        assert result.exit_code == 0, result.output
        assert json.loads((out / 'fr.json').read_text(encoding='utf-8'))['Save'] == 'fr:Save'
        assert json.loads((out / 'en.json').read_text(encoding='utf-8'))['Save'] == 'Save'

    def test_glossary_file_terms(self, isolated_cwd, ui_tree, tmp_path, stub_service):
        out = tmp_path / 'locales'
        (isolated_cwd / 'terms.json').write_text(json.dumps(['Acme']), encoding='utf-8')
        self._write_config(isolated_cwd / '.polygot' / 'config.json', ui_tree, out, glossary_file='terms.json')

        result = runner.invoke(app, ['run', '--api-key', 'k', '--no-memory'])

        assert result.exit_code == 0, result.output
        assert 'Acme' in result.output

    def test_missing_config(self, isolated_cwd):
        result = runner.invoke(app, ['run'])
        assert result.exit_code == 1
        assert 'does not exist' in result.output


class TestLanguagesCommand:
    """Test cases for 'polygot languages'."""

    def test_lists_supported_languages(self):
        result = runner.invoke(app, ['languages'])

        assert result.exit_code == 0
        assert 'Spanish' in result.output
        assert 'Total:' in result.output


class TestGlossaryCommands:
    """Test cases for 'polygot glossary'."""

    def test_add_and_list(self, isolated_cwd):
        result = runner.invoke(app, ['glossary', 'add', 'Dashboard', '-t', 'es=Panel', '--category', 'ui'])
        assert result.exit_code == 0

        data = json.loads((isolated_cwd / '.polygot' / 'glossary.json').read_text(encoding='utf-8'))
        assert data['terms'][0]['translations'] == {'es': 'Panel'}

        result = runner.invoke(app, ['glossary', 'list'])
        assert 'Dashboard' in result.output

    def test_add_invalid_translation(self):
        result = runner.invoke(app, ['glossary', 'add', 'Dashboard', '-t', 'Panel'])
        assert result.exit_code == 1

    def test_remove(self):
        runner.invoke(app, ['glossary', 'add', 'Acme', '--dnt'])
        assert runner.invoke(app, ['glossary', 'remove', 'Acme']).exit_code == 0
        assert runner.invoke(app, ['glossary', 'remove', 'Acme']).exit_code == 1

    def test_stats(self):
        runner.invoke(app, ['glossary', 'add', 'Acme', '--dnt'])
        result = runner.invoke(app, ['glossary', 'stats'])
        assert 'Total terms: 1' in result.output


class TestMemoryCommands:
    """Test cases for 'polygot memory'."""

    def test_stats_on_empty_memory(self):
        result = runner.invoke(app, ['memory', 'stats'])
        assert result.exit_code == 0
        assert 'Entries: 0' in result.output

    def test_export_import_clear(self, isolated_cwd):
        from polygot.memory.store import TranslationMemoryStore

        store = TranslationMemoryStore('.polygot/memory').initialize()
        store.store('Save', 'Guardar', 'en', 'es')
        store.save()

        export_path = isolated_cwd / 'memory-export.json'
        assert runner.invoke(app, ['memory', 'export', str(export_path)]).exit_code == 0
        assert runner.invoke(app, ['memory', 'clear', '--yes']).exit_code == 0
        assert 'Entries: 0' in runner.invoke(app, ['memory', 'stats']).output

        result = runner.invoke(app, ['memory', 'import', str(export_path)])
        assert 'Imported 1 entries' in result.output
