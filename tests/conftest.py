"""
Pytest configuration and fixtures for testing polygot.
"""

import os

import pytest

# Must be set before any polygot logger is created
os.environ['POLYGOT_LOG_MODE'] = 'off'

from polygot.memory.store import TranslationMemoryStore
from polygot.protection.glossary import GlossaryManager


class FakeTranslator:
    """
    Stand-in for the translation capability.

    Translates by prefixing each string with '<lang>:'. Chunks whose
    (0-based) index is in fail_on raise instead.
    """

    def __init__(self, fail_on=(), usage=None, drop=()):
        self.fail_on = set(fail_on)
        self.usage = usage or {'prompt_tokens': 10, 'completion_tokens': 5, 'total_tokens': 15}
        self.drop = set(drop)
        self.calls = []

    def translate_chunk(self, texts, target_language, system_prompt):
        index = len(self.calls)
        self.calls.append({'texts': list(texts), 'target_language': target_language, 'system_prompt': system_prompt})

        if index in self.fail_on:
            raise RuntimeError(f"simulated failure for chunk {index}")

        mapping = {text: f"{target_language}:{text}" for text in texts if text not in self.drop}
        return mapping, dict(self.usage)

    @property
    def sent_strings(self):
        return [text for call in self.calls for text in call['texts']]


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test in its own directory with no config or credentials from the host."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('POLYGOT_CONFIG', raising=False)
    for provider in ('OPENAI', 'DEEPSEEK', 'GEMINI'):
        monkeypatch.delenv(f'{provider}_API_KEY', raising=False)
    return tmp_path


@pytest.fixture
def fake_translator():
    return FakeTranslator()


@pytest.fixture
def memory(tmp_path):
    """Fresh translation memory in a temporary directory."""
    return TranslationMemoryStore(tmp_path / 'memory').initialize()


@pytest.fixture
def glossary(tmp_path):
    """Fresh glossary in a temporary directory."""
    return GlossaryManager(tmp_path / 'glossary.json').initialize()


@pytest.fixture
def ui_tree(tmp_path):
    """A small source tree with UI files, a hidden directory and node_modules."""
    src = tmp_path / 'src'
    (src / 'components').mkdir(parents=True)
    (src / 'node_modules' / 'lib').mkdir(parents=True)
    (src / '.cache').mkdir()

    (src / 'App.jsx').write_text(
        '<div title="Main area"><h1>Welcome to Acme</h1><p>Save</p></div>\n',
        encoding='utf-8',
    )
    (src / 'components' / 'Footer.tsx').write_text(
        '<footer><span>Contact us</span><span>v1.2.3</span></footer>\n',
        encoding='utf-8',
    )
    (src / 'components' / 'notes.txt').write_text('<p>Not scanned</p>', encoding='utf-8')
    (src / 'node_modules' / 'lib' / 'Widget.jsx').write_text('<p>Vendored</p>', encoding='utf-8')
    (src / '.cache' / 'Cached.html').write_text('<p>Hidden</p>', encoding='utf-8')
    return src
