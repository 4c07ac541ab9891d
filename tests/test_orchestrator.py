"""Test suite for the three-tier translation orchestrator."""

import pytest

from conftest import FakeTranslator
from polygot.exceptions import InvalidInputError, MissingCredentialError, UnsupportedLanguageError
from polygot.translation.orchestrator import translate_strings


def _translate(strings, translator, **kwargs):
    kwargs.setdefault('chunk_delay', 0)
    return translate_strings(strings, kwargs.pop('target_language', 'es'), 'test-key', translator=translator, **kwargs)


class TestValidation:
    """Test cases for request validation order."""

    def test_language_checked_first(self, fake_translator):
        with pytest.raises(UnsupportedLanguageError):
            translate_strings([], 'xx', None, translator=fake_translator)

    def test_empty_strings(self, fake_translator):
        with pytest.raises(InvalidInputError):
            translate_strings([], 'es', None, translator=fake_translator)

    def test_non_list_strings(self, fake_translator):
        with pytest.raises(InvalidInputError):
            translate_strings('Save', 'es', 'key', translator=fake_translator)

    def test_set_input_accepted(self, fake_translator):
        result = _translate({'Save', 'Cancel'}, fake_translator)
        assert result.translations == {'Save': 'es:Save', 'Cancel': 'es:Cancel'}

    def test_bytes_rejected(self, fake_translator):
        with pytest.raises(InvalidInputError):
            translate_strings(b'Save', 'es', 'key', translator=fake_translator)

    def test_missing_api_key(self, fake_translator):
        with pytest.raises(MissingCredentialError):
            translate_strings(['Save'], 'es', '', translator=fake_translator)

    def test_bad_chunk_size(self, fake_translator):
        with pytest.raises(InvalidInputError):
            translate_strings(['Save'], 'es', 'key', max_chunk_size=0, translator=fake_translator)
        assert fake_translator.calls == []


class TestTranslateStrings:
    """Test cases for the happy path."""

    def test_every_unique_string_translated(self, fake_translator):
        result = _translate(['Save', 'Cancel', 'Save', '  ', ''], fake_translator)

        assert result.translations == {'Save': 'es:Save', 'Cancel': 'es:Cancel'}
        assert fake_translator.sent_strings == ['Save', 'Cancel']
        assert result.metadata['total_strings'] == 2
        assert result.metadata['from_api'] == 2
        assert result.language == {'code': 'es', 'name': 'Spanish'}

    def test_tokens_summed_per_chunk(self, fake_translator):
        result = _translate(['a1', 'a2', 'a3', 'a4', 'a5'], fake_translator, max_chunk_size=2)

        assert len(fake_translator.calls) == 3
        assert result.tokens_used['input'] == 30
        assert result.tokens_used['output'] == 15
        assert result.tokens_used['total'] == 45
        assert [c['chunk'] for c in result.tokens_used['chunks']] == [1, 2, 3]
        assert result.metadata['chunks'] == 3

    def test_system_prompt_carries_options(self, fake_translator):
        _translate(['Save'], fake_translator, tone='formal', context='Banking app')
        prompt = fake_translator.calls[0]['system_prompt']
        assert 'Spanish' in prompt
        assert 'Use a formal tone' in prompt
        assert 'Context: Banking app' in prompt

    def test_progress_reported_per_chunk(self, fake_translator):
        events = []
        _translate(['a', 'b', 'c'], fake_translator, max_chunk_size=2, progress_callback=events.append)
        assert [e.current_batch for e in events] == [1, 2]
        assert all(e.total_batches == 2 for e in events)
        assert events[-1].success_count == 3


class TestChunkFailures:
    """Test cases for per-chunk failure isolation."""

    def test_failed_chunk_falls_back_to_originals(self):
        translator = FakeTranslator(fail_on={1})
        result = _translate(['a', 'b', 'c', 'd', 'e', 'f'], translator, max_chunk_size=2)

        assert result.translations == {
            'a': 'es:a', 'b': 'es:b',
            'c': 'c', 'd': 'd',
            'e': 'es:e', 'f': 'es:f',
        }
        assert result.tokens_used['total'] == 30
        assert result.metadata['failed_chunks'] == 1
        assert result.metadata['failed_strings'] == 2

    def test_all_chunks_failing_still_total(self):
        translator = FakeTranslator(fail_on={0})
        result = _translate(['Save'], translator)
        assert result.translations == {'Save': 'Save'}
        assert result.tokens_used['total'] == 0

    def test_missing_response_entry_keeps_original(self, memory):
        translator = FakeTranslator(drop={'Cancel'})
        result = _translate(['Save', 'Cancel'], translator, memory=memory)

        assert result.translations == {'Save': 'es:Save', 'Cancel': 'Cancel'}
        assert memory.lookup('Save', 'en', 'es') == 'es:Save'
        assert memory.lookup('Cancel', 'en', 'es') is None


class TestMemoryTier:
    """Test cases for the translation memory tier."""

    def test_hits_skip_the_api(self, memory, fake_translator):
        memory.store('Save', 'Guardar', 'en', 'es')
        result = _translate(['Save', 'Cancel'], fake_translator, memory=memory)

        assert result.translations == {'Save': 'Guardar', 'Cancel': 'es:Cancel'}
        assert fake_translator.sent_strings == ['Cancel']
        assert result.metadata['from_memory'] == 1
        assert result.metadata['from_api'] == 1

    def test_api_results_are_remembered(self, memory, fake_translator):
        _translate(['Save'], fake_translator, memory=memory, model='gpt-4o', tone='formal')
        entry = memory.get_entry('Save', 'en', 'es')
        assert entry.translation == 'es:Save'
        assert entry.metadata['model'] == 'gpt-4o'

    def test_all_hits_makes_no_calls(self, memory, fake_translator):
        memory.batch_store({'Save': 'Guardar', 'Cancel': 'Cancelar'}, 'en', 'es')
        result = _translate(['Save', 'Cancel'], fake_translator, memory=memory)

        assert fake_translator.calls == []
        assert result.tokens_used['total'] == 0
        assert result.metadata['from_api'] == 0


class TestGlossaryTier:
    """Test cases for the glossary tier."""

    def test_whole_term_resolved_locally(self, glossary, fake_translator):
        glossary.add('Acme', do_not_translate=True)
        result = _translate(['Acme'], fake_translator, glossary=glossary)

        assert result.translations == {'Acme': 'Acme'}
        assert fake_translator.calls == []
        assert result.metadata['from_glossary'] == 1

    def test_embedded_term_protected(self, glossary, fake_translator):
        glossary.add('Acme', do_not_translate=True)
        result = _translate(['Welcome to Acme'], fake_translator, glossary=glossary)

        assert fake_translator.sent_strings == ['Welcome to __GLOSSARY_0__']
        assert result.translations == {'Welcome to Acme': 'es:Welcome to Acme'}
        assert '__GLOSSARY_N__' in fake_translator.calls[0]['system_prompt']

    def test_failed_chunk_returns_unprotected_original(self, glossary):
        glossary.add('Acme', do_not_translate=True)
        translator = FakeTranslator(fail_on={0})
        result = _translate(['Welcome to Acme'], translator, glossary=glossary)
        assert result.translations == {'Welcome to Acme': 'Welcome to Acme'}

    def test_provenance_adds_up(self, memory, glossary, fake_translator):
        memory.store('Save', 'Guardar', 'en', 'es')
        glossary.add('Acme', do_not_translate=True)
        result = _translate(['Save', 'Acme', 'Cancel', 'Delete'], fake_translator, memory=memory, glossary=glossary)

        meta = result.metadata
        assert (meta['from_memory'], meta['from_glossary'], meta['from_api']) == (1, 1, 2)
        assert meta['from_memory'] + meta['from_glossary'] + meta['from_api'] == meta['total_strings']
        assert set(result.translations) == {'Save', 'Acme', 'Cancel', 'Delete'}
