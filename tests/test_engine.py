"""
ChatNPT Engine Tests
"""
import json
import logging
import time
from collections import deque

import pytest

from chatnpt import engine
from chatnpt.index import rebuild_index


class TestAsk:
    """Blocking question answering"""

    def test_generated_answer_with_recovered_sources(self, records, member, fake_openai):
        result, err = engine.ask('When is the firewall cutover?', member)
        assert err == ''
        assert result.answer == 'The firewall cutover is next weekend (Source 1).'
        assert [s['number'] for s in result.sources] == [1]
        assert result.sources[0]['source_type'] == 'webex_recordings'
        assert result.sources[0]['display_time'] == '5s'

        assert result.meta['intent'] == 'answer'
        assert result.meta['candidates'] == 19
        assert result.meta['context_chunks'] >= 1
        assert result.meta['cited'] == 1
        assert 'total_ms' in result.meta['latency_ms']

        prompt = [c[1] for c in fake_openai.calls if c[0] == 'complete'][0]
        assert prompt.count('[Source 1 |') == 1
        assert 'When is the firewall cutover?' in prompt

    def test_no_data(self, records, member, fake_openai, monkeypatch):
        monkeypatch.setattr(engine, 'gather_chunks', lambda user: [])
        result, err = engine.ask('Anything?', member)
        assert err == ''
        assert result.answer == engine.NO_DATA_ANSWER
        assert result.sources == []
        assert fake_openai.calls == []

    def test_no_relevant_chunks(self, records, member, fake_openai):
        result, err = engine.ask('zzyzx qwerty', member)
        assert result.answer == engine.NO_MATCH_ANSWER
        assert result.sources == []
        assert fake_openai.count('complete') == 0

    def test_list_query_skips_generation(self, records, member, fake_openai):
        fake_openai.intent = {
            'intent': 'list', 'record_type': 'resource_assignments', 'filters': {'practice': 'Security'},
        }
        result, err = engine.ask('List the Security resource assignments', member)
        assert err == ''
        assert result.answer.startswith('Found 2 resource assignments matching practice=Security:')
        assert result.meta['intent'] == 'list'
        assert result.meta['count'] == 2
        assert fake_openai.count('complete') == 0

    def test_list_query_runs_even_without_keyword_hits(self, records, member, fake_openai):
        fake_openai.intent = {'intent': 'list', 'record_type': 'releases', 'filters': {}}
        result, _ = engine.ask('zzyzx qwerty', member)
        assert result.answer.startswith('Found 1 release:')

    def test_vector_hits_respect_permissions(self, records, test_org, member, fake_openai):
        rebuild_index(test_org.id)
        fake_openai.answer = 'Nothing relevant (Source 1).'
        result, _ = engine.ask('Budget for Security headcount', member)
        prompt = [c[1] for c in fake_openai.calls if c[0] == 'complete'][0]
        assert 'Budget for Security headcount' not in prompt.split('Question')[0]
        assert result.meta['vector_hits'] > 0
        assert all(s['topic'] != 'Budget for Security headcount' for s in result.sources)

    def test_vector_failure_degrades_to_lexical(self, records, member, fake_openai):
        fake_openai.fail_embeddings = True
        result, err = engine.ask('When is the firewall cutover?', member)
        assert err == ''
        assert 'Embedding failed' in result.meta['vector_error']
        assert result.sources

    def test_vector_search_can_be_disabled(self, app, records, member, fake_openai):
        app.config['CHATNPT_VECTOR_ENABLED'] = False
        engine.ask('When is the firewall cutover?', member)
        assert fake_openai.count('embed') == 0

    def test_generation_failure(self, records, member, fake_openai):
        fake_openai.fail_chat = True
        result, err = engine.ask('When is the firewall cutover?', member)
        assert result is None
        assert 'LLM request failed' in err

    def test_uncited_numbers_out_of_range(self, records, member, fake_openai):
        fake_openai.answer = 'See Source 99.'
        result, _ = engine.ask('When is the firewall cutover?', member)
        assert result.sources == []

    def test_empty_model_output(self, records, member, fake_openai):
        fake_openai.answer = '   '
        result, _ = engine.ask('When is the firewall cutover?', member)
        assert result.answer == engine.EMPTY_ANSWER

    def test_rate_limit(self, app, records, member, fake_openai):
        app.config['CHATNPT_RATE_MAX'] = 1
        engine.ask('When is the firewall cutover?', member)
        with pytest.raises(engine.RateLimitError):
            engine.ask('When is the firewall cutover?', member)

    def test_expired_rate_buckets_are_dropped(self, app):
        engine._RATE_BUCKETS['user:999'] = deque([time.time() - 3600])
        engine.enforce_rate_limit('user:1')
        assert 'user:999' not in engine._RATE_BUCKETS
        assert len(engine._RATE_BUCKETS['user:1']) == 1

    def test_telemetry_line(self, records, member, fake_openai, caplog):
        with caplog.at_level(logging.INFO, logger='chatnpt.engine'):
            engine.ask('When is the firewall cutover?', member)
        lines = [json.loads(r.getMessage()) for r in caplog.records if r.name == 'chatnpt.engine']
        assert lines[-1]['event'] == 'chatnpt'
        assert lines[-1]['intent'] == 'answer'
        assert lines[-1]['cited'] == 1


class TestStream:
    """Streaming event protocol"""

    def test_event_order(self, records, member, fake_openai):
        fake_openai.stream_parts = ['The cutover ', 'is next weekend ', '(Source 1).']
        events = list(engine.stream('When is the firewall cutover?', member))
        types = [e['type'] for e in events]
        assert types == ['meta', 'delta', 'delta', 'delta', 'sources', 'done']
        assert events[0]['intent'] == 'answer'
        assert ''.join(e['text'] for e in events if e['type'] == 'delta') == 'The cutover is next weekend (Source 1).'
        assert [s['number'] for s in events[4]['sources']] == [1]

    def test_list_query_is_one_delta(self, records, member, fake_openai):
        fake_openai.intent = {'intent': 'list', 'record_type': 'companies', 'filters': {}}
        events = list(engine.stream('Which companies do we work with?', member))
        assert [e['type'] for e in events] == ['meta', 'delta', 'sources', 'done']
        assert events[1]['text'].startswith('Found 1 company:')
        assert fake_openai.count('stream') == 0

    def test_generation_error_ends_stream(self, records, member, fake_openai):
        fake_openai.fail_chat = True
        events = list(engine.stream('When is the firewall cutover?', member))
        assert events[-1]['type'] == 'error'
        assert 'LLM request failed' in events[-1]['error']
        assert 'done' not in [e['type'] for e in events]

    def test_rate_limit_raised_before_streaming(self, app, records, member, fake_openai):
        app.config['CHATNPT_RATE_MAX'] = 0
        with pytest.raises(engine.RateLimitError):
            engine.stream('When is the firewall cutover?', member)
