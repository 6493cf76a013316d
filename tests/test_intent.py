"""
Intent Classification Tests
"""
from chatnpt.intent import ANSWER, LIST, classifier_prompt, classify_intent, heuristic_intent, validate_classification
from tests.conftest import FakeOpenAI


class TestValidateClassification:
    """Classifier replies are checked before they are trusted"""

    def test_valid_list_intent(self):
        intent = validate_classification({
            'intent': 'list',
            'record_type': 'resource_assignments',
            'filters': {'practice': 'Security', 'status': 'Pending'},
        })
        assert intent.is_list
        assert intent.record_type == 'resource_assignments'
        assert intent.filters == {'practice': 'Security', 'status': 'Pending'}

    def test_unknown_filter_fields_are_dropped(self):
        intent = validate_classification({
            'intent': 'list', 'record_type': 'issues', 'filters': {'password_hash': 'x', 'status': 'Open'},
        })
        assert intent.filters == {'status': 'Open'}

    def test_blank_filter_value_falls_back_to_answer(self):
        intent = validate_classification({'intent': 'list', 'record_type': 'issues', 'filters': {'status': '  '}})
        assert intent.kind == ANSWER
        assert intent.reason == 'invalid filter value'

    def test_non_scalar_filter_values_fall_back_to_answer(self):
        for value in (['Security'], {'eq': 'Security'}, None, True):
            intent = validate_classification({'intent': 'list', 'record_type': 'issues', 'filters': {'practice': value}})
            assert intent.kind == ANSWER, value
            assert not intent.is_list

    def test_numeric_filter_values_are_coerced(self):
        intent = validate_classification({'intent': 'list', 'record_type': 'issues', 'filters': {'issue_type': 7}})
        assert intent.filters == {'issue_type': '7'}

    def test_unknown_record_type_falls_back_to_answer(self):
        intent = validate_classification({'intent': 'list', 'record_type': 'spaceships', 'filters': {}})
        assert intent.kind == ANSWER
        assert not intent.is_list

    def test_answer_intent(self):
        assert validate_classification({'intent': 'answer'}).kind == ANSWER

    def test_garbage(self):
        assert validate_classification(['list']).kind == ANSWER
        assert validate_classification({'intent': 'list', 'record_type': 'issues', 'filters': 'open'}).kind == ANSWER


class TestHeuristicIntent:
    """Fallback when the classifier is unavailable"""

    def test_listing_phrase_and_alias(self):
        intent = heuristic_intent('List all resource assignments')
        assert intent.kind == LIST
        assert intent.record_type == 'resource_assignments'
        assert intent.filters == {}

    def test_listing_word_inside_the_question(self):
        assert heuristic_intent('Can you list the open issues?').record_type == 'issues'
        assert heuristic_intent('Please count the contacts').kind == LIST
        assert heuristic_intent('Please count the contacts').record_type == 'contacts'

    def test_listing_word_must_be_whole(self):
        assert heuristic_intent('Send the playlist to the contacts').kind == ANSWER

    def test_longest_alias_wins(self):
        assert heuristic_intent('How many SA assignments are there?').record_type == 'sa_assignments'

    def test_needs_a_listing_phrase(self):
        assert heuristic_intent('Tell me about the resource assignments').kind == ANSWER

    def test_needs_a_record_type(self):
        assert heuristic_intent('How many days until the cutover?').kind == ANSWER


class TestClassifyIntent:

    def test_uses_classifier_reply(self, app, fake_openai):
        fake_openai.intent = {'intent': 'list', 'record_type': 'issues', 'filters': {'status': 'Open'}}
        intent = classify_intent('Show me all open issues')
        assert intent.is_list
        assert intent.filters == {'status': 'Open'}
        assert intent.reason == 'classifier'
        assert fake_openai.count('classify') == 1

    def test_prompt_lists_record_types_and_fields(self, app, fake_openai):
        classify_intent('anything')
        prompt = fake_openai.calls[0][1]
        assert prompt == classifier_prompt('anything')
        assert '"record_type": "sa_to_am_mappings"' in prompt
        assert 'filterable_fields' in prompt

    def test_invalid_json_falls_back_to_heuristic(self, app, fake_openai):
        fake_openai.chat.completions.create = lambda **kw: FakeOpenAI._message("no json here")
        intent = classify_intent('list all contacts')
        assert intent.reason == 'heuristic'
        assert intent.record_type == 'contacts'

    def test_disabled_classifier_skips_model(self, app, fake_openai):
        app.config['CHATNPT_CLASSIFIER_ENABLED'] = False
        intent = classify_intent('list all companies')
        assert intent.record_type == 'companies'
        assert fake_openai.count('classify') == 0

    def test_missing_api_key_falls_back(self, app):
        app.config['OPENAI_API_KEY'] = ''
        assert classify_intent('What is our VPN policy?').kind == ANSWER
