from types import SimpleNamespace

import pytest
from openai import OpenAIError

from talkgame.factcheck import FactChecker


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_not_configured_is_503(client):
    res = client.post('/api/fact-check', json={'statement': 'The sky is green.'})
    assert res.status_code == 503
    assert res.get_json()['error'] == 'Fact-checking is not configured on the server.'


def test_statement_is_validated(client):
    res = client.post('/api/fact-check', json={'statement': ''})
    assert res.status_code == 400


class TestConfiguredChecker:
    @pytest.fixture()
    def completions(self):
        return FakeCompletions(content='  Incorrect: the sky is blue.  ')

    @pytest.fixture()
    def fact_checker(self, completions):
        return FactChecker(model='test-model', client=_client(completions))

    def test_returns_model_answer(self, client, completions):
        res = client.post('/api/fact-check', json={'statement': 'The sky is green.'})
        assert res.status_code == 200
        assert res.get_json() == {'result': 'Incorrect: the sky is blue.'}

        call = completions.calls[0]
        assert call['model'] == 'test-model'
        assert 'Statement: "The sky is green."' in call['messages'][0]['content']

    def test_health_reports_configured(self, client):
        assert client.get('/api/health').get_json()['factCheckConfigured'] is True


def test_upstream_failure_is_502(flask_app):
    flask_app.extensions['talkgame.fact_checker'] = FactChecker(
        client=_client(FakeCompletions(error=OpenAIError('boom')))
    )
    res = flask_app.test_client().post('/api/fact-check', json={'statement': 'Water is wet.'})
    assert res.status_code == 502


def test_empty_answer_is_502(flask_app):
    flask_app.extensions['talkgame.fact_checker'] = FactChecker(client=_client(FakeCompletions(content='')))
    res = flask_app.test_client().post('/api/fact-check', json={'statement': 'Water is wet.'})
    assert res.status_code == 502
