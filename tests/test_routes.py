import json
import httpx
import openai
import pytest
from unittest.mock import AsyncMock

import api.routes as routes
from lib.models import PRAYER_TAGS, VALID_PRAYER_TYPES
from conftest import analysis_json

SCENARIO_CONTENT = "Pray for my mom's surgery and for my finals next week"

def provider_error(error_class, status_code):
    request = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')
    response = httpx.Response(status_code, request=request)
    return error_class(f"Error code: {status_code}", response=response, body=None)

def post(test_client, name, data, headers=None):
    return test_client.post(f"/{name}", json={'data': data}, headers=headers or {})

# analyzePrayerContent

def test_analyze_scenario(test_client, auth_headers):
    response = post(test_client, 'analyzePrayerContent', {
        'content': SCENARIO_CONTENT,
        'maxPrayerPoints': 10
    }, auth_headers)

    assert response.status_code == 200
    result = response.get_json()['result']
    assert isinstance(result['title'], str)
    assert len(result['tags']) <= 2
    assert set(result['tags']) <= {'health', 'career'}
    assert len(result['prayerPoints']) >= 1
    assert all(point['prayerType'] in VALID_PRAYER_TYPES for point in result['prayerPoints'])
    assert 'cleanedTranscription' not in result

def test_analyze_filters_tags(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(return_value=analysis_json(
        tags=['family', 'nonexistent', 'health', 'career', 'x']
    ))

    response = post(test_client, 'analyzePrayerContent', {'content': 'A prayer'}, auth_headers)

    tags = response.get_json()['result']['tags']
    assert tags == ['family', 'health']
    assert all(tag in PRAYER_TAGS for tag in tags)

def test_analyze_coerces_prayer_type(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(return_value=analysis_json(
        prayerPoints=[{'title': ' Exams ', 'prayerType': 'petition', 'content': ' Focus '}]
    ))

    response = post(test_client, 'analyzePrayerContent', {'content': 'A prayer'}, auth_headers)

    assert response.get_json()['result']['prayerPoints'] == [
        {'title': 'Exams', 'prayerType': 'request', 'content': 'Focus'}
    ]

def test_analyze_with_transcription_returns_cleaned_text(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(side_effect=[
        "Lord, heal my mom.\r\nHelp me study.",
        analysis_json()
    ])

    response = post(test_client, 'analyzePrayerContent', {
        'content': 'lord heal my mom help me study',
        'hasTranscription': True
    }, auth_headers)

    result = response.get_json()['result']
    assert result['cleanedTranscription'] == "Lord, heal my mom.\nHelp me study."

@pytest.mark.parametrize('headers', [
    {},
    {'Authorization': 'Bearer not-a-real-token'},
    {'Authorization': 'Basic dXNlcjpwYXNz'},
])
@pytest.mark.parametrize('data', [{'content': SCENARIO_CONTENT}, {'content': ''}, {}])
def test_analyze_requires_authentication(test_client, mock_openai_client, headers, data):
    response = post(test_client, 'analyzePrayerContent', data, headers)

    assert response.status_code == 401
    assert response.get_json()['error']['status'] == 'UNAUTHENTICATED'
    mock_openai_client.generate_response.assert_not_awaited()

def test_analyze_rejected_when_auth_not_configured(test_client, auth_headers, monkeypatch):
    monkeypatch.setattr(routes, 'auth_service', None)

    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert response.status_code == 401

@pytest.mark.parametrize('data', [
    {'content': ''},
    {'content': '   \n\t'},
    {'content': 42},
    {},
])
def test_analyze_rejects_blank_content(test_client, auth_headers, mock_openai_client, data):
    response = post(test_client, 'analyzePrayerContent', data, auth_headers)

    assert response.status_code == 400
    error = response.get_json()['error']
    assert error['status'] == 'INVALID_ARGUMENT'
    assert error['message'] == 'No prayer content provided'
    mock_openai_client.generate_response.assert_not_awaited()

def test_analyze_rejects_invalid_max_prayer_points(test_client, auth_headers):
    response = post(test_client, 'analyzePrayerContent', {
        'content': SCENARIO_CONTENT,
        'maxPrayerPoints': 0
    }, auth_headers)

    assert response.status_code == 400

@pytest.mark.parametrize('optional', [
    {'hasTranscription': None},
    {'maxPrayerPoints': None},
    {'hasTranscription': None, 'maxPrayerPoints': None},
])
def test_analyze_accepts_null_optionals(test_client, auth_headers, mock_openai_client, optional):
    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT, **optional}, auth_headers)

    assert response.status_code == 200
    assert 'cleanedTranscription' not in response.get_json()['result']
    # A null transcription flag skips the cleanup pass
    mock_openai_client.generate_response.assert_awaited_once()

def test_analyze_rate_limited(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(
        side_effect=provider_error(openai.RateLimitError, 429)
    )

    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert response.status_code == 429
    assert response.get_json()['error']['status'] == 'RESOURCE_EXHAUSTED'

def test_analyze_provider_auth_failure(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(
        side_effect=provider_error(openai.AuthenticationError, 401)
    )

    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert response.status_code == 401
    assert response.get_json()['error']['message'] == (
        "Authentication error with AI service. Please try again later."
    )

def test_analyze_other_failures_are_internal(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(side_effect=RuntimeError("connection reset"))

    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert response.status_code == 500
    error = response.get_json()['error']
    assert error['status'] == 'INTERNAL'
    assert error['message'] == 'connection reset'

def test_analyze_malformed_model_output_is_internal(test_client, auth_headers, mock_openai_client):
    mock_openai_client.generate_response = AsyncMock(return_value=json.dumps({'tags': []}))

    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert response.status_code == 500
    assert response.get_json()['error']['message'] == 'Invalid response structure'

def test_analyze_missing_api_key_is_internal(test_client, auth_headers, monkeypatch):
    from lib.openai_client import OpenAIClient
    monkeypatch.setenv('OPENAI_API_KEY', '')
    monkeypatch.setattr(routes, 'create_openai_client', lambda: OpenAIClient())

    response = post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert response.status_code == 500
    assert response.get_json()['error']['message'] == "OpenAI API key is not set or invalid"

def test_analyze_logs_caller(test_client, auth_headers, caplog):
    with caplog.at_level('INFO', logger='api.routes'):
        post(test_client, 'analyzePrayerContent', {'content': SCENARIO_CONTENT}, auth_headers)

    assert 'Prayer analysis completed for user: test-user-123' in caplog.text

# getVectorEmbeddings

def test_embeddings_returns_vector(test_client, auth_headers):
    response = post(test_client, 'getVectorEmbeddings', {'input': 'Lord, I pray for...'}, auth_headers)

    assert response.status_code == 200
    embedding = response.get_json()['result']['embedding']
    assert len(embedding) == 250

def test_embeddings_requires_authentication(test_client):
    response = post(test_client, 'getVectorEmbeddings', {'input': 'Lord, I pray for...'})

    assert response.status_code == 401

@pytest.mark.parametrize('data', [{}, {'input': ''}, {'input': ['a']}, {'input': 5}])
def test_embeddings_rejects_invalid_input(test_client, auth_headers, data):
    response = post(test_client, 'getVectorEmbeddings', data, auth_headers)

    assert response.status_code == 400
    assert response.get_json()['error']['message'] == 'Invalid input'

@pytest.mark.parametrize('returned', [[], [0.0] * 250, [0.0] * 3])
def test_embeddings_rejects_invalid_vectors(test_client, auth_headers, mock_openai_client, returned):
    mock_openai_client.create_embedding = AsyncMock(return_value=returned)

    response = post(test_client, 'getVectorEmbeddings', {'input': 'text'}, auth_headers)

    assert response.status_code == 500
    assert response.get_json()['error']['message'] == 'Invalid vector embedding response'

def test_embeddings_provider_errors_are_internal(test_client, auth_headers, mock_openai_client):
    mock_openai_client.create_embedding = AsyncMock(
        side_effect=provider_error(openai.RateLimitError, 429)
    )

    response = post(test_client, 'getVectorEmbeddings', {'input': 'text'}, auth_headers)

    assert response.status_code == 500
    assert response.get_json()['error']['status'] == 'INTERNAL'

# Protocol

@pytest.mark.parametrize('body', [None, [], {'content': 'no data envelope'}, {'data': 'text'}])
def test_malformed_envelope(test_client, auth_headers, body):
    response = test_client.post('/getVectorEmbeddings', json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()['error']['message'] == 'Bad Request'

def test_health_check(test_client):
    response = test_client.get('/')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'
