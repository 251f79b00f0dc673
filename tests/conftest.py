import os
import sys
import json
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

# Keep a local .env from configuring real backends during tests
os.environ['OPENAI_API_KEY'] = 'test-openai-key'
os.environ['SUPABASE_URL'] = ''
os.environ['SUPABASE_KEY'] = ''
os.environ['PINECONE_API_KEY'] = ''

import api.routes as routes

TEST_UID = 'test-user-123'
TEST_TOKEN = 'valid-token'

def analysis_json(**overrides) -> str:
    """A well-formed analysis response as the model would return it"""
    result = {
        'title': 'Surgery',
        'tags': ['health', 'career'],
        'prayerPoints': [
            {
                'title': "Mom's surgery",
                'prayerType': 'request',
                'content': "Pray for my mom's surgery."
            }
        ]
    }
    result.update(overrides)
    return json.dumps(result)

@pytest.fixture
def mock_openai_client():
    """Stand-in for lib.openai_client.OpenAIClient"""
    client = MagicMock()
    client.generate_response = AsyncMock(return_value=analysis_json())
    client.create_embedding = AsyncMock(return_value=[0.1] * 250)
    return client

@pytest.fixture
def mock_auth_service():
    auth = MagicMock()
    auth.verify_token = MagicMock(
        side_effect=lambda token: TEST_UID if token == TEST_TOKEN else None
    )
    return auth

@pytest.fixture
def mock_pinecone_index():
    index = MagicMock()
    index.describe_index_stats = MagicMock(return_value={
        'dimension': 250,
        'index_fullness': 0.0,
        'total_vector_count': 3
    })
    index.query = MagicMock(return_value=SimpleNamespace(matches=[]))
    index.fetch = MagicMock(return_value=SimpleNamespace(vectors={}))
    return index

@pytest.fixture
def test_client(monkeypatch, mock_openai_client, mock_auth_service):
    monkeypatch.setattr(routes, 'auth_service', mock_auth_service)
    monkeypatch.setattr(routes, 'create_openai_client', lambda: mock_openai_client)
    routes.app.config['TESTING'] = True
    return routes.app.test_client()

@pytest.fixture
def auth_headers():
    return {'Authorization': f"Bearer {TEST_TOKEN}"}

def make_match(id, score, values=None, **metadata):
    return SimpleNamespace(id=id, score=score, values=values, metadata=metadata)
