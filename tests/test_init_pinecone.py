import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock

from lib.config import Settings
from scripts.init_pinecone import ensure_index

@pytest.fixture
def settings():
    return Settings(
        openai_api_key='test-openai-key',
        pinecone_api_key='test-pinecone-key',
        pinecone_index='prayers-test',
        embedding_dimensions=250
    )

def mock_pinecone(exists, dimension=250, metric='cosine'):
    pc = MagicMock()
    pc.has_index = MagicMock(return_value=exists)
    pc.describe_index = MagicMock(return_value=SimpleNamespace(dimension=dimension, metric=metric))
    return pc

def test_creates_missing_index(settings):
    pc = mock_pinecone(exists=False)

    description = ensure_index(pc, settings)

    kwargs = pc.create_index.call_args.kwargs
    assert kwargs['name'] == 'prayers-test'
    assert kwargs['dimension'] == 250
    assert kwargs['metric'] == 'cosine'
    assert description.dimension == 250

def test_existing_index_is_left_alone(settings, caplog):
    pc = mock_pinecone(exists=True)

    with caplog.at_level('INFO'):
        ensure_index(pc, settings)

    pc.create_index.assert_not_called()
    assert "Index 'prayers-test' ready: dimension 250, metric cosine" in caplog.text

@pytest.mark.parametrize('dimension, metric', [(1536, 'cosine'), (250, 'euclidean')])
def test_mismatched_index_is_rejected(settings, dimension, metric):
    pc = mock_pinecone(exists=True, dimension=dimension, metric=metric)

    with pytest.raises(ValueError):
        ensure_index(pc, settings)
