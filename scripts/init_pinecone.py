import logging
import sys

from pinecone import Pinecone, ServerlessSpec

from lib.config import get_settings

logger = logging.getLogger(__name__)

INDEX_METRIC = "cosine"

def ensure_index(pc, settings):
    """
    Create the prayer embeddings index unless it exists, and return its
    description. An existing index must match the configured embedding
    dimension and metric, otherwise upserts and queries would be rejected.
    """
    name = settings.pinecone_index
    if pc.has_index(name):
        logger.info(f"Index '{name}' already exists")
    else:
        logger.info(f"Creating index '{name}' in {settings.pinecone_cloud}/{settings.pinecone_region}")
        pc.create_index(
            name=name,
            dimension=settings.embedding_dimensions,
            metric=INDEX_METRIC,
            spec=ServerlessSpec(
                cloud=settings.pinecone_cloud,
                region=settings.pinecone_region
            )
        )

    description = pc.describe_index(name)
    if description.dimension != settings.embedding_dimensions or description.metric != INDEX_METRIC:
        raise ValueError(
            f"Index '{name}' has dimension {description.dimension} and metric {description.metric}, "
            f"expected {settings.embedding_dimensions} and {INDEX_METRIC}"
        )

    logger.info(f"Index '{name}' ready: dimension {description.dimension}, metric {description.metric}")
    return description

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s', stream=sys.stdout)
    settings = get_settings()
    try:
        ensure_index(Pinecone(api_key=settings.pinecone_api_key), settings)
    except Exception as e:
        logger.error(f"Error initializing Pinecone: {str(e)}")
        raise
