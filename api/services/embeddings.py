import logging
from typing import List

from lib.error_handler import AppError
from lib.models import is_valid_embedding

logger = logging.getLogger(__name__)

class EmbeddingService:
    def __init__(self, openai_client, model: str = 'text-embedding-3-small', dimensions: int = 250):
        self.client = openai_client
        self.model = model
        self.dimensions = dimensions

    async def get_embedding(self, text: str) -> List[float]:
        """Get a fixed-length embedding for text, rejecting empty or all-zero vectors"""
        embedding = await self.client.create_embedding(
            text,
            model=self.model,
            dimensions=self.dimensions
        )

        if not is_valid_embedding(embedding):
            logger.error(f"Invalid embedding returned by {self.model}")
            raise AppError("Invalid vector embedding response", code='internal')

        logger.info(f"Generated embedding with {len(embedding)} dimensions")
        return embedding
