import logging
from openai import OpenAI
from typing import Dict, List, Optional
from lib.config import get_settings
from lib.error_handler import AppError

logger = logging.getLogger(__name__)

class OpenAIClient:
    """Thin wrapper over the OpenAI SDK.

    Provider errors are allowed to propagate so that callers can inspect
    their HTTP status (rate limits, bad credentials).
    """

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key or get_settings().openai_api_key
        if not api_key:
            raise AppError("OpenAI API key is not set or invalid", code='internal')
        self.client = OpenAI(api_key=api_key)

    async def generate_response(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float,
        json_response: bool = False
    ) -> str:
        """
        Generate a chat completion and return its text content
        """
        params = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_response:
            params["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(**params)

        if not response.choices or not response.choices[0].message.content:
            logger.warning(f"Empty completion returned by {model}")
            return ""
        return response.choices[0].message.content

    async def create_embedding(self, text: str, model: str, dimensions: int) -> Optional[List[float]]:
        """
        Generate an embedding vector for text
        """
        response = self.client.embeddings.create(
            model=model,
            input=text,
            encoding_format="float",
            dimensions=dimensions
        )
        if not response.data:
            return None
        return response.data[0].embedding

def create_openai_client() -> OpenAIClient:
    """Build a client for a single invocation using the injected secret"""
    return OpenAIClient()
