import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from lib.error_handler import AppError, error_message
from lib.models import EmbeddingResult, PrayerAnalysis

logger = logging.getLogger(__name__)

class CallableClient:
    """Invokes callable functions by name.

    A single attempt is made per call. Server-side callable errors are
    re-raised as `AppError` with the server's code; anything else is wrapped
    in an `AppError` with code 'unknown' naming the function.
    """

    def __init__(self, base_url: str, id_token: Optional[str] = None):
        self.base_url = base_url.rstrip('/')
        self.id_token = id_token

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.id_token:
            headers['Authorization'] = f"Bearer {self.id_token}"
        return headers

    async def call(self, name: str, payload: Dict[str, Any]) -> Any:
        """Call a function and return its result payload unchanged"""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.base_url}/{name}",
                    json={'data': payload},
                    headers=self._headers()
                ) as response:
                    status = response.status
                    body = await response.json(content_type=None)

            if isinstance(body, dict) and isinstance(body.get('error'), dict):
                error = body['error']
                raise AppError.from_status(error.get('status'), error.get('message') or f"{name} failed")

            if status != 200 or not isinstance(body, dict) or 'result' not in body:
                raise Exception(f"Unexpected response from server (HTTP {status})")

            return body['result']

        except AppError as e:
            logger.error(f"Error calling {name} with payload {payload}: [{e.code}] {e.message}")
            raise
        except Exception as e:
            logger.error(f"Error calling {name} with payload {payload}: {error_message(e)}", exc_info=e)
            raise AppError(
                f"Error calling cloud function {name}: {error_message(e)}",
                code='unknown'
            ) from e

class PrayerAIClient:
    """Client for the prayer analysis and embedding functions"""

    def __init__(self, callable_client: CallableClient):
        self.callable = callable_client

    async def analyze_prayer_content(
        self,
        content: str,
        has_transcription: bool = False,
        is_ai_enabled: bool = True,
        max_prayer_points: int = 10
    ) -> PrayerAnalysis:
        """
        Analyze prayer content. With AI disabled an empty analysis is returned
        so the user can fill in the details manually.
        """
        if not is_ai_enabled:
            logger.warning("AI service is disabled. Please fill in the details manually.")
            return PrayerAnalysis(
                title='',
                cleaned_transcription='' if has_transcription else None,
                tags=[],
                prayer_points=[]
            )

        if not content or not content.strip():
            raise AppError("No prayer content provided", code='invalid-argument')

        try:
            result = await self.callable.call('analyzePrayerContent', {
                'content': content,
                'hasTranscription': has_transcription,
                'maxPrayerPoints': max_prayer_points
            })
        except AppError as e:
            raise self._handle_callable_error(e, 'AI') from e

        return self._parse_result(PrayerAnalysis, result, 'AI')

    async def get_vector_embeddings(self, input: str) -> List[float]:
        """Get the embedding vector for a piece of text"""
        if not input or not input.strip():
            raise AppError("No input provided", code='invalid-argument')

        try:
            result = await self.callable.call('getVectorEmbeddings', {'input': input})
        except AppError as e:
            raise self._handle_callable_error(e, 'vector') from e

        return self._parse_result(EmbeddingResult, result, 'vector').embedding

    def _parse_result(self, model, result: Any, context: str):
        try:
            return model.model_validate(result)
        except ValidationError as e:
            logger.error(f"Malformed {context} service response: {str(e)}")
            message = f"{context} service returned an invalid response."
            raise AppError(message, code='internal', user_message=message) from e

    def _handle_callable_error(self, error: AppError, context: str) -> AppError:
        """Map a callable error to a message suitable for display"""
        if error.code == 'resource-exhausted':
            message = f"{context} service is temporarily unavailable. Please try again later."
        elif error.code == 'unauthenticated':
            message = f"Authentication error with {context} service. Please try again later."
        elif error.code == 'invalid-argument':
            message = f"Invalid input provided to {context} service."
        elif error.code != 'unknown':
            message = f"{context} service error. Please try again later. ({error.code})"
        elif error.message:
            message = f"{context} service error: {error.message}"
        else:
            message = f"{context} service error. Please try again later."

        return AppError(message, code=error.code, user_message=message)
