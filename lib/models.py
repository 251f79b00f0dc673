# Pydantic models for callable requests and responses
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from lib.error_handler import AppError

PRAYER_TAGS = [
    'family',
    'health',
    'finances',
    'career',
    'friends',
    'personal',
]

MAX_EMBEDDING_LENGTH = 1536  # OpenAI vector limit
DEFAULT_TOP_K = 5
MAX_TOP_K = 10
MAX_TOPIC_POINTS = 30

class PrayerType(str, Enum):
    REQUEST = 'request'
    PRAISE = 'praise'
    REPENTANCE = 'repentance'

VALID_PRAYER_TYPES = [prayer_type.value for prayer_type in PrayerType]

class EntityType(str, Enum):
    PRAYER_POINT = 'prayerPoint'
    PRAYER_TOPIC = 'prayerTopic'

class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

def parse_callable_data(model, data):
    """Validate callable request data, raising invalid-argument on failure"""
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        first = e.errors()[0]
        message = str(first.get('msg', 'Invalid argument'))
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        raise AppError(message, code='invalid-argument') from e

def is_valid_embedding(embedding) -> bool:
    """An embedding must be a non-empty list that is not entirely zero"""
    if not isinstance(embedding, list) or len(embedding) == 0:
        return False
    return any(value != 0 for value in embedding)

# Analysis

class AnalyzePrayerRequest(CamelModel):
    content: str = Field(default='', validate_default=True)
    has_transcription: Optional[bool] = False
    max_prayer_points: Optional[int] = Field(default=10, ge=1)

    @field_validator('content', mode='before')
    @classmethod
    def content_not_blank(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("No prayer content provided")
        return value.strip()

    # Clients send unset optionals as null
    @field_validator('has_transcription', mode='before')
    @classmethod
    def transcription_flag_default(cls, value):
        return False if value is None else value

    @field_validator('max_prayer_points', mode='before')
    @classmethod
    def max_prayer_points_default(cls, value):
        return 10 if value is None else value

class PrayerPointResult(CamelModel):
    title: str
    prayer_type: PrayerType = PrayerType.REQUEST
    content: str

class PrayerAnalysis(CamelModel):
    title: str
    cleaned_transcription: Optional[str] = None
    tags: List[str] = []
    prayer_points: List[PrayerPointResult] = []

# Embeddings

class EmbeddingRequest(CamelModel):
    input: str = Field(default='', validate_default=True)

    @field_validator('input', mode='before')
    @classmethod
    def input_not_empty(cls, value):
        if not isinstance(value, str) or not value:
            raise ValueError("Invalid input")
        return value

class EmbeddingResult(CamelModel):
    embedding: List[float]

# Similarity search

def _check_query_embedding(value):
    if not isinstance(value, list) or len(value) == 0:
        raise ValueError("Invalid query embedding.")
    if len(value) > MAX_EMBEDDING_LENGTH:
        raise ValueError(f"Query embedding exceeds maximum length of {MAX_EMBEDDING_LENGTH}.")
    return value

def effective_top_k(top_k: Optional[int]) -> int:
    return min(top_k or DEFAULT_TOP_K, MAX_TOP_K)

class SimilarPrayersRequest(CamelModel):
    query_embedding: List[float] = Field(default=None, validate_default=True)
    top_k: Optional[int] = Field(default=None, ge=0)
    source_prayer_id: Optional[str] = None

    @field_validator('query_embedding', mode='before')
    @classmethod
    def embedding_in_range(cls, value):
        return _check_query_embedding(value)

class QueryPrayerPoint(CamelModel):
    id: str
    embedding: list = []

class SimilarPrayersBatchRequest(CamelModel):
    query_prayer_points: List[QueryPrayerPoint] = Field(default=None, validate_default=True)
    top_k: Optional[int] = Field(default=None, ge=0)

    @field_validator('query_prayer_points', mode='before')
    @classmethod
    def points_not_empty(cls, value):
        if not isinstance(value, list) or len(value) == 0:
            raise ValueError("Invalid queryPrayerPoints.")
        return value

class SimilarPrayer(CamelModel):
    id: str
    title: Optional[str] = None
    prayer_type: Optional[str] = None
    entity_type: EntityType = EntityType.PRAYER_POINT
    created_at: Optional[str] = None
    similarity: float

class SimilarPrayersBatchResult(CamelModel):
    query_prayer_point_id: str
    matches: List[SimilarPrayer] = []

# Prayer point records

def _now() -> datetime:
    return datetime.now(timezone.utc)

class PrayerPointRecord(CamelModel):
    id: str
    title: str = ''
    prayer_type: PrayerType = PrayerType.REQUEST
    content: str = ''
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    linked_topics: list = []
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @field_validator('prayer_type', mode='before')
    @classmethod
    def default_prayer_type(cls, value):
        return value if value in VALID_PRAYER_TYPES else PrayerType.REQUEST

    @property
    def linked_topic_ids(self) -> List[str]:
        """Topic ids from linkedTopics, which holds ids or {id, title} objects"""
        ids = []
        for topic in self.linked_topics:
            topic_id = topic.get('id') if isinstance(topic, dict) else topic
            if isinstance(topic_id, str) and topic_id and topic_id not in ids:
                ids.append(topic_id)
        return ids

    def linked_topic_title(self, topic_id: str) -> Optional[str]:
        for topic in self.linked_topics:
            if isinstance(topic, dict) and topic.get('id') == topic_id and isinstance(topic.get('title'), str):
                return topic['title']
        return None

class IndexPrayerPointRequest(CamelModel):
    prayer_point: PrayerPointRecord

# Topic aggregation

class UpdateTopicEmbeddingRequest(CamelModel):
    topic_id: str = Field(default='', validate_default=True)
    title: Optional[str] = None

    @field_validator('topic_id', mode='before')
    @classmethod
    def topic_id_present(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Missing topicId")
        return value.strip()

class TopicEmbeddingResult(CamelModel):
    topic_id: str
    point_count: int = 0
    prayer_types: List[str] = []
