import logging
from datetime import datetime, timezone
from numbers import Number
from typing import Any, Dict, List, Optional
from pinecone import Pinecone

from lib.embedding_utils import average_vectors, distinct_prayer_types
from lib.error_handler import AppError
from lib.models import (
    MAX_EMBEDDING_LENGTH,
    MAX_TOPIC_POINTS,
    EntityType,
    PrayerPointRecord,
    SimilarPrayer,
    SimilarPrayersBatchResult,
    QueryPrayerPoint,
    TopicEmbeddingResult,
    effective_top_k,
)

logger = logging.getLogger(__name__)

ENTITY_TYPES = [entity_type.value for entity_type in EntityType]

def is_valid_query_embedding(embedding: Any) -> bool:
    return (
        isinstance(embedding, list)
        and 0 < len(embedding) <= MAX_EMBEDDING_LENGTH
        and all(isinstance(value, Number) and not isinstance(value, bool) for value in embedding)
    )

class VectorService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        index_name: Optional[str] = None,
        pinecone_index=None,
        dimension: int = 250
    ):
        self.dimension = dimension
        try:
            if pinecone_index is None:
                logger.info(f"Initializing Pinecone for index: {index_name}")
                pc = Pinecone(api_key=api_key)
                pinecone_index = pc.Index(index_name)
            self.pinecone_index = pinecone_index

            # Verify connection
            stats = self.pinecone_index.describe_index_stats()
            logger.info(f"Successfully connected to index. Stats: {stats}")
        except Exception as e:
            logger.error(f"Failed to initialize Pinecone index: {str(e)}")
            logger.error(f"Index Name: {index_name}")
            raise

    def describe_stats(self) -> Dict[str, Any]:
        """Index stats in a serializable format"""
        stats = self.pinecone_index.describe_index_stats()
        return {
            'dimension': stats.get('dimension'),
            'index_fullness': stats.get('index_fullness'),
            'total_vector_count': stats.get('total_vector_count'),
        }

    async def upsert_prayer_point(self, prayer_point: PrayerPointRecord, embedding: List[float]) -> None:
        """Store a prayer point embedding with the metadata used for search"""
        metadata = {
            'authorId': prayer_point.author_id,
            'title': prayer_point.title,
            'prayerType': prayer_point.prayer_type.value,
            'entityType': EntityType.PRAYER_POINT.value,
            'createdAt': prayer_point.created_at.isoformat(),
            'linkedTopics': prayer_point.linked_topic_ids or None,
        }
        # Pinecone rejects null metadata values
        metadata = {key: value for key, value in metadata.items() if value is not None}

        self.pinecone_index.upsert(
            vectors=[{
                'id': prayer_point.id,
                'values': embedding,
                'metadata': metadata
            }]
        )
        logger.info(f"Stored embedding for prayer point {prayer_point.id}")

    def _query(
        self,
        embedding: List[float],
        author_id: str,
        top_k: int,
        metadata_filter: Optional[Dict[str, Any]] = None,
        include_values: bool = False
    ):
        query_filter = {"authorId": {"$eq": author_id}}
        query_filter.update(metadata_filter or {})
        results = self.pinecone_index.query(
            vector=embedding,
            top_k=top_k,
            include_metadata=True,
            include_values=include_values,
            filter=query_filter
        )
        return results.matches or []

    def _to_similar_prayer(self, match) -> SimilarPrayer:
        metadata = match.metadata or {}
        entity_type = metadata.get('entityType')
        if entity_type not in ENTITY_TYPES:
            entity_type = EntityType.PRAYER_POINT.value

        return SimilarPrayer(
            id=match.id,
            title=metadata.get('title'),
            # Prayer topics do not have a prayer type
            prayer_type=metadata.get('prayerType') if entity_type == EntityType.PRAYER_POINT.value else None,
            entity_type=entity_type,
            created_at=metadata.get('createdAt'),
            similarity=match.score or 0.0
        )

    def _rank(self, matches, exclude_id: Optional[str], top_k: int) -> List[SimilarPrayer]:
        similar = [
            self._to_similar_prayer(match)
            for match in matches
            if not exclude_id or match.id != exclude_id
        ]
        similar.sort(key=lambda prayer: prayer.similarity, reverse=True)
        return similar[:top_k]

    async def find_similar(
        self,
        query_embedding: List[float],
        author_id: str,
        top_k: Optional[int] = None,
        source_prayer_id: Optional[str] = None
    ) -> List[SimilarPrayer]:
        """Find the caller's prayers most similar to an embedding"""
        limit = effective_top_k(top_k)
        # Fetch one extra so the source prayer can be dropped without losing a result
        matches = self._query(query_embedding, author_id, limit + 1 if source_prayer_id else limit)

        results = self._rank(matches, source_prayer_id, limit)
        logger.info(f"Found {len(results)} similar prayers")
        return results

    async def find_similar_batch(
        self,
        query_points: List[QueryPrayerPoint],
        author_id: str,
        top_k: Optional[int] = None
    ) -> List[SimilarPrayersBatchResult]:
        """Find similar prayers for several prayer points, excluding each point itself"""
        for index, point in enumerate(query_points):
            if not is_valid_query_embedding(point.embedding):
                raise AppError(f"Embedding at index {index} is invalid.", code='invalid-argument')

        limit = effective_top_k(top_k)
        results = []
        for point in query_points:
            matches = self._query(point.embedding, author_id, limit + 1)
            results.append(SimilarPrayersBatchResult(
                query_prayer_point_id=point.id,
                matches=self._rank(matches, point.id, limit)
            ))

        logger.info(f"Completed similarity search for {len(results)} prayer points")
        return results

    def _fetch(self, vector_id: str):
        response = self.pinecone_index.fetch(ids=[vector_id])
        return (response.vectors or {}).get(vector_id)

    async def update_topic_embedding(
        self,
        topic_id: str,
        author_id: str,
        title: Optional[str] = None,
        indexed_point: Optional[PrayerPointRecord] = None,
        indexed_embedding: Optional[List[float]] = None
    ) -> TopicEmbeddingResult:
        """
        Recompute a topic's vector as the average of its linked prayer points.

        Up to MAX_TOPIC_POINTS of the caller's points that list the topic in
        linkedTopics are averaged, and the topic is stored with entityType
        prayerTopic and the distinct prayer types of those points. A topic with
        no linked points left is removed from the index.

        indexed_point/indexed_embedding describe a point upserted in the same
        request, which the index may not return yet.
        """
        existing = self._fetch(topic_id)
        existing_metadata = (existing.metadata or {}) if existing is not None else {}
        if existing is not None and existing_metadata.get('authorId') != author_id:
            raise AppError(f"Topic {topic_id} belongs to another user.", code='permission-denied')

        # Linked points are selected by filter, the query vector only orders them
        if indexed_embedding:
            query_vector = indexed_embedding
        elif existing is not None and existing.values:
            query_vector = list(existing.values)
        else:
            query_vector = [1.0] * self.dimension

        matches = self._query(
            query_vector,
            author_id,
            MAX_TOPIC_POINTS,
            metadata_filter={
                "entityType": {"$eq": EntityType.PRAYER_POINT.value},
                "linkedTopics": {"$in": [topic_id]}
            },
            include_values=True
        )
        members = {
            match.id: (list(match.values), (match.metadata or {}).get('prayerType'))
            for match in matches
            if match.values
        }
        if indexed_point is not None and indexed_embedding and topic_id in indexed_point.linked_topic_ids:
            members[indexed_point.id] = (indexed_embedding, indexed_point.prayer_type.value)

        if not members:
            if existing is not None:
                self.pinecone_index.delete(ids=[topic_id])
            logger.info(f"No embeddings found for topic {topic_id}")
            return TopicEmbeddingResult(topic_id=topic_id)

        prayer_types = distinct_prayer_types(prayer_type for _, prayer_type in members.values())
        now = datetime.now(timezone.utc).isoformat()
        metadata = {
            'authorId': author_id,
            'title': title or existing_metadata.get('title') or '',
            'entityType': EntityType.PRAYER_TOPIC.value,
            'prayerTypes': prayer_types or None,
            'createdAt': existing_metadata.get('createdAt') or now,
            'updatedAt': now,
        }
        metadata = {key: value for key, value in metadata.items() if value is not None}

        self.pinecone_index.upsert(
            vectors=[{
                'id': topic_id,
                'values': average_vectors([values for values, _ in members.values()]),
                'metadata': metadata
            }]
        )
        logger.info(f"Updated topic {topic_id} from {len(members)} prayer points")
        return TopicEmbeddingResult(
            topic_id=topic_id,
            point_count=len(members),
            prayer_types=prayer_types
        )
