from flask import Flask, request
import logging
import sys
from supabase import create_client

from api.services.auth import AuthService
from api.services.embeddings import EmbeddingService
from api.services.prayer_analysis import PrayerAnalysisService
from api.services.vector import VectorService
from lib.callable import bearer_token, callable_error, callable_result, parse_callable_body
from lib.config import get_settings
from lib.embedding_utils import get_context_as_string
from lib.error_handler import AppError, ErrorHandler
from lib.models import (
    AnalyzePrayerRequest,
    EmbeddingRequest,
    IndexPrayerPointRequest,
    SimilarPrayersBatchRequest,
    SimilarPrayersRequest,
    UpdateTopicEmbeddingRequest,
    parse_callable_data,
)
from lib.openai_client import create_openai_client

settings = get_settings()

# Configure detailed logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True  # Ensure our config takes precedence
)

# Create logger for this file
logger = logging.getLogger(__name__)

# Initialize Flask
app = Flask(__name__)

# Initialize identity verification
auth_service = None
if settings.supabase_configured:
    logger.info("Initializing Supabase client...")
    try:
        auth_service = AuthService(create_client(settings.supabase_url, settings.supabase_key))
        logger.info("Supabase client initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing Supabase client: {str(e)}")
else:
    logger.warning("Supabase not configured - callable requests will be rejected as unauthenticated")

# Initialize Pinecone
vector_service = None
if settings.pinecone_configured:
    try:
        vector_service = VectorService(
            api_key=settings.pinecone_api_key,
            index_name=settings.pinecone_index,
            dimension=settings.embedding_dimensions
        )
        logger.info("Pinecone initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize Pinecone: {str(e)}")
        vector_service = None
else:
    logger.warning("Pinecone not configured - similarity search is unavailable")

def require_auth() -> str:
    """Resolve the caller's user id or fail with unauthenticated"""
    token = bearer_token(request.headers.get('Authorization'))
    uid = auth_service.verify_token(token) if auth_service and token else None
    if not uid:
        raise AppError("The function must be called while authenticated.", code='unauthenticated')
    return uid

def require_vector_service() -> VectorService:
    if vector_service is None:
        raise AppError("Vector search is not configured.", code='internal')
    return vector_service

def request_data():
    return parse_callable_body(request.get_json(silent=True))

def embedding_service(openai_client) -> EmbeddingService:
    return EmbeddingService(
        openai_client=openai_client,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions
    )

@app.route('/analyzePrayerContent', methods=['POST'])
async def analyze_prayer_content():
    try:
        uid = require_auth()
        payload = parse_callable_data(AnalyzePrayerRequest, request_data())

        try:
            analysis_service = PrayerAnalysisService(
                openai_client=create_openai_client(),
                cleanup_model=settings.cleanup_model,
                analysis_model=settings.analysis_model
            )
            analysis = await analysis_service.analyze(
                content=payload.content,
                has_transcription=payload.has_transcription,
                max_prayer_points=payload.max_prayer_points
            )
        except Exception as e:
            raise ErrorHandler.handle_analysis_error(e)

        logger.info(f"Prayer analysis completed for user: {uid}")
        return callable_result(analysis.model_dump(mode='json', by_alias=True, exclude_none=True))

    except AppError as e:
        return callable_error(e)

@app.route('/getVectorEmbeddings', methods=['POST'])
async def get_vector_embeddings():
    try:
        require_auth()
        payload = parse_callable_data(EmbeddingRequest, request_data())

        try:
            embedding = await embedding_service(create_openai_client()).get_embedding(payload.input)
        except Exception as e:
            raise ErrorHandler.handle_embedding_error(e)

        return callable_result({'embedding': embedding})

    except AppError as e:
        return callable_error(e)

@app.route('/findSimilarPrayers', methods=['POST'])
async def find_similar_prayers():
    try:
        uid = require_auth()
        payload = parse_callable_data(SimilarPrayersRequest, request_data())
        logger.info(f"Similarity search for user {uid} with embedding length {len(payload.query_embedding)}")

        try:
            results = await require_vector_service().find_similar(
                query_embedding=payload.query_embedding,
                author_id=uid,
                top_k=payload.top_k,
                source_prayer_id=payload.source_prayer_id
            )
        except Exception as e:
            raise ErrorHandler.handle_vector_error(e)

        return callable_result({
            'result': [prayer.model_dump(mode='json', by_alias=True, exclude_none=True) for prayer in results]
        })

    except AppError as e:
        return callable_error(e)

@app.route('/findSimilarPrayersBatch', methods=['POST'])
async def find_similar_prayers_batch():
    try:
        uid = require_auth()
        payload = parse_callable_data(SimilarPrayersBatchRequest, request_data())

        try:
            results = await require_vector_service().find_similar_batch(
                query_points=payload.query_prayer_points,
                author_id=uid,
                top_k=payload.top_k
            )
        except Exception as e:
            raise ErrorHandler.handle_vector_error(e)

        return callable_result({
            'result': [result.model_dump(mode='json', by_alias=True, exclude_none=True) for result in results]
        })

    except AppError as e:
        return callable_error(e)

@app.route('/indexPrayerPoint', methods=['POST'])
async def index_prayer_point():
    try:
        uid = require_auth()
        payload = parse_callable_data(IndexPrayerPointRequest, request_data())
        prayer_point = payload.prayer_point.model_copy(update={'author_id': uid})

        try:
            store = require_vector_service()
            context = get_context_as_string(prayer_point.title, prayer_point.content, prayer_point.created_at)
            embedding = await embedding_service(create_openai_client()).get_embedding(context)
            await store.upsert_prayer_point(prayer_point, embedding)

            # Refresh the aggregate vector of every linked topic
            topics = []
            for topic_id in prayer_point.linked_topic_ids:
                topics.append(await store.update_topic_embedding(
                    topic_id=topic_id,
                    author_id=uid,
                    title=prayer_point.linked_topic_title(topic_id),
                    indexed_point=prayer_point,
                    indexed_embedding=embedding
                ))
        except Exception as e:
            raise ErrorHandler.handle_vector_error(e)

        return callable_result({
            'id': prayer_point.id,
            'contextAsStrings': context,
            'contextAsEmbeddings': embedding,
            'updatedTopics': [topic.model_dump(mode='json', by_alias=True) for topic in topics]
        })

    except AppError as e:
        return callable_error(e)

@app.route('/updateTopicEmbedding', methods=['POST'])
async def update_topic_embedding():
    try:
        uid = require_auth()
        payload = parse_callable_data(UpdateTopicEmbeddingRequest, request_data())

        try:
            result = await require_vector_service().update_topic_embedding(
                topic_id=payload.topic_id,
                author_id=uid,
                title=payload.title
            )
        except Exception as e:
            raise ErrorHandler.handle_vector_error(e)

        return callable_result(result.model_dump(mode='json', by_alias=True))

    except AppError as e:
        return callable_error(e)

@app.route('/', methods=['GET'])
def root():
    """Basic health check"""
    try:
        stats = vector_service.describe_stats() if vector_service else None
        return {
            'status': 'healthy',
            'auth_configured': auth_service is not None,
            'pinecone_stats': stats
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {'status': 'error', 'message': str(e)}, 500
