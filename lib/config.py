from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # OpenAI settings
    openai_api_key: str = ''
    cleanup_model: str = 'gpt-4o-mini'
    analysis_model: str = 'gpt-4o'
    embedding_model: str = 'text-embedding-3-small'
    embedding_dimensions: int = 250

    # Supabase settings (caller identity)
    supabase_url: str = ''
    supabase_key: str = ''

    # Pinecone settings
    pinecone_api_key: str = ''
    pinecone_index: str = 'prayers-index'
    pinecone_cloud: str = 'aws'
    pinecone_region: str = 'us-east-1'

    # Server settings
    log_level: str = 'INFO'
    port: int = 8000

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def pinecone_configured(self) -> bool:
        return bool(self.pinecone_api_key)

def get_settings() -> Settings:
    return Settings()
