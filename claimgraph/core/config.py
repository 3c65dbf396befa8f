from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Primary model provider
    primary_llm_host: str = "http://localhost:11434"
    primary_llm_model: str = "mistral"

    # Fallback model provider, used once on transient primary failures
    fallback_llm_host: str = "http://localhost:11435"
    fallback_llm_model: str = "mistral"
    fallback_llm_api_key: Optional[str] = None

    llm_temperature: float = 0.0

    # Extraction limits
    graph_max_attempts: int = 3
    max_stance_claims: int = 100

    # HTTP surface
    cors_origins: List[str] = ["http://localhost:5173"]
    extraction_rate_limit: str = "3/minute"
    rate_limit_enabled: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
