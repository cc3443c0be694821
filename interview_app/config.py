"""Application configuration."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "interview_practice"
    mongodb_timeout_ms: int = 5000

    # JWT
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"

    # Application
    app_name: str = "Interview Practice API"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # CORS
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # AI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    question_generation_timeout_seconds: float = 30.0
    evaluation_timeout_seconds: float = 20.0

    # Interview defaults
    default_duration_minutes: int = 30
    default_difficulty: str = "medium"
    history_max_page_size: int = 50

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
