from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "ReadNext"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = "development"  # development, staging, production

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = ""  # json or text; empty picks json in production

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated list

    # Database
    DATABASE_URL: str = "sqlite:///./readnext.db"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    # External catalog
    GOOGLE_BOOKS_API_KEY: str = ""
    GOOGLE_BOOKS_BASE_URL: str = "https://www.googleapis.com/books/v1"
    OPEN_LIBRARY_BASE_URL: str = "https://openlibrary.org"
    CATALOG_TIMEOUT_SECONDS: float = 8.0

    # Language model
    LLM_PROVIDER: str = "gemini"  # gemini, anthropic
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20241022"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com/v1"
    LLM_TIMEOUT_SECONDS: float = 20.0

    # Recommendation settings
    MAX_RECOMMENDATIONS: int = Field(12, ge=1, le=12)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def llm_api_key(self) -> str:
        """Credential for the configured language-model provider."""
        provider = self.LLM_PROVIDER.lower()
        if provider == "anthropic":
            return self.ANTHROPIC_API_KEY
        if provider == "gemini":
            return self.GEMINI_API_KEY
        return ""

    @property
    def llm_enabled(self) -> bool:
        """Language-model assisted analysis runs only when a credential is present."""
        return bool(self.llm_api_key)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
