from pydantic_settings import BaseSettings
import os
from pathlib import Path

# Try to load .env file explicitly before creating Settings
try:
    from dotenv import load_dotenv
    import logging
    _logger = logging.getLogger(__name__)

    # Look for .env in the project root (parent of the lumi package)
    project_dir = Path(__file__).parent.parent.parent
    env_path = project_dir / ".env"

    if env_path.exists():
        load_dotenv(env_path, override=False)
        _logger.info(f"Loaded .env file from: {env_path}")
    else:
        _logger.debug(f".env file not found at {env_path}, relying on environment variables")
except Exception as e:
    import logging
    _logger = logging.getLogger(__name__)
    _logger.warning(f"Error loading .env file: {e}")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database - hosting platforms provide DATABASE_URL (uppercase)
    database_url: str = ""

    # Runtime environment ("development", "production", ...)
    environment: str = "production"

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["*"]

    # Google Generative AI (Gemini) API
    google_gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Auth tokens
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Together sessions
    together_sentence_count: int = 10
    together_flashcard_count: int = 10

    # AI feedback polling hints returned to clients
    feedback_poll_interval_seconds: float = 2.0
    feedback_poll_max_retries: int = 5

    # Focus mode default when no platform setting row exists
    default_focus_mode: bool = True

    # Running exercise engines unused for this long are dropped from memory
    exercise_engine_idle_seconds: int = 6 * 60 * 60

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    def __init__(self, **kwargs):
        # Ensure we read DATABASE_URL from environment (platforms provide it uppercase)
        if not kwargs.get("database_url"):
            kwargs["database_url"] = os.getenv("DATABASE_URL", "")
        if not kwargs.get("google_gemini_api_key"):
            kwargs["google_gemini_api_key"] = os.getenv("GOOGLE_GEMINI_API_KEY", "")
        super().__init__(**kwargs)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")


# Create settings instance
settings = Settings()

# Validate required DATABASE_URL
if not settings.database_url:
    raise ValueError("DATABASE_URL environment variable is required")
