from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # OpenAI Configuration (grounded responder)
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini"
    responder_enabled: bool = True
    responder_timeout_seconds: float = 8.0

    # LiveKit Configuration
    livekit_url: Optional[str] = None
    livekit_api_key: Optional[str] = None
    livekit_api_secret: Optional[str] = None
    livekit_room: str = "demo-room"

    # Database Configuration
    database_path: str = "helpdesk_data.db"
    store_max_retries: int = 3

    # Knowledge Base Configuration
    kb_match_threshold: float = 0.60
    kb_search_threshold: float = 0.50
    kb_merge_threshold: float = 0.90

    # Help Request Configuration
    help_request_timeout_minutes: int = 15

    # Application Configuration
    app_name: str = "Helpdesk AI Supervisor"
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
