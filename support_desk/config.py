"""
Support Desk - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_db_password: str = ""
    supabase_db_host: str = ""
    supabase_db_port: int = 6543
    supabase_db_name: str = "postgres"
    supabase_db_user: str = ""

    # Ticket store
    ticket_store_backend: str = "supabase"  # supabase | memory
    tickets_table: str = "tickets"
    feedback_table: str = "feedback"

    # AI response generation
    mock_ai_delay_seconds: float = 3.0
    ai_webhook_url: str = ""
    ai_webhook_timeout: float = 30.0
    ai_webhook_max_retries: int = 3

    # Synchronization
    response_poll_interval_seconds: float = 2.0
    response_poll_max_attempts: int = 15
    reject_stale_reads: bool = True

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def supabase_write_key(self) -> str:
        """Service role key when configured, otherwise the anon key"""
        return self.supabase_service_role_key or self.supabase_key

    @property
    def uses_memory_store(self) -> bool:
        return self.ticket_store_backend.lower() == "memory"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
