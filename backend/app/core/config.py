"""Application configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Chatbot SaaS API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours

    # Database
    DATABASE_URL: str

    # n8n
    N8N_BASE_URL: str = "http://localhost:5678"
    N8N_API_KEY: str = ""
    # WHY: The source system had no deadline on n8n calls; every request
    # now carries an explicit timeout so a hung instance cannot block a workflow.
    N8N_TIMEOUT_SECONDS: float = 30.0
    # AI Agent node whose options.systemMessage carries the bot configuration
    N8N_AI_AGENT_NODE_ID: str = "153caa6f-c7eb-4556-8f62-deed794bb2b7"

    # Bot personality workflow
    WORKFLOW_RETRY_DELAY_SECONDS: int = 300  # 5 minutes

    # Slack Notifications
    SLACK_WEBHOOK_URL: Optional[str] = None
    SLACK_WEBHOOK_ENABLED: bool = False

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")


settings = Settings()
