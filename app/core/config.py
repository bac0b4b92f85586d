from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # App
    APP_NAME: str = Field(default="toast-broadcaster")
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)

    # Fan-out
    MAILBOX_CAPACITY: int = Field(default=10, ge=1)

    # Streaming
    ALLOW_STREAMING: bool = Field(default=True)
    SHUTDOWN_GRACE_SECONDS: int = Field(default=5)

    # Demo handlers
    ACTION_DELAY_SECONDS: float = Field(default=2.0)
    SPAM_INTERVAL_SECONDS: float = Field(default=0.3)

    # CORS
    CORS_ALLOW_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:8080"]
    )


settings = Settings()
