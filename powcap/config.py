from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./cap.db"

    # Runtime
    environment: str = "production"  # "production" | "development"

    # Logging
    log_level: str = "info"
    log_format: str = "json"  # "json" | "console"

    # Challenges
    challenge_count: int = 50
    challenge_size: int = 32
    challenge_difficulty: int = 4
    challenge_expires_ms: int = 600_000  # 10 minutes

    # Verification tokens
    token_expires_ms: int = 20 * 60 * 1000

    # Cleanup
    cleanup_interval_minutes: int = 5

    # Rate Limiting
    rate_limit_cap: str = "30/minute"

    # CORS
    cors_origins: list[str] | str = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


settings = Settings()
