from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    # Local development runs on SQLite; production points at Postgres:
    # postgresql+asyncpg://postgres:[password]@[host]:5432/postgres
    database_url: str = "sqlite+aiosqlite:///./agora.db"

    # "development", "staging" or "production"
    # Production additionally rejects private/loopback source URLs
    environment: str = "development"

    log_level: str = "INFO"

    # Frontend origins allowed by CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # OpenAI (argument analysis + steel-man validation)
    openai_api_key: str = ""
    analysis_model: str = "gpt-4o-mini"

    # Rate limits: max actions per window, per user and action type
    create_argument_max: int = 3
    create_argument_window_ms: int = 60_000
    rate_argument_max: int = 10
    rate_argument_window_ms: int = 300_000
    create_debate_max: int = 5
    create_debate_window_ms: int = 300_000
    analyze_argument_max: int = 20
    analyze_argument_window_ms: int = 60_000
    steel_man_max: int = 5
    steel_man_window_ms: int = 60_000

    # Quality thresholds (0-100 score)
    # >= high: eligible for the high_quality_argument award
    # < minimum: submission is blocked
    high_quality_threshold: int = 70
    minimum_quality_threshold: int = 30

    # Reputation point values that differ between product flows
    fallacy_penalty_points: int = -5
    argument_conceded_points: int = 50
    concede_point_rating_points: int = 20

    # Analysis result cache
    analysis_cache_ttl_seconds: float = 300.0
    analysis_cache_max_size: int = 100

    model_config = SettingsConfigDict(env_file=".env")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
