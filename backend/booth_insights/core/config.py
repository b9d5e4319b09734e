from functools import lru_cache

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    api_base_url: AnyUrl | str = Field(
        default="http://localhost:5000",
        description="Base URL of the upstream election statistics API",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout applied to every upstream call",
    )
    user_agent: str = Field(
        default="booth-insights/0.1",
        description="User-Agent header sent upstream",
    )
    cache_ttl_seconds: float = Field(
        default=300.0,
        description="Lifetime of every cached view fragment",
    )
    cache_fallback_fragments: bool = Field(
        default=True,
        description="Also cache fragments synthesized after an upstream failure",
    )
    dedupe_inflight_requests: bool = Field(
        default=False,
        description="Share one in-flight upstream call between identical concurrent requests",
    )
    booth_page_limit: int = Field(
        default=100,
        description="Number of booths requested per upstream booth-list page",
        ge=1,
    )
    query_page_size: int = Field(
        default=10,
        description="Default number of records per page returned by the query engine",
        ge=1,
    )
    results_year: int = Field(
        default=2022,
        description="Election year requested by constituency views",
    )

    @field_validator("api_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: AnyUrl | str) -> str:
        return str(value).rstrip("/")

    @field_validator("request_timeout_seconds", "cache_ttl_seconds")
    @classmethod
    def _require_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts and TTLs must be positive")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
