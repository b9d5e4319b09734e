from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EnvelopeMeta(BaseModel):
    page: int | None = None
    limit: int | None = None
    total: int | None = None
    total_pages: int | None = Field(default=None, alias="totalPages")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("page", "limit", "total", "total_pages", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return max(0, int(float(value)))
        except (TypeError, ValueError, OverflowError):
            return None


class UpstreamEnvelope(BaseModel):
    """Minimal structural contract shared by every upstream endpoint."""

    success: bool
    data: Any = Field(...)
    error: str | None = None
    message: str | None = None
    meta: EnvelopeMeta | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("meta", mode="before")
    @classmethod
    def _drop_malformed_meta(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class CacheClearResult(BaseModel):
    scope: str
    removed: int
    remaining: int


class HealthStatus(BaseModel):
    status: str
    cached_entries: int


class CompositeView(BaseModel):
    """JSON rendering of an assembled view."""

    view: str
    primary: str | None = None
    fragments: dict[str, Any]
    origins: dict[str, str] = Field(default_factory=dict)
    degraded: dict[str, str] = Field(default_factory=dict)


class RecordPage(BaseModel):
    items: list[Any]
    total: int
    total_pages: int
    page: int
    page_size: int
    degraded: bool = False
