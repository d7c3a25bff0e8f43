"""API models for Expert Feed endpoints"""

from typing import Any

from pydantic import BaseModel, Field

from .feed_models import Question


class HealthResponse(BaseModel):
    status: str


class FeedItem(BaseModel):
    question: Question
    score: int = Field(ge=0)


class FeedResponse(BaseModel):
    state: str
    items: list[FeedItem]
    total: int = Field(ge=0)
    query: str | None = None


class ReloadResponse(BaseModel):
    ok: bool
    message: str
    total: int = Field(default=0, ge=0)
    topics: list[str] = Field(default_factory=list)


class StatsResponse(BaseModel):
    service: str
    feed_stats: dict[str, Any]
    channel_connected: bool
    marketplace_api_url: str
