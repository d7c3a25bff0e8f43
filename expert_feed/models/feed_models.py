"""Data models for marketplace questions and provider profiles"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionStatus(str, Enum):
    PENDING = "PENDING"
    ANSWERED = "ANSWERED"
    CLOSED = "CLOSED"


class Question(BaseModel):
    """A seeker's request for expertise, as sent by the marketplace backend"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = Field(alias="questionTitle", min_length=1)
    description: str = Field(default="", alias="questionDescription")
    category: str = Field(alias="questionCategory")
    tags: list[str] = Field(alias="questionTags")
    status: QuestionStatus = Field(default=QuestionStatus.PENDING, alias="questionStatus")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    knowledge_seeker_id: str | None = Field(default=None, alias="knowledgeSeekerId")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Mixed naive/aware timestamps cannot be ordered
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_updated_at(self) -> "Question":
        if self.updated_at is None:
            self.updated_at = self.created_at
        elif self.updated_at < self.created_at:
            raise ValueError("updatedAt is earlier than createdAt")
        return self


class ProviderCategory(BaseModel):
    """Category membership of a provider"""

    name: str


class ProviderProfile(BaseModel):
    """The fields of an expert's profile that drive feed matching"""

    categories: list[ProviderCategory] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
