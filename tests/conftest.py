import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from expert_feed.models import ProviderCategory, ProviderProfile, Question
from expert_feed.services import MarketplaceAPIError, RealtimeChannel

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def make_question(
    id="q1",
    category="Other",
    tags=None,
    created_at=None,
    title="How do I do this?",
    description="",
    **extra,
) -> Question:
    return Question(
        id=id,
        title=title,
        description=description,
        category=category,
        tags=tags or [],
        created_at=created_at or T0,
        **extra,
    )


def question_payload(id="q1", category="Other", tags=None, minutes=0, **extra) -> dict:
    """Question as the marketplace backend puts it on the wire"""
    payload = {
        "id": id,
        "knowledgeSeekerId": "seeker-1",
        "questionTitle": f"Question {id}",
        "questionDescription": "Details",
        "questionCategory": category,
        "questionTags": tags or [],
        "questionStatus": "PENDING",
        "createdAt": (T0 + timedelta(minutes=minutes)).isoformat(),
        "updatedAt": (T0 + timedelta(minutes=minutes)).isoformat(),
    }
    payload.update(extra)
    return payload


def make_profile(categories=(), skills=(), interests=()) -> ProviderProfile:
    return ProviderProfile(
        categories=[ProviderCategory(name=name) for name in categories],
        skills=list(skills),
        interests=list(interests),
    )


class FakeChannel(RealtimeChannel):
    """In-memory realtime channel that records membership calls"""

    def __init__(self, fail_leave_for: set[str] | None = None):
        self.joins: list[str] = []
        self.leaves: list[str] = []
        self.handlers: dict[str, list] = {}
        self.opened = False
        self.fail_leave_for = fail_leave_for or set()

    @property
    def is_open(self) -> bool:
        return self.opened

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.opened = False

    async def join(self, topic: str) -> None:
        self.joins.append(topic)

    async def leave(self, topic: str) -> None:
        self.leaves.append(topic)
        if topic in self.fail_leave_for:
            raise ConnectionError(f"cannot leave {topic}")

    def on(self, event, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event, handler) -> None:
        if handler in self.handlers.get(event, []):
            self.handlers[event].remove(handler)

    def deliver(self, event: str, payload) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(payload)


class FakeAPIClient:
    """Stands in for MarketplaceAPIClient"""

    def __init__(
        self,
        profile=None,
        questions=None,
        profile_error=False,
        feed_error=False,
        yield_on_fetch=False,
    ):
        self.profile = profile or make_profile()
        self.questions = questions or []
        self.profile_error = profile_error
        self.feed_error = feed_error
        self.yield_on_fetch = yield_on_fetch
        self.profile_calls = 0
        self.feed_calls = 0

    async def get_provider_profile(self) -> ProviderProfile:
        self.profile_calls += 1
        if self.yield_on_fetch:
            # Let other tasks run mid-load, like a real network round trip
            await asyncio.sleep(0)
        if self.profile_error:
            raise MarketplaceAPIError("Request /provider-onboarding/profile failed: 401")
        return self.profile

    async def get_candidate_questions(self) -> list[Question]:
        self.feed_calls += 1
        if self.feed_error:
            raise MarketplaceAPIError("Connection failed")
        return list(self.questions)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()
