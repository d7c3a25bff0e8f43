"""Live expert feed: initial load, topic subscription and event reconciliation"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any

import sentry_sdk
from pydantic import ValidationError

from expert_feed.models.feed_models import ProviderProfile, Question

from . import matching
from .marketplace_api_client import MarketplaceAPIClient, MarketplaceAPIError
from .realtime_channel import QUESTION_CREATED, QUESTION_UPDATED, RealtimeChannel

logger = logging.getLogger(__name__)


class FeedUnavailableError(Exception):
    """Raised when the feed cannot be loaded (profile or questions fetch failed)"""

    pass


class FeedState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"
    CLOSED = "closed"


class FeedReconciler:
    """
    Keeps the ranked list of questions a provider should see.

    The list is built from a bulk fetch and then kept current from
    question events on the provider's topic rooms. Every mutation
    re-ranks the whole list, and a question id appears at most once.

    The provider profile is fixed for the life of a session. To pick up
    profile edits call reload(), which leaves every topic, fetches the
    profile again and re-subscribes from scratch. Calling load() while
    subscribed is refused.
    """

    def __init__(self, api_client: MarketplaceAPIClient, channel: RealtimeChannel):
        self.api_client = api_client
        self.channel = channel
        self.state = FeedState.IDLE

        self._profile: ProviderProfile | None = None
        self._questions: list[Question] = []
        self._joined: list[str] = []
        self._handlers_registered = False
        self._last_loaded: datetime | None = None
        self._reload_lock = asyncio.Lock()

        # Event counters for stats
        self._events_applied = 0
        self._events_ignored = 0
        self._events_malformed = 0

    @property
    def profile(self) -> ProviderProfile | None:
        return self._profile

    @property
    def topics(self) -> list[str]:
        return list(self._joined)

    @sentry_sdk.trace
    async def load(self) -> list[Question]:
        """Fetch profile and candidates concurrently, then filter and rank"""
        if self._joined:
            raise RuntimeError("Feed session is subscribed; use reload() instead")

        self.state = FeedState.LOADING
        try:
            profile, candidates = await asyncio.gather(
                self.api_client.get_provider_profile(),
                self.api_client.get_candidate_questions(),
            )
        except MarketplaceAPIError as e:
            self._profile = None
            self._questions = []
            self.state = FeedState.UNAVAILABLE
            logger.error(f"Failed to load expert feed: {e}")
            raise FeedUnavailableError(f"Feed unavailable: {e}") from e

        seen: set[str] = set()
        matched = []
        for question in candidates:
            if question.id in seen or not matching.matches(question, profile):
                continue
            seen.add(question.id)
            matched.append(question)

        self._profile = profile
        self._questions = matching.rank(matched, profile)
        self._last_loaded = datetime.now()
        self.state = FeedState.READY

        logger.info(
            f"Expert feed loaded: {len(self._questions)} of "
            f"{len(candidates)} candidates match the profile"
        )
        return self.snapshot()

    async def subscribe(self) -> list[str]:
        """Register event handlers and join the profile's topic rooms"""
        if self._profile is None:
            raise RuntimeError("Cannot subscribe before the profile is loaded")

        if not self._handlers_registered:
            self.channel.on(QUESTION_CREATED, self.handle_created)
            self.channel.on(QUESTION_UPDATED, self.handle_updated)
            self._handlers_registered = True

        for topic in matching.derive_topics(self._profile):
            if topic in self._joined:
                continue
            try:
                await self.channel.join(topic)
            except Exception as e:
                logger.error(f"Failed to join topic {topic}: {e}")
                continue
            self._joined.append(topic)

        logger.info(f"Subscribed to {len(self._joined)} topics: {self._joined}")
        return self.topics

    async def start(self) -> list[Question]:
        """Initial load followed by subscription"""
        questions = await self.load()
        await self.subscribe()
        return questions

    async def teardown(self) -> None:
        """Leave every joined topic once and stop handling events"""
        if self._handlers_registered:
            self.channel.off(QUESTION_CREATED, self.handle_created)
            self.channel.off(QUESTION_UPDATED, self.handle_updated)
            self._handlers_registered = False

        joined, self._joined = self._joined, []
        for topic in joined:
            try:
                await self.channel.leave(topic)
            except Exception as e:
                logger.error(f"Failed to leave topic {topic}: {e}")

        if self.state == FeedState.READY:
            self.state = FeedState.CLOSED
        logger.info(f"Expert feed torn down, left {len(joined)} topics")

    async def reload(self) -> list[Question]:
        """Full teardown, then a fresh load and subscribe cycle.

        Overlapping reloads run one after the other.
        """
        async with self._reload_lock:
            await self.teardown()
            return await self.start()

    @asynccontextmanager
    async def session(self) -> AsyncIterator["FeedReconciler"]:
        """Run a feed session; topics are always left on exit"""
        try:
            await self.start()
            yield self
        finally:
            await self.teardown()

    def handle_created(self, payload: Any) -> None:
        """Apply a question.created event"""
        try:
            question = self._parse_event(payload)
            if question is None:
                return

            if not matching.matches(question, self._profile):
                self._events_ignored += 1
                return

            if self._index_of(question.id) is not None:
                # Duplicate delivery or already in the bulk load
                self._events_ignored += 1
                return

            self._questions.insert(0, question)
            self._resort()
            self._events_applied += 1
            logger.debug(f"Added question {question.id} to feed")

        except Exception as e:
            logger.error(f"Error handling question created event: {e}", exc_info=True)

    def handle_updated(self, payload: Any) -> None:
        """Apply a question.updated event"""
        try:
            question = self._parse_event(payload)
            if question is None:
                return

            index = self._index_of(question.id)

            if not matching.matches(question, self._profile):
                if index is None:
                    self._events_ignored += 1
                    return
                del self._questions[index]
                logger.debug(f"Removed question {question.id} from feed")
            elif index is None:
                self._questions.insert(0, question)
                logger.debug(f"Promoted question {question.id} into feed")
            else:
                self._questions[index] = question

            self._resort()
            self._events_applied += 1

        except Exception as e:
            logger.error(f"Error handling question updated event: {e}", exc_info=True)

    def _parse_event(self, payload: Any) -> Question | None:
        if self._profile is None:
            logger.debug("Dropping question event received before feed load")
            self._events_ignored += 1
            return None

        if isinstance(payload, Question):
            return payload

        try:
            return Question.model_validate(payload)
        except ValidationError as e:
            self._events_malformed += 1
            logger.warning(f"Dropping malformed question event: {e}")
            return None

    def _index_of(self, question_id: str) -> int | None:
        for index, question in enumerate(self._questions):
            if question.id == question_id:
                return index
        return None

    def _resort(self) -> None:
        self._questions = matching.rank(self._questions, self._profile)

    def snapshot(self) -> list[Question]:
        """Copy of the ranked list for readers"""
        return list(self._questions)

    def search(self, query: str | None) -> list[Question]:
        """Filter the ranked list by a case-insensitive substring"""
        if not query or not query.strip():
            return self.snapshot()

        needle = query.strip().lower()
        return [
            question
            for question in self._questions
            if needle in question.title.lower()
            or needle in question.description.lower()
            or needle in question.category.lower()
            or any(needle in tag.lower() for tag in question.tags)
        ]

    def get_feed_stats(self) -> dict[str, Any]:
        """Get feed statistics for debugging"""
        return {
            "state": self.state.value,
            "questions_count": len(self._questions),
            "topics": self.topics,
            "events_applied": self._events_applied,
            "events_ignored": self._events_ignored,
            "events_malformed": self._events_malformed,
            "last_loaded": (
                self._last_loaded.isoformat() if self._last_loaded else None
            ),
        }
