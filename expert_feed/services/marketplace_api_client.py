"""HTTP client for the marketplace backend (profile and feed services)"""

import logging
from typing import Any

import httpx
import sentry_sdk
from pydantic import ValidationError

from expert_feed.models.feed_models import ProviderProfile, Question

logger = logging.getLogger(__name__)


class MarketplaceAPIError(Exception):
    """Exception raised when marketplace API calls fail"""

    pass


class MarketplaceAPIClient:
    """HTTP client for the marketplace profile and feed endpoints"""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {
            "User-Agent": "expert-feed/1.0.0",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

        logger.info(f"Marketplace API client initialized for {self.base_url}")

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def _get_json(self, path: str) -> dict[str, Any]:
        try:
            response = await self.client.get(f"{self.base_url}{path}")
            response.raise_for_status()
            data = response.json()
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to marketplace API ({path}): {e}")
            raise MarketplaceAPIError(f"Connection failed: {e}")
        except httpx.HTTPStatusError as e:
            logger.error(f"Marketplace API request {path} failed: {e.response.status_code}")
            raise MarketplaceAPIError(
                f"Request {path} failed: {e.response.status_code}"
            )
        except ValueError as e:
            logger.error(f"Marketplace API returned invalid JSON for {path}: {e}")
            raise MarketplaceAPIError(f"Invalid response from {path}")

        if not isinstance(data, dict):
            logger.error(
                f"Marketplace API returned {type(data).__name__} instead of an object for {path}"
            )
            raise MarketplaceAPIError(f"Invalid response from {path}")
        return data

    @sentry_sdk.trace
    async def get_provider_profile(self) -> ProviderProfile:
        """Get the acting provider's profile"""
        data = await self._get_json("/provider-onboarding/profile")

        provider = data.get("provider")
        if not provider:
            raise MarketplaceAPIError("Provider profile missing from response")

        try:
            profile = ProviderProfile(**provider)
        except ValidationError as e:
            logger.error(f"Invalid provider profile: {e}")
            raise MarketplaceAPIError(f"Invalid provider profile: {e}")

        logger.info(
            f"Retrieved provider profile: {len(profile.categories)} categories, "
            f"{len(profile.skills)} skills, {len(profile.interests)} interests"
        )
        return profile

    @sentry_sdk.trace
    async def get_candidate_questions(self) -> list[Question]:
        """Get the full, unfiltered candidate question set for the expert feed"""
        data = await self._get_json("/feed/expert")

        questions = []
        for item in data.get("questions") or []:
            try:
                questions.append(Question.model_validate(item))
            except ValidationError as e:
                item_id = item.get("id") if isinstance(item, dict) else None
                logger.warning(f"Skipping malformed question {item_id}: {e}")

        logger.info(f"Retrieved {len(questions)} candidate questions")
        return questions

    def __repr__(self) -> str:
        return f"MarketplaceAPIClient(base_url='{self.base_url}')"
