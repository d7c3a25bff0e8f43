"""Models package for Expert Feed"""

# Import API models
from .api_models import (
    FeedItem,
    FeedResponse,
    HealthResponse,
    ReloadResponse,
    StatsResponse,
)

# Import marketplace models
from .feed_models import (
    ProviderCategory,
    ProviderProfile,
    Question,
    QuestionStatus,
)

__all__ = [
    # API models
    "FeedItem",
    "FeedResponse",
    "HealthResponse",
    "ReloadResponse",
    "StatsResponse",
    # Marketplace models
    "ProviderCategory",
    "ProviderProfile",
    "Question",
    "QuestionStatus",
]
