"""Services package for Expert Feed"""

from .feed_reconciler import FeedReconciler, FeedState, FeedUnavailableError
from .marketplace_api_client import MarketplaceAPIClient, MarketplaceAPIError
from .realtime_channel import RealtimeChannel, SocketIOChannel

__all__ = [
    "FeedReconciler",
    "FeedState",
    "FeedUnavailableError",
    "MarketplaceAPIClient",
    "MarketplaceAPIError",
    "RealtimeChannel",
    "SocketIOChannel",
]
