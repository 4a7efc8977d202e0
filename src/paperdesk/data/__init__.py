from paperdesk.data.base import FeedTick, PriceFeed
from paperdesk.data.feeds import ASSET_UNIVERSE, Asset, RandomWalkFeed, SequenceFeed, find_asset
from paperdesk.data.history import PriceHistory

__all__ = [
    "ASSET_UNIVERSE",
    "Asset",
    "FeedTick",
    "PriceFeed",
    "PriceHistory",
    "RandomWalkFeed",
    "SequenceFeed",
    "find_asset",
]
