from paperdesk.domain.models import Candle, PricePoint, Signal

__all__ = ["Candle", "PricePoint", "Signal"]
