from paperdesk.execution.ledger import PortfolioLedger, apply_buy, apply_sell
from paperdesk.execution.models import Holding, PortfolioState, Side, Trade, TradeSource

__all__ = [
    "Holding",
    "PortfolioLedger",
    "PortfolioState",
    "Side",
    "Trade",
    "TradeSource",
    "apply_buy",
    "apply_sell",
]
