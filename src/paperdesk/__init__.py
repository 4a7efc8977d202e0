from paperdesk.config import Settings
from paperdesk.execution.ledger import PortfolioLedger
from paperdesk.execution.models import PortfolioState, Trade
from paperdesk.strategy import SignalLoop, StrategyConfig

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "PortfolioLedger",
    "PortfolioState",
    "Trade",
    "SignalLoop",
    "StrategyConfig",
    "__version__",
]
