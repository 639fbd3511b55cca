"""Token holdings: enumeration across sub-accounts with decimal correction."""

from backend_walletscope.portfolio.enumerator import BalanceEnumerator
from backend_walletscope.portfolio.models import Holding, HoldingsResult
from backend_walletscope.portfolio.view import PortfolioView

__all__ = ["BalanceEnumerator", "Holding", "HoldingsResult", "PortfolioView"]
