"""Transaction history: cursor paging, throttled detail reads, classification."""

from backend_walletscope.activity.classifier import classify
from backend_walletscope.activity.fetcher import DetailFetcher, DetailResult, RateLimitNotifier
from backend_walletscope.activity.history import ActivityHistory
from backend_walletscope.activity.models import ActivityPage, ClassifiedTransaction, TxKind, TxStatus
from backend_walletscope.activity.pager import CursorPager, PagerError, PagerState

__all__ = [
    "ActivityHistory",
    "ActivityPage",
    "ClassifiedTransaction",
    "CursorPager",
    "DetailFetcher",
    "DetailResult",
    "PagerError",
    "PagerState",
    "RateLimitNotifier",
    "TxKind",
    "TxStatus",
    "classify",
]
