"""
Core types shared by every pipeline component: the ledger error taxonomy
and the subject session used for supersession of in-flight operations.
"""

from backend_walletscope.core.exceptions import (
    ErrorInfo,
    ErrorKind,
    LedgerError,
    Superseded,
    error_from_rpc_payload,
    normalize_error,
)
from backend_walletscope.core.session import SubjectSession, SubjectToken
from backend_walletscope.utils.wallet_utils import validate_address

__all__ = [
    "ErrorInfo",
    "ErrorKind",
    "LedgerError",
    "Superseded",
    "SubjectSession",
    "SubjectToken",
    "error_from_rpc_payload",
    "normalize_error",
    "validate_address",
]
