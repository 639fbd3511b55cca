"""
Ledger RPC access: the LedgerRpc protocol, its httpx JSON-RPC
implementation, result models, and local SPL account decoding.
"""

from backend_walletscope.rpc.client import LedgerRpcClient
from backend_walletscope.rpc.models import SignatureInfo, TokenAccountEntry
from backend_walletscope.rpc.protocol import LedgerRpc
from backend_walletscope.rpc.spl_layouts import MintState, TokenAccountState

__all__ = [
    "LedgerRpc",
    "LedgerRpcClient",
    "MintState",
    "SignatureInfo",
    "TokenAccountEntry",
    "TokenAccountState",
]
