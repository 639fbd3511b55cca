"""
Backend WalletScope: activity aggregation for Solana wallets.

Reconstructs a readable view of an address's token holdings and
transaction history from raw JSON-RPC primitives: enumerates token
accounts with decimal correction, pages the signature index under a
request budget, and classifies each transaction from the address's
point of view.
"""

__version__ = "0.1.0"
