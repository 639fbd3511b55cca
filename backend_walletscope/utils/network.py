"""Cluster detection from an RPC endpoint and explorer link building."""

from __future__ import annotations

EXPLORER_BASE_URL = "https://explorer.solana.com"
EXPLORER_KINDS = frozenset({"tx", "address", "account", "token"})


def detect_network(rpc_url: str) -> str:
    """Return devnet | testnet | mainnet-beta | localhost | unknown for an endpoint URL."""
    endpoint = (rpc_url or "").lower()
    if "devnet" in endpoint:
        return "devnet"
    if "testnet" in endpoint:
        return "testnet"
    if "mainnet" in endpoint:
        return "mainnet-beta"
    if "localhost" in endpoint or "127.0.0.1" in endpoint:
        return "localhost"
    return "unknown"


def explorer_network(network: str) -> str:
    """Map a detected network onto an explorer cluster; localhost browses devnet."""
    if network in ("devnet", "testnet", "mainnet-beta"):
        return network
    if network == "localhost":
        return "devnet"
    return "mainnet-beta"


def explorer_url(kind: str, value: str, network: str = "devnet") -> str:
    """
    Explorer link for a transaction, address, account or token.

    Mainnet links carry no cluster parameter.
    """
    if kind not in EXPLORER_KINDS:
        raise ValueError(f"unknown explorer link kind: {kind!r}")
    cluster = explorer_network(network)
    url = f"{EXPLORER_BASE_URL}/{kind}/{value}"
    if cluster != "mainnet-beta":
        url += f"?cluster={cluster}"
    return url
