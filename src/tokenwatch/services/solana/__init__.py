"""Solana RPC client and providers."""

from tokenwatch.services.solana.rpc_client import (
    SolanaHolderProvider,
    SolanaRPCClient,
    SolanaSupplyProvider,
)

__all__ = ["SolanaHolderProvider", "SolanaRPCClient", "SolanaSupplyProvider"]
