"""Wallet connection state and the mocked on-chain collaborators."""
from __future__ import annotations

from .ledger import Ledger, SimulatedLedger, calculate_task_hash
from .provider import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    MUMBAI_CONFIG,
    ChainNotAddedError,
    ProviderError,
    SimulatedWalletProvider,
    WalletProvider,
)
from .state import (
    WalletConnectionState,
    WalletPhase,
    WalletStateMachine,
    short_address,
    wei_to_ether,
)

__all__ = [
    "Ledger",
    "SimulatedLedger",
    "calculate_task_hash",
    "ACCOUNTS_CHANGED",
    "CHAIN_CHANGED",
    "MUMBAI_CONFIG",
    "ChainNotAddedError",
    "ProviderError",
    "SimulatedWalletProvider",
    "WalletProvider",
    "WalletConnectionState",
    "WalletPhase",
    "WalletStateMachine",
    "short_address",
    "wei_to_ether",
]
