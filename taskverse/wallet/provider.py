"""Wallet provider port and an in-memory provider for development.

The provider mirrors the RPC surface a browser wallet (MetaMask) injects:
account requests, chain id, balance lookups, chain switching, and the
``accountsChanged`` / ``chainChanged`` events.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Protocol, Sequence

from ..config import MUMBAI_CHAIN_ID

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

# EIP-3085 parameters for the target test network
MUMBAI_CONFIG: Dict[str, Any] = {
    "chainId": MUMBAI_CHAIN_ID,
    "chainName": "Mumbai Testnet",
    "nativeCurrency": {
        "name": "MATIC",
        "symbol": "MATIC",
        "decimals": 18,
    },
    "rpcUrls": ["https://rpc-mumbai.maticvigil.com"],
    "blockExplorerUrls": ["https://mumbai.polygonscan.com"],
}

EventHandler = Callable[[Any], Awaitable[None]]


class ProviderError(RuntimeError):
    """Raised by a provider when an RPC request is rejected."""

    def __init__(self, message: str, code: int = -32603) -> None:
        super().__init__(message)
        self.code = code


class ChainNotAddedError(ProviderError):
    """The requested chain is unknown to the wallet (EIP-1193 code 4902)."""

    def __init__(self, chain_id: str) -> None:
        super().__init__(f"Unrecognized chain ID {chain_id}.", code=4902)
        self.chain_id = chain_id


class WalletProvider(Protocol):
    def is_available(self) -> bool: ...

    async def get_accounts(self) -> List[str]: ...

    async def request_accounts(self) -> List[str]: ...

    async def get_chain_id(self) -> str: ...

    async def get_balance(self, address: str) -> str: ...

    async def switch_chain(self, chain_id: str) -> None: ...

    async def add_chain(self, config: Dict[str, Any]) -> None: ...

    def on(self, event: str, handler: EventHandler) -> None: ...


class SimulatedWalletProvider:
    """Deterministic in-memory wallet.

    ``installed=False`` behaves like a browser without the extension.
    ``reject_requests`` makes ``request_accounts`` fail like a user
    dismissing the connection prompt. Tests and the CLI drive events
    through ``emit_accounts_changed`` / ``emit_chain_changed``.
    """

    def __init__(
        self,
        *,
        installed: bool = True,
        accounts: Sequence[str] = ("0x71C7656EC7ab88b098defB751B7401B5f6d8976F",),
        chain_id: str = "0x1",
        balance_wei: str = "0xde0b6b3a7640000",
        authorized: bool = False,
        known_chains: Sequence[str] = ("0x1",),
        reject_requests: bool = False,
        latency_seconds: float = 0.0,
    ) -> None:
        self.installed = installed
        self.accounts = list(accounts)
        self.chain_id = chain_id
        self.balance_wei = balance_wei
        self.authorized = authorized
        self.known_chains = {c.lower() for c in known_chains}
        self.reject_requests = reject_requests
        self.latency_seconds = latency_seconds
        self.added_chains: List[Dict[str, Any]] = []
        self._handlers: Dict[str, List[EventHandler]] = {}

    async def _delay(self) -> None:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

    def _require_installed(self) -> None:
        if not self.installed:
            raise ProviderError("MetaMask is not installed")

    def is_available(self) -> bool:
        return self.installed

    async def get_accounts(self) -> List[str]:
        self._require_installed()
        await self._delay()
        return list(self.accounts) if self.authorized else []

    async def request_accounts(self) -> List[str]:
        self._require_installed()
        await self._delay()
        if self.reject_requests:
            raise ProviderError("User rejected the request.", code=4001)
        self.authorized = True
        return list(self.accounts)

    async def get_chain_id(self) -> str:
        self._require_installed()
        await self._delay()
        return self.chain_id

    async def get_balance(self, address: str) -> str:
        self._require_installed()
        await self._delay()
        return self.balance_wei

    async def switch_chain(self, chain_id: str) -> None:
        self._require_installed()
        await self._delay()
        if chain_id.lower() not in self.known_chains:
            raise ChainNotAddedError(chain_id)
        self.chain_id = chain_id

    async def add_chain(self, config: Dict[str, Any]) -> None:
        self._require_installed()
        await self._delay()
        chain_id = str(config["chainId"])
        self.added_chains.append(config)
        self.known_chains.add(chain_id.lower())
        # MetaMask switches to a freshly added chain.
        self.chain_id = chain_id

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    async def _emit(self, event: str, payload: Any) -> None:
        for handler in self._handlers.get(event, []):
            await handler(payload)

    async def emit_accounts_changed(self, accounts: Sequence[str]) -> None:
        self.accounts = list(accounts)
        self.authorized = bool(accounts)
        await self._emit(ACCOUNTS_CHANGED, list(accounts))

    async def emit_chain_changed(self, chain_id: str) -> None:
        self.chain_id = chain_id
        await self._emit(CHAIN_CHANGED, chain_id)
