"""Wallet connection state machine.

Phases::

    UNINITIALIZED -> NO_PROVIDER | PROVIDER_IDLE | CONNECTED
    PROVIDER_IDLE / DISCONNECTED --begin_connect--> CONNECTING
    CONNECTING --connect_succeeded--> CONNECTED
    CONNECTING --connect_failed--> PROVIDER_IDLE (error set)
    CONNECTED(wrong network) --begin_switch--> SWITCHING
    SWITCHING --switch_succeeded--> CONNECTED
    SWITCHING --switch_failed--> CONNECTED(wrong network, error set)
    CONNECTED --disconnect--> DISCONNECTED
    any --accounts_changed([])--> DISCONNECTED
    other phases --accounts_changed([a])--> CONNECTED
    any --chain_changed--> UNINITIALIZED

The machine performs no I/O. Callers (the blockchain facade) await the
provider or ledger and then report the result through the matching
``*_succeeded`` / ``*_failed`` transition. ``loading`` is set synchronously
by every ``begin_*`` call, so a second mutating call started before the
first resolves is rejected with AlreadyInProgress.

Every transition returns an ``Outcome``; on failure the state is left
untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from ..config import MUMBAI_CHAIN_ID
from ..errors import (
    AlreadyInProgress,
    InvalidTransition,
    Outcome,
    ProviderUnavailable,
    TaskVerseError,
)

logger = logging.getLogger(__name__)

WEI_PER_ETHER = Decimal(10) ** 18


class WalletPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    NO_PROVIDER = "no_provider"
    PROVIDER_IDLE = "provider_idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SWITCHING = "switching"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class WalletConnectionState:
    """Snapshot of the wallet connection.

    ``connected`` False always implies ``address`` and ``balance`` are None.
    """

    phase: WalletPhase = WalletPhase.UNINITIALIZED
    provider_available: bool = False
    connected: bool = False
    address: Optional[str] = None
    network_id: Optional[str] = None
    balance: Optional[str] = None
    correct_network: bool = False
    loading: bool = False
    error: Optional[str] = None

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "providerAvailable": self.provider_available,
            "connected": self.connected,
            "address": self.address,
            "networkId": self.network_id,
            "balance": self.balance,
            "correctNetwork": self.correct_network,
            "loading": self.loading,
            "error": self.error,
        }


def wei_to_ether(hex_wei: str) -> str:
    """Convert a hex wei balance (``0x...``) to an ether string with 4 places."""
    try:
        wei = int(str(hex_wei), 16)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid hex balance {hex_wei!r}") from exc
    return f"{Decimal(wei) / WEI_PER_ETHER:.4f}"


def short_address(address: str) -> str:
    """Return ``0x1234...abcd`` for notifications."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


class WalletStateMachine:
    """Owner of a single ``WalletConnectionState``."""

    def __init__(
        self,
        *,
        target_chain_id: str = MUMBAI_CHAIN_ID,
        state: Optional[WalletConnectionState] = None,
    ) -> None:
        self.target_chain_id = target_chain_id.lower()
        self._state = state or WalletConnectionState()
        # Account reported by the wallet while a connect was in flight.
        self._pending_account: Optional[str] = None

    @property
    def state(self) -> WalletConnectionState:
        return self._state

    # -- helpers ---------------------------------------------------------

    def _is_target(self, chain_id: Optional[str]) -> bool:
        return chain_id is not None and str(chain_id).lower() == self.target_chain_id

    def _apply(self, new_state: WalletConnectionState) -> Outcome[WalletConnectionState]:
        if new_state.phase is not self._state.phase:
            logger.info(
                "Wallet %s -> %s", self._state.phase.value, new_state.phase.value
            )
        self._state = new_state
        return Outcome.success(new_state)

    def _reject(self, error: TaskVerseError) -> Outcome[WalletConnectionState]:
        logger.debug("Wallet transition rejected in %s: %s", self._state.phase.value, error)
        return Outcome.failure(error, self._state)

    def _guard(
        self, operation: str, allowed: Sequence[WalletPhase]
    ) -> Optional[TaskVerseError]:
        state = self._state
        if state.loading:
            return AlreadyInProgress(
                f"Cannot {operation}: another wallet operation is in progress."
            )
        if state.phase is WalletPhase.NO_PROVIDER:
            return ProviderUnavailable("No wallet provider detected. Install MetaMask.")
        if state.phase not in allowed:
            return InvalidTransition(
                f"Cannot {operation} while wallet is {state.phase.value}."
            )
        return None

    def _connected_state(
        self, address: str, chain_id: Optional[str], balance: Optional[str]
    ) -> WalletConnectionState:
        return replace(
            self._state,
            phase=WalletPhase.CONNECTED,
            provider_available=True,
            connected=True,
            address=address,
            network_id=chain_id,
            balance=balance,
            correct_network=self._is_target(chain_id),
            loading=False,
        )

    # -- detection -------------------------------------------------------

    def provider_detected(
        self,
        available: bool,
        accounts: Sequence[str] = (),
        chain_id: Optional[str] = None,
    ) -> Outcome[WalletConnectionState]:
        if self._state.phase is not WalletPhase.UNINITIALIZED:
            return self._reject(
                InvalidTransition("Provider detection only runs from uninitialized.")
            )
        if not available:
            return self._apply(
                replace(WalletConnectionState(), phase=WalletPhase.NO_PROVIDER)
            )
        idle = replace(
            WalletConnectionState(),
            phase=WalletPhase.PROVIDER_IDLE,
            provider_available=True,
            network_id=chain_id,
            correct_network=self._is_target(chain_id),
        )
        self._apply(idle)
        if accounts:
            return self._apply(self._connected_state(accounts[0], chain_id, None))
        return Outcome.success(idle)

    # -- connect ---------------------------------------------------------

    def begin_connect(self) -> Outcome[WalletConnectionState]:
        error = self._guard(
            "connect", (WalletPhase.PROVIDER_IDLE, WalletPhase.DISCONNECTED)
        )
        if error:
            return self._reject(error)
        return self._apply(
            replace(self._state, phase=WalletPhase.CONNECTING, loading=True, error=None)
        )

    def connect_succeeded(
        self, address: str, chain_id: str, balance: Optional[str]
    ) -> Outcome[WalletConnectionState]:
        if self._state.phase is not WalletPhase.CONNECTING:
            return self._reject(InvalidTransition("No connect in progress."))
        pending, self._pending_account = self._pending_account, None
        if pending and pending != address:
            address, balance = pending, None
        return self._apply(self._connected_state(address, chain_id, balance))

    def connect_failed(self, message: str) -> Outcome[WalletConnectionState]:
        if self._state.phase is not WalletPhase.CONNECTING:
            return self._reject(InvalidTransition("No connect in progress."))
        self._pending_account = None
        return self._apply(
            replace(
                self._state,
                phase=WalletPhase.PROVIDER_IDLE,
                connected=False,
                address=None,
                balance=None,
                loading=False,
                error=message,
            )
        )

    # -- disconnect ------------------------------------------------------

    def disconnect(self) -> Outcome[WalletConnectionState]:
        error = self._guard("disconnect", (WalletPhase.CONNECTED,))
        if error:
            return self._reject(error)
        return self._apply(
            replace(
                self._state,
                phase=WalletPhase.DISCONNECTED,
                connected=False,
                address=None,
                balance=None,
                error=None,
            )
        )

    # -- network switch --------------------------------------------------

    def begin_switch(self) -> Outcome[WalletConnectionState]:
        error = self._guard("switch network", (WalletPhase.CONNECTED,))
        if error:
            return self._reject(error)
        if self._state.correct_network:
            return self._reject(
                InvalidTransition("Already connected to the target network.")
            )
        return self._apply(
            replace(self._state, phase=WalletPhase.SWITCHING, loading=True, error=None)
        )

    def switch_succeeded(self, chain_id: str) -> Outcome[WalletConnectionState]:
        if self._state.phase is not WalletPhase.SWITCHING:
            return self._reject(InvalidTransition("No network switch in progress."))
        return self._apply(
            replace(
                self._state,
                phase=WalletPhase.CONNECTED,
                network_id=chain_id,
                correct_network=self._is_target(chain_id),
                loading=False,
            )
        )

    def switch_failed(self, message: str) -> Outcome[WalletConnectionState]:
        if self._state.phase is not WalletPhase.SWITCHING:
            return self._reject(InvalidTransition("No network switch in progress."))
        return self._apply(
            replace(
                self._state,
                phase=WalletPhase.CONNECTED,
                correct_network=False,
                loading=False,
                error=message,
            )
        )

    # -- ledger calls ----------------------------------------------------

    def begin_ledger_call(self) -> Outcome[WalletConnectionState]:
        error = self._guard("submit a ledger transaction", (WalletPhase.CONNECTED,))
        if error:
            return self._reject(error)
        return self._apply(replace(self._state, loading=True, error=None))

    def ledger_call_finished(
        self, error: Optional[str] = None
    ) -> Outcome[WalletConnectionState]:
        if not self._state.loading:
            return self._reject(InvalidTransition("No ledger call in progress."))
        return self._apply(replace(self._state, loading=False, error=error))

    # -- provider events -------------------------------------------------

    def accounts_changed(self, accounts: Sequence[str]) -> Outcome[WalletConnectionState]:
        """Follow the wallet's active account.

        An in-flight connect or network switch keeps its phase and
        ``loading``; the new account is picked up when it finishes.
        """

        state = self._state
        if accounts and state.phase is WalletPhase.CONNECTING:
            self._pending_account = accounts[0]
            return Outcome.success(state)
        if accounts and state.phase is WalletPhase.SWITCHING:
            balance = state.balance if state.address == accounts[0] else None
            return self._apply(replace(state, address=accounts[0], balance=balance))

        self._pending_account = None
        if not accounts:
            return self._apply(
                replace(
                    self._state,
                    phase=WalletPhase.DISCONNECTED,
                    connected=False,
                    address=None,
                    balance=None,
                    loading=False,
                )
            )
        balance = state.balance if state.address == accounts[0] else None
        # A ledger call in flight still has to report back.
        ledger_busy = state.phase is WalletPhase.CONNECTED and state.loading
        return self._apply(
            replace(
                self._connected_state(accounts[0], state.network_id, balance),
                loading=ledger_busy,
            )
        )

    def chain_changed(self, chain_id: str) -> Outcome[WalletConnectionState]:
        logger.info("Wallet chain changed to %s; resetting connection state", chain_id)
        self._pending_account = None
        return self._apply(
            WalletConnectionState(network_id=chain_id, correct_network=self._is_target(chain_id))
        )
