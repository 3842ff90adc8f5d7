"""Blockchain facade: wallet state machine + provider + mocked ledger.

Each operation follows the same shape:

1. ask the state machine to start (this is where AlreadyInProgress and
   wrong-phase requests are rejected, before any I/O);
2. await the provider or ledger;
3. report success or failure back to the machine in one transition.

Provider and ledger exceptions never escape. They are stored on the wallet
state (``error``) and returned as ``ExternalCallFailed`` outcomes.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence

from ..errors import ExternalCallFailed, Outcome, TaskVerseError
from ..logs import log_activity
from ..wallet.ledger import Ledger, calculate_task_hash
from ..wallet.provider import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    MUMBAI_CONFIG,
    ChainNotAddedError,
    ProviderError,
    WalletProvider,
)
from ..wallet.state import (
    WalletConnectionState,
    WalletPhase,
    WalletStateMachine,
    short_address,
    wei_to_ether,
)

logger = logging.getLogger(__name__)

Notifier = Callable[..., Any]


def _message(exc: BaseException, default: str) -> str:
    return str(exc).strip() or default


class BlockchainContext:
    """Orchestrates wallet connection and ledger calls for one user session."""

    def __init__(
        self,
        machine: WalletStateMachine,
        provider: WalletProvider,
        ledger: Ledger,
        *,
        notify: Notifier = log_activity,
        user: Optional[str] = None,
    ) -> None:
        self.machine = machine
        self.provider = provider
        self.ledger = ledger
        self.user = user
        self.last_error: Optional[TaskVerseError] = None
        self._notify = notify
        self._subscribed = False

    @property
    def state(self) -> WalletConnectionState:
        return self.machine.state

    def _toast(
        self,
        kind: str,
        title: str,
        description: str,
        *,
        error: bool = False,
        task_id: Optional[str] = None,
    ) -> None:
        self._notify(
            kind=kind,
            title=title,
            description=description,
            variant="destructive" if error else "default",
            task_id=task_id,
            user=self.user,
        )

    def _fail(self, outcome: Outcome[Any]) -> Outcome[Any]:
        self.last_error = outcome.error
        return outcome

    def _external_failure(self, message: str) -> Outcome[WalletConnectionState]:
        error = ExternalCallFailed(message)
        self.last_error = error
        return Outcome.failure(error, self.machine.state)

    # -- detection -------------------------------------------------------

    async def detect_provider(self) -> Outcome[WalletConnectionState]:
        """Check for an installed wallet and any already-authorized account."""

        if self.machine.state.phase is not WalletPhase.UNINITIALIZED:
            return self._fail(self.machine.provider_detected(False))
        if not self.provider.is_available():
            return self.machine.provider_detected(False)

        if not self._subscribed:
            self.provider.on(ACCOUNTS_CHANGED, self.handle_accounts_changed)
            self.provider.on(CHAIN_CHANGED, self.handle_chain_changed)
            self._subscribed = True

        accounts: List[str] = []
        chain_id: Optional[str] = None
        try:
            accounts = await self.provider.get_accounts()
            if accounts:
                chain_id = await self.provider.get_chain_id()
        except Exception as exc:
            # An unreadable provider still counts as installed, just idle.
            logger.warning("Error checking wallet connection: %s", exc)
            accounts = []

        return self.machine.provider_detected(True, accounts, chain_id)

    # -- connection ------------------------------------------------------

    async def connect_wallet(self) -> Outcome[WalletConnectionState]:
        started = self.machine.begin_connect()
        if not started.ok:
            return self._fail(started)

        try:
            accounts = await self.provider.request_accounts()
            if not accounts:
                raise ProviderError("Wallet returned no accounts.")
            chain_id = await self.provider.get_chain_id()
            balance = wei_to_ether(await self.provider.get_balance(accounts[0]))
        except Exception as exc:
            message = _message(exc, "Failed to connect wallet")
            logger.warning("Wallet connect failed: %s", message)
            self.machine.connect_failed(message)
            self._toast("wallet_connect", "Connection Failed", message, error=True)
            return self._external_failure(message)

        outcome = self.machine.connect_succeeded(accounts[0], chain_id, balance)
        if not outcome.ok:
            return self._fail(outcome)

        self.last_error = None
        self._toast(
            "wallet_connect",
            "Wallet Connected",
            f"Connected to wallet: {short_address(outcome.value.address)}",
        )
        if not outcome.value.correct_network:
            self._toast(
                "wallet_network",
                "Wrong Network",
                "Please switch to Mumbai Testnet to use all features",
                error=True,
            )
        return outcome

    def disconnect_wallet(self) -> Outcome[WalletConnectionState]:
        """Forget the connection locally; provider permission is kept."""

        outcome = self.machine.disconnect()
        if not outcome.ok:
            return self._fail(outcome)
        self._toast("wallet_disconnect", "Wallet Disconnected", "Your wallet has been disconnected.")
        return outcome

    async def switch_network(self) -> Outcome[WalletConnectionState]:
        started = self.machine.begin_switch()
        if not started.ok:
            return self._fail(started)

        target = self.machine.target_chain_id
        try:
            try:
                await self.provider.switch_chain(target)
            except ChainNotAddedError:
                logger.info("Chain %s unknown to wallet; adding it", target)
                await self.provider.add_chain({**MUMBAI_CONFIG, "chainId": target})
            chain_id = await self.provider.get_chain_id()
        except Exception as exc:
            message = _message(exc, "Failed to switch network")
            logger.warning("Network switch failed: %s", message)
            self.machine.switch_failed(message)
            self._toast("wallet_network", "Network Switch Failed", message, error=True)
            return self._external_failure(message)

        outcome = self.machine.switch_succeeded(chain_id)
        if not outcome.ok:
            return self._fail(outcome)
        self.last_error = None
        self._toast("wallet_network", "Network Switched", "Successfully connected to Mumbai Testnet")
        return outcome

    # -- ledger ----------------------------------------------------------

    async def add_task_to_blockchain(self, task_id: str, task_title: str) -> Outcome[str]:
        """Anchor a task hash on the ledger and return the transaction hash."""

        started = self.machine.begin_ledger_call()
        if not started.ok:
            return self._fail(Outcome.failure(started.error))

        try:
            tx_hash = await self.ledger.add_task_hash(task_id, calculate_task_hash(task_title))
        except Exception as exc:
            message = _message(exc, "Failed to add task to blockchain")
            logger.warning("add_task_hash failed for %s: %s", task_id, message)
            self.machine.ledger_call_finished(message)
            self._toast("ledger_add", "Blockchain Transaction Failed", message, error=True, task_id=task_id)
            self.last_error = ExternalCallFailed(message)
            return Outcome.failure(self.last_error)

        self.machine.ledger_call_finished()
        self.last_error = None
        self._toast(
            "ledger_add",
            "Task Added to Blockchain",
            "Your task has been successfully added to the blockchain",
            task_id=task_id,
        )
        return Outcome.success(tx_hash)

    async def verify_task_on_blockchain(self, task_id: str) -> Outcome[bool]:
        """Mark the task completed on the ledger and confirm it reads back."""

        started = self.machine.begin_ledger_call()
        if not started.ok:
            return self._fail(Outcome.failure(started.error, False))

        try:
            await self.ledger.mark_completed(task_id)
            confirmed = await self.ledger.is_completed(task_id)
            if not confirmed:
                raise ProviderError("Ledger did not confirm task completion.")
        except Exception as exc:
            message = _message(exc, "Failed to verify task on blockchain")
            logger.warning("Ledger verification failed for %s: %s", task_id, message)
            self.machine.ledger_call_finished(message)
            self._toast("ledger_verify", "Blockchain Verification Failed", message, error=True, task_id=task_id)
            self.last_error = ExternalCallFailed(message)
            return Outcome.failure(self.last_error, False)

        self.machine.ledger_call_finished()
        self.last_error = None
        self._toast(
            "ledger_verify",
            "Task Verified on Blockchain",
            "Your task has been successfully verified on the blockchain",
            task_id=task_id,
        )
        return Outcome.success(True)

    # -- provider events -------------------------------------------------

    async def handle_accounts_changed(self, accounts: Sequence[str]) -> Outcome[WalletConnectionState]:
        outcome = self.machine.accounts_changed(list(accounts))
        if accounts:
            self._toast("wallet_account", "Account Changed", f"Connected to wallet: {short_address(accounts[0])}")
        else:
            self._toast("wallet_disconnect", "Wallet Disconnected", "Your wallet has been disconnected.")
        return outcome

    async def handle_chain_changed(self, chain_id: str) -> Outcome[WalletConnectionState]:
        """Reset and re-detect; account and network cannot be assumed stable."""

        self.machine.chain_changed(chain_id)
        outcome = await self.detect_provider()
        if outcome.ok and outcome.value.phase is WalletPhase.CONNECTED and not outcome.value.correct_network:
            self._toast(
                "wallet_network",
                "Wrong Network",
                "Please switch to Mumbai Testnet to use all features",
                error=True,
            )
        return outcome
