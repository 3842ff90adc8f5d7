import asyncio
import re

import pytest

from conftest import FailingLedger
from taskverse.errors import (
    AlreadyInProgress,
    ExternalCallFailed,
    InvalidTransition,
    ProviderUnavailable,
)
from taskverse.services import BlockchainContext
from taskverse.wallet import (
    MUMBAI_CONFIG,
    ProviderError,
    SimulatedLedger,
    SimulatedWalletProvider,
    WalletPhase,
    WalletStateMachine,
)


OTHER_ADDRESS = "0x2546BcD3c84621e976D8185a91A922aE77ECEc30"


class RejectingSwitchProvider(SimulatedWalletProvider):
    async def switch_chain(self, chain_id):
        raise ProviderError("User rejected the request.", code=4001)


def _context(notifications, target_chain, *, provider=None, ledger=None) -> BlockchainContext:
    return BlockchainContext(
        WalletStateMachine(target_chain_id=target_chain),
        provider or SimulatedWalletProvider(),
        ledger or SimulatedLedger(latency_seconds=0),
        notify=notifications,
        user="tester@example.com",
    )


@pytest.mark.asyncio
async def test_detect_without_provider(notifications, target_chain):
    chain = _context(notifications, target_chain, provider=SimulatedWalletProvider(installed=False))

    await chain.detect_provider()
    outcome = await chain.connect_wallet()

    assert chain.state.phase is WalletPhase.NO_PROVIDER
    assert isinstance(outcome.error, ProviderUnavailable)
    assert chain.last_error is outcome.error


@pytest.mark.asyncio
async def test_connect_on_wrong_network_notifies(notifications, target_chain):
    chain = _context(notifications, target_chain)
    await chain.detect_provider()

    outcome = await chain.connect_wallet()

    state = outcome.value
    assert state.phase is WalletPhase.CONNECTED
    assert state.balance == "1.0000"
    assert state.network_id == "0x1"
    assert state.correct_network is False
    assert notifications.titles == ["Wallet Connected", "Wrong Network"]
    assert notifications.entries[0]["user"] == "tester@example.com"


@pytest.mark.asyncio
async def test_rejected_connect_is_external_failure(notifications, target_chain):
    chain = _context(notifications, target_chain, provider=SimulatedWalletProvider(reject_requests=True))
    await chain.detect_provider()

    outcome = await chain.connect_wallet()

    assert isinstance(outcome.error, ExternalCallFailed)
    assert chain.state.phase is WalletPhase.PROVIDER_IDLE
    assert chain.state.error == "User rejected the request."
    assert chain.state.loading is False
    assert notifications.titles == ["Connection Failed"]
    assert notifications.entries[0]["variant"] == "destructive"


@pytest.mark.asyncio
async def test_overlapping_connects_fail_fast(notifications, target_chain):
    chain = _context(notifications, target_chain, provider=SimulatedWalletProvider(latency_seconds=0.01))
    await chain.detect_provider()

    first, second = await asyncio.gather(chain.connect_wallet(), chain.connect_wallet())

    assert first.ok
    assert isinstance(second.error, AlreadyInProgress)
    assert chain.state.phase is WalletPhase.CONNECTED


@pytest.mark.asyncio
async def test_switch_adds_unknown_chain(notifications, target_chain):
    provider = SimulatedWalletProvider()
    chain = _context(notifications, target_chain, provider=provider)
    await chain.detect_provider()
    await chain.connect_wallet()

    outcome = await chain.switch_network()

    assert outcome.ok
    assert chain.state.correct_network is True
    assert chain.state.network_id == target_chain
    assert provider.added_chains == [MUMBAI_CONFIG]
    assert notifications.titles[-1] == "Network Switched"


@pytest.mark.asyncio
async def test_switch_when_already_on_target_is_rejected(notifications, target_chain):
    provider = SimulatedWalletProvider(chain_id=target_chain, known_chains=(target_chain,))
    chain = _context(notifications, target_chain, provider=provider)
    await chain.detect_provider()
    await chain.connect_wallet()
    before = chain.state

    outcome = await chain.switch_network()

    assert isinstance(outcome.error, InvalidTransition)
    assert chain.state is before


@pytest.mark.asyncio
async def test_ledger_calls_need_a_connected_wallet(notifications, target_chain):
    chain = _context(notifications, target_chain)
    await chain.detect_provider()

    outcome = await chain.add_task_to_blockchain("1", "Complete DApp MVP")

    assert isinstance(outcome.error, InvalidTransition)
    assert notifications.entries == []


@pytest.mark.asyncio
async def test_add_task_returns_transaction_hash(notifications, target_chain):
    ledger = SimulatedLedger(latency_seconds=0)
    chain = _context(notifications, target_chain, ledger=ledger)
    await chain.detect_provider()
    await chain.connect_wallet()

    outcome = await chain.add_task_to_blockchain("1", "Complete DApp MVP")

    assert re.fullmatch(r"0x[0-9a-f]{64}", outcome.value)
    assert "1" in ledger.hashes
    assert chain.state.loading is False
    assert notifications.titles[-1] == "Task Added to Blockchain"


@pytest.mark.asyncio
async def test_ledger_failure_is_recorded_on_wallet_state(notifications, target_chain):
    chain = _context(notifications, target_chain, ledger=FailingLedger())
    await chain.detect_provider()
    await chain.connect_wallet()

    outcome = await chain.verify_task_on_blockchain("1")

    assert isinstance(outcome.error, ExternalCallFailed)
    assert outcome.value is False
    assert chain.state.error == "execution reverted"
    assert chain.state.loading is False
    assert chain.state.phase is WalletPhase.CONNECTED
    assert notifications.titles[-1] == "Blockchain Verification Failed"


@pytest.mark.asyncio
async def test_accounts_changed_event_disconnects(notifications, target_chain):
    provider = SimulatedWalletProvider()
    chain = _context(notifications, target_chain, provider=provider)
    await chain.detect_provider()
    await chain.connect_wallet()

    await provider.emit_accounts_changed([])

    assert chain.state.phase is WalletPhase.DISCONNECTED
    assert notifications.titles[-1] == "Wallet Disconnected"


@pytest.mark.asyncio
async def test_chain_changed_event_redetects(notifications, target_chain):
    provider = SimulatedWalletProvider()
    chain = _context(notifications, target_chain, provider=provider)
    await chain.detect_provider()
    await chain.connect_wallet()

    await provider.emit_chain_changed(target_chain)

    state = chain.state
    assert state.phase is WalletPhase.CONNECTED
    assert state.correct_network is True
    assert state.address == provider.accounts[0]


@pytest.mark.asyncio
async def test_rejected_switch_keeps_wrong_network_connection(notifications, target_chain):
    chain = _context(notifications, target_chain, provider=RejectingSwitchProvider())
    await chain.detect_provider()
    await chain.connect_wallet()

    outcome = await chain.switch_network()

    assert isinstance(outcome.error, ExternalCallFailed)
    state = chain.state
    assert state.phase is WalletPhase.CONNECTED
    assert state.correct_network is False
    assert state.loading is False
    assert state.error == "User rejected the request."
    assert notifications.titles[-1] == "Network Switch Failed"


@pytest.mark.asyncio
async def test_accounts_changed_event_switches_account(notifications, target_chain):
    provider = SimulatedWalletProvider()
    chain = _context(notifications, target_chain, provider=provider)
    await chain.detect_provider()
    await chain.connect_wallet()

    await provider.emit_accounts_changed([OTHER_ADDRESS])

    state = chain.state
    assert state.phase is WalletPhase.CONNECTED
    assert state.address == OTHER_ADDRESS
    assert state.network_id == "0x1"
    assert state.correct_network is False
    assert notifications.titles[-1] == "Account Changed"


@pytest.mark.asyncio
async def test_accounts_changed_during_connect_still_connects(notifications, target_chain):
    provider = SimulatedWalletProvider(latency_seconds=0.01)
    chain = _context(notifications, target_chain, provider=provider)
    await chain.detect_provider()

    connecting = asyncio.create_task(chain.connect_wallet())
    await asyncio.sleep(0)
    assert chain.state.phase is WalletPhase.CONNECTING
    await provider.emit_accounts_changed([OTHER_ADDRESS])
    outcome = await connecting

    assert outcome.ok
    assert outcome.value.address == OTHER_ADDRESS
    assert outcome.value.balance == "1.0000"
    assert "Wallet Connected" in notifications.titles
