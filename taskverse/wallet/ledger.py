"""Mocked TaskManager contract.

No transaction is signed or broadcast. ``SimulatedLedger`` waits a
configurable delay and answers with random hashes so the rest of the app can
exercise the full verification flow.
"""
from __future__ import annotations

import asyncio
import secrets
from typing import Any, Dict, List, Protocol, Set

TASK_MANAGER_CONTRACT_ADDRESS = "0x1234567890123456789012345678901234567890"

TASK_MANAGER_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "string", "name": "taskId", "type": "string"},
            {"internalType": "bytes32", "name": "taskHash", "type": "bytes32"},
        ],
        "name": "addTaskHash",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "string", "name": "taskId", "type": "string"}],
        "name": "markTaskCompleted",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "string", "name": "taskId", "type": "string"}],
        "name": "isTaskCompleted",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def random_hash() -> str:
    """Return a ``0x``-prefixed 32-byte hex string."""
    return "0x" + secrets.token_hex(32)


def calculate_task_hash(task_title: str) -> str:
    # Stand-in for keccak256(title); the mocked contract never checks it.
    return random_hash()


class Ledger(Protocol):
    async def add_task_hash(self, task_id: str, task_hash: str) -> str: ...

    async def mark_completed(self, task_id: str) -> None: ...

    async def is_completed(self, task_id: str) -> bool: ...


class SimulatedLedger:
    """In-memory ledger with artificial confirmation delay."""

    def __init__(self, *, latency_seconds: float = 2.0) -> None:
        self.latency_seconds = latency_seconds
        self.hashes: Dict[str, str] = {}
        self.completed: Set[str] = set()

    async def _confirm(self) -> None:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

    async def add_task_hash(self, task_id: str, task_hash: str) -> str:
        await self._confirm()
        self.hashes[task_id] = task_hash
        return random_hash()

    async def mark_completed(self, task_id: str) -> None:
        await self._confirm()
        self.completed.add(task_id)

    async def is_completed(self, task_id: str) -> bool:
        return task_id in self.completed
