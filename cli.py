#!/usr/bin/env python3
"""TaskVerse CLI."""
from __future__ import annotations

import argparse
import asyncio
import sys

from taskverse.config import ConfigError, Settings, load_settings
from taskverse.services import UserSession, build_session
from taskverse.task_store import TaskFilter, TaskSort
from taskverse.tasks import format_task_rows
from taskverse.wallet import WalletPhase


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskverse",
        description="Task tracker with wallet-backed on-chain verification (simulated collaborators).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List tasks in the current view.")
    list_parser.add_argument(
        "--filter",
        choices=[f.value for f in TaskFilter],
        default=TaskFilter.ALL.value,
        help="Which tasks to show.",
    )
    list_parser.add_argument(
        "--sort",
        choices=[s.value for s in TaskSort],
        default=TaskSort.DUE_DATE.value,
        help="Ordering of the view.",
    )

    subparsers.add_parser("analytics", help="Show completion analytics.")
    subparsers.add_parser("prioritize", help="Ask the assistant for a motivational tip.")

    wallet_parser = subparsers.add_parser("wallet", help="Detect and connect the simulated wallet.")
    wallet_parser.add_argument(
        "--switch",
        action="store_true",
        help="Switch to the target network after connecting.",
    )

    return parser


async def _cmd_list(session: UserSession, task_filter: str, task_sort: str) -> int:
    await session.start()
    for outcome in (session.tasks.set_filter(task_filter), session.tasks.set_sort(task_sort)):
        if not outcome.ok:
            print(outcome.error.message, file=sys.stderr)
            return 1
    print(format_task_rows(session.tasks.state.view))
    return 0


async def _cmd_analytics(session: UserSession) -> int:
    await session.start()
    analytics = (await session.tasks.fetch_analytics()).value
    print(f"Total tasks:     {analytics.total_tasks}")
    print(f"Completed:       {analytics.completed_tasks}")
    print(f"Pending:         {analytics.pending_tasks}")
    print(f"Completion rate: {analytics.completion_rate}%")
    if analytics.category_counts:
        print("\nBy category:")
        for category, count in sorted(analytics.category_counts.items()):
            print(f"  {category}: {count}")
    print("\nLast 7 days (completed/created):")
    for day in analytics.weekly_completion:
        print(f"  {day.day} {day.date:%Y-%m-%d}: {day.completed}/{day.created}")
    return 0


async def _cmd_prioritize(session: UserSession) -> int:
    await session.start()
    outcome = await session.tasks.get_ai_prioritization()
    if not outcome.ok:
        print(outcome.error.message, file=sys.stderr)
        return 1
    print(outcome.value.motivational_tip)
    return 0


async def _cmd_wallet(session: UserSession, switch: bool) -> int:
    await session.start()
    chain = session.chain
    if chain.state.phase is WalletPhase.NO_PROVIDER:
        print("No wallet provider detected.", file=sys.stderr)
        return 1
    if chain.state.phase is not WalletPhase.CONNECTED:
        outcome = await chain.connect_wallet()
        if not outcome.ok:
            print(outcome.error.message, file=sys.stderr)
            return 1
    if switch and not chain.state.correct_network:
        outcome = await chain.switch_network()
        if not outcome.ok:
            print(outcome.error.message, file=sys.stderr)
            return 1

    state = chain.state
    print(f"Address:  {state.address}")
    print(f"Network:  {state.network_id} ({'target' if state.correct_network else 'wrong network'})")
    print(f"Balance:  {state.balance}")
    return 0


def _run(args: argparse.Namespace, settings: Settings) -> int:
    session = build_session(settings)
    if args.command == "list":
        return asyncio.run(_cmd_list(session, args.filter, args.sort))
    if args.command == "analytics":
        return asyncio.run(_cmd_analytics(session))
    if args.command == "prioritize":
        return asyncio.run(_cmd_prioritize(session))
    if args.command == "wallet":
        return asyncio.run(_cmd_wallet(session, args.switch))
    return 2


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    code = _run(args, settings)
    if code == 2:
        parser.error(f"Unknown command: {args.command}")
    return code


if __name__ == "__main__":
    sys.exit(main())
