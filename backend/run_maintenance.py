#!/usr/bin/env python3
"""
Maintenance tasks for the MindQuest backend.

Usage:
    python run_maintenance.py cleanup                       # Purge expired sessions and tokens
    python run_maintenance.py bootstrap-superadmin USER_ID  # Grant the first superadmin
    python run_maintenance.py check-roles USER_ID [--fix]   # Compare role field and memberships

Meant to be run from cron (cleanup) or by hand (the others).
"""

import argparse
import asyncio
import sys

from rich.console import Console

from api.dependencies import ServiceContainer
from shared.config import get_settings
from shared.exceptions import MindQuestError
from shared.log_config import configure_logging

console = Console()


async def cleanup(container: ServiceContainer) -> None:
    sessions = await container.sessions.cleanup_expired_sessions()
    tokens = await container.tokens.cleanup_expired_tokens()
    console.print(f"[green]Removed[/green] {sessions} sessions and {tokens} refresh tokens")


async def bootstrap_superadmin(container: ServiceContainer, user_id: str) -> None:
    change = await container.roles.bootstrap_super_admin(user_id)
    console.print(
        f"[green]{change.user_id}[/green] is now superadmin "
        f"(was {change.previous_role.value})"
    )


async def check_roles(container: ServiceContainer, user_id: str, fix: bool) -> None:
    report = await container.roles.check_consistency(user_id)
    if report.consistent:
        console.print(f"[green]Consistent:[/green] {user_id} is {report.effective_role.value}")
        return
    for issue in report.issues:
        console.print(f"[yellow]•[/yellow] {issue}")
    if fix:
        fixed = await container.roles.reconcile(user_id)
        console.print(f"[green]Reconciled:[/green] {user_id} is {fixed.effective_role.value}")


def main():
    parser = argparse.ArgumentParser(description="MindQuest maintenance tasks")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("cleanup", help="Delete expired sessions and refresh tokens")
    bootstrap = sub.add_parser("bootstrap-superadmin", help="Grant superadmin when none exists")
    bootstrap.add_argument("user_id")
    check = sub.add_parser("check-roles", help="Check role consistency for a user")
    check.add_argument("user_id")
    check.add_argument("--fix", action="store_true", help="Reconcile when inconsistent")
    args = parser.parse_args()

    configure_logging(get_settings().log_level)
    container = ServiceContainer()

    if args.command == "cleanup":
        task = cleanup(container)
    elif args.command == "bootstrap-superadmin":
        task = bootstrap_superadmin(container, args.user_id)
    else:
        task = check_roles(container, args.user_id, args.fix)

    try:
        asyncio.run(task)
    except MindQuestError as e:
        console.print(f"[red]Error ({e.code}):[/red] {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
