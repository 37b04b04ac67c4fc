"""Read-only query commands for pamsync CLI."""

import asyncio
import json
from typing import TYPE_CHECKING

from pamsync.query import DataRepository

if TYPE_CHECKING:
    from pamsync.storage import SQLiteEntityStore


def _load(store: "SQLiteEntityStore"):
    return asyncio.run(DataRepository(store).load())


def cmd_stats(args, store: "SQLiteEntityStore"):
    """Show counts and financial totals."""
    stats = _load(store).stats()

    if args.json:
        print(json.dumps(stats, indent=2))
        return

    print(f"Projects:     {stats['projects']}")
    print(
        f"Tasks:        {stats['tasks']} "
        f"({stats['completed_tasks']} completed, {stats['pending_tasks']} pending)"
    )
    print(f"Records:      {stats['records']}")
    print(f"  Income:     {stats['total_income']:.2f}")
    print(f"  Expense:    {stats['total_expense']:.2f}")
    print(f"  Net:        {stats['net_balance']:.2f}")
    print(f"Budgets:      {stats['budgets']}")
    print(f"Credentials:  {stats['credentials']}")
    print(f"Assets:       {stats['assets']}")


def cmd_search(args, store: "SQLiteEntityStore"):
    """Search tasks, records, credentials and assets."""
    results = _load(store).search(args.query)
    total = sum(len(items) for items in results.values())

    if args.json:
        output = {
            "tasks": [{"id": str(t.id), "title": t.title, "status": t.status.value} for t in results["tasks"]],
            "records": [
                {"id": str(r.id), "title": r.title, "amount": r.amount, "type": r.type.value}
                for r in results["records"]
            ],
            # Secrets are never printed
            "credentials": [
                {"id": str(c.id), "title": c.title, "username": c.username, "website": c.website}
                for c in results["credentials"]
            ],
            "assets": [{"id": str(a.id), "name": a.name, "value": a.value} for a in results["assets"]],
        }
        print(json.dumps(output, indent=2))
        return

    if total == 0:
        print(f"No results for '{args.query}'")
        return

    print(f"Found {total} result(s) for '{args.query}':\n")
    for t in results["tasks"]:
        print(f"  [task]       {t.title} ({t.status.value})")
    for r in results["records"]:
        sign = "+" if r.signed_amount >= 0 else "-"
        print(f"  [record]     {r.title} {sign}{r.amount:.2f}")
    for c in results["credentials"]:
        print(f"  [credential] {c.title} ({c.username})")
    for a in results["assets"]:
        print(f"  [asset]      {a.name} {a.value:.2f} {a.currency}")
