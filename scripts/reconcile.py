"""One-shot goal progress reconciliation against the backend.

Usage:
    # Recompute and report every derived goal
    python scripts/reconcile.py --token $TOKEN --backend-url http://localhost:3000
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import httpx

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from goalsync.backend import BackendClient, BackendError
from goalsync.models.goal import GoalFilter
from goalsync.services.goal_store import GoalStore
from goalsync.utils.session import SessionCredential


class ReconcileRun:
    """Compare stored goal progress with the backend's calculation."""

    def __init__(
        self,
        token: str,
        backend_url: str,
        workspace_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = SessionCredential(token)
        self.client = BackendClient(self.session, base_url=backend_url, transport=transport)
        self.store = GoalStore(self.client, self.session)
        self.workspace_id = workspace_id

        # Stats
        self.stats = {
            "checked": 0,
            "changed": 0,
            "unchanged": 0,
            "errors": 0,
        }

    async def run(self):
        """Load goals, recalculate derived ones and print a summary."""
        try:
            goal_filter = GoalFilter(workspace_id=self.workspace_id)
            goals = await self.store.load(goal_filter)

            for goal in goals:
                if not goal.progress_source.is_derived:
                    continue
                self.stats["checked"] += 1
                try:
                    progress = await self.client.calculate_goal_progress(goal.id)
                except (BackendError, httpx.HTTPError, ValueError) as e:
                    print(f"  ! {goal.title}: {e}")
                    self.stats["errors"] += 1
                    continue

                updated = self.store.apply_progress(goal.id, progress)
                if updated.progress == goal.progress:
                    self.stats["unchanged"] += 1
                    continue
                self.stats["changed"] += 1
                print(f"  {goal.title}: {goal.progress}% -> {updated.progress}%")

            # Print summary
            print("\n=== Reconcile Summary ===")
            print(f"Goals loaded: {len(goals)}")
            print(f"Derived goals checked: {self.stats['checked']}")
            print(f"Changed: {self.stats['changed']}")
            print(f"Unchanged: {self.stats['unchanged']}")
            print(f"Errors: {self.stats['errors']}")

        finally:
            await self.client.aclose()


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Recalculate derived goal progress")
    parser.add_argument(
        "--token",
        required=True,
        help="Backend bearer token",
    )
    parser.add_argument(
        "--backend-url",
        default="http://localhost:3000",
        help="Backend API base URL",
    )
    parser.add_argument(
        "--workspace-id",
        help="Only goals in this workspace",
    )

    args = parser.parse_args()

    run = ReconcileRun(
        token=args.token,
        backend_url=args.backend_url,
        workspace_id=args.workspace_id,
    )

    await run.run()


if __name__ == "__main__":
    asyncio.run(main())
