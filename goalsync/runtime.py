"""Service runtime: backend client, goal store and reconciler wiring."""
import logging
from typing import Optional

import httpx

from goalsync.backend import BackendClient, BackendMutations
from goalsync.config import settings
from goalsync.services.goal_store import GoalStore
from goalsync.services.progress_reconciler import ProgressReconciler
from goalsync.utils.session import SessionCredential


logger = logging.getLogger(__name__)


class Runtime:
    """Holds the per-process session, store and reconciler."""

    session: Optional[SessionCredential] = None
    client: Optional[BackendClient] = None
    store: Optional[GoalStore] = None
    reconciler: Optional[ProgressReconciler] = None

    async def connect(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Create the backend client and the components built on it."""
        self.session = SessionCredential()
        self.client = BackendClient(self.session, transport=transport)
        self.store = GoalStore(self.client, self.session)
        self.reconciler = ProgressReconciler(
            goals_api=self.client,
            mutations=BackendMutations(self.client),
            store=self.store,
            session=self.session,
            sweep_interval=settings.sweep_interval_seconds,
            recent_window=settings.recent_update_window_seconds,
            startup_delay=settings.startup_delay_seconds,
        )
        self.session.subscribe(self.reconciler.on_session_change)
        logger.info("Connected to backend: %s", settings.backend_url)

    async def disconnect(self) -> None:
        """Stop reconciliation and close the backend client."""
        if self.reconciler:
            await self.reconciler.aclose()
        if self.client:
            await self.client.aclose()
            logger.info("Disconnected from backend")


# Global runtime instance
runtime = Runtime()


def _require(component):
    if component is None:
        raise RuntimeError("Runtime not connected")
    return component


def get_session() -> SessionCredential:
    """Dependency to get the session credential."""
    return _require(runtime.session)


def get_store() -> GoalStore:
    """Dependency to get the goal store."""
    return _require(runtime.store)


def get_reconciler() -> ProgressReconciler:
    """Dependency to get the progress reconciler."""
    return _require(runtime.reconciler)
