"""Progress reconciler - keeps derived goal progress in step with tasks and projects.

Completion mutations go through the reconciler. When the backend reports
which goals moved, those values are applied to the store directly;
otherwise a reconciliation sweep asks the backend to recompute every goal
whose progress is derived from tasks or projects. A periodic check starts
extra sweeps for a short window after any mutation.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from goalsync.models.goal import Goal
from goalsync.models.progress import (
    EntityKind,
    ProgressUpdateEvent,
    ProjectMutationResult,
    TaskMutationResult,
)
from goalsync.services.goal_store import GoalStore
from goalsync.utils.session import SessionCredential


logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 5.0
DEFAULT_RECENT_WINDOW = 10.0
DEFAULT_STARTUP_DELAY = 1.0

CompletionResult = Union[TaskMutationResult, ProjectMutationResult]
Mutation = Callable[[str, bool, Optional[str]], Awaitable[Any]]


class ReconcilerState(str, Enum):
    """Reconciler lifecycle."""

    INACTIVE = "inactive"
    IDLE = "idle"
    RECONCILING = "reconciling"


class ProgressReconciler:
    """Intercepts completion mutations and reconciles goal progress."""

    def __init__(
        self,
        goals_api,
        mutations,
        store: GoalStore,
        session: SessionCredential,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        recent_window: float = DEFAULT_RECENT_WINDOW,
        startup_delay: float = DEFAULT_STARTUP_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize reconciler.

        Args:
            goals_api: Provides fetch_goals() and calculate_goal_progress(goal_id)
            mutations: Provides update_task() and update_project()
            store: Goal store receiving progress updates
            session: Session credential gating interception
            sweep_interval: Seconds between periodic checks
            recent_window: Seconds after a mutation during which checks sweep
            startup_delay: Seconds to wait before the baseline sweep
            clock: Monotonic time source
        """
        self.goals_api = goals_api
        self.mutations = mutations
        self.store = store
        self.session = session
        self.sweep_interval = sweep_interval
        self.recent_window = recent_window
        self.startup_delay = startup_delay
        self._clock = clock

        self.last_task_update: Optional[float] = None
        self.last_project_update: Optional[float] = None
        self._reconciling = False
        self._timer: Optional[asyncio.Task] = None
        self._baseline: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()
        self._stopping: set[asyncio.Task] = set()

    @property
    def active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def reconciling(self) -> bool:
        return self._reconciling

    @property
    def state(self) -> ReconcilerState:
        if not self.active:
            return ReconcilerState.INACTIVE
        if self._reconciling:
            return ReconcilerState.RECONCILING
        return ReconcilerState.IDLE

    # Interception

    async def intercept_task_completion(
        self, task_id: str, completed: bool, goal_id: Optional[str] = None
    ) -> TaskMutationResult:
        """
        Update a task's completion and propagate the effect to goals.

        Without a session the mutation runs as-is, with no goal handling.
        Failures are logged and reported through ``error`` on an otherwise
        empty result instead of being raised.
        """
        if not self.session.is_authenticated:
            return await self.mutations.update_task(task_id, completed, goal_id)

        self.last_task_update = self._clock()
        return await self._intercept(
            EntityKind.TASK,
            self.mutations.update_task,
            task_id,
            completed,
            goal_id,
            TaskMutationResult,
        )

    async def intercept_project_status(
        self, project_id: str, completed: bool, goal_id: Optional[str] = None
    ) -> ProjectMutationResult:
        """Update a project's completion; same contract as intercept_task_completion."""
        if not self.session.is_authenticated:
            return await self.mutations.update_project(project_id, completed, goal_id)

        self.last_project_update = self._clock()
        return await self._intercept(
            EntityKind.PROJECT,
            self.mutations.update_project,
            project_id,
            completed,
            goal_id,
            ProjectMutationResult,
        )

    async def _intercept(
        self,
        kind: EntityKind,
        mutation: Mutation,
        entity_id: str,
        completed: bool,
        goal_id: Optional[str],
        empty_result: type,
    ) -> CompletionResult:
        try:
            result = await mutation(entity_id, completed, goal_id)
        except Exception as e:
            logger.exception("Error updating %s %s", kind.value, entity_id)
            return empty_result(error=str(e) or type(e).__name__)

        self._consume(
            ProgressUpdateEvent(
                kind=kind,
                entity_id=entity_id,
                completed=completed,
                updated_goals=result.updated_goals,
            )
        )
        return result

    def _consume(self, event: ProgressUpdateEvent) -> None:
        if event.has_deltas:
            for update in event.updated_goals:
                self.store.apply_progress(update.goal_id, update.progress)
            logger.info(
                "Applied %d goal updates from %s %s",
                len(event.updated_goals),
                event.kind.value,
                event.entity_id,
            )
        else:
            logger.debug(
                "No goal updates from %s %s, scheduling sweep",
                event.kind.value,
                event.entity_id,
            )
            self.schedule_reconcile()

    # Reconciliation

    def schedule_reconcile(self, delay: float = 0.0) -> asyncio.Task:
        """Start a sweep in the background, optionally after a delay."""
        task = asyncio.create_task(self._delayed_reconcile(delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _delayed_reconcile(self, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self.reconcile_all()

    async def reconcile_all(self) -> bool:
        """
        Recompute progress for every goal derived from tasks or projects.

        Only one sweep runs at a time; a call made while another sweep is
        in flight returns immediately. Goals are processed one after
        another, and a failure for one goal does not stop the others.

        Returns:
            True if a sweep ran, False if one was already running
        """
        if self._reconciling:
            logger.debug("Sweep already running, skipping")
            return False

        self._reconciling = True
        try:
            logger.info("Refreshing all goals progress")
            goals = await self.goals_api.fetch_goals()
            for goal in goals:
                if goal.progress_source.is_derived:
                    await self._reconcile_goal(goal)
        except Exception:
            logger.exception("Error refreshing goals")
        finally:
            self._reconciling = False
        return True

    async def _reconcile_goal(self, goal: Goal) -> None:
        try:
            progress = await self.goals_api.calculate_goal_progress(goal.id)
            self.store.apply_progress(goal.id, progress)
        except Exception:
            logger.exception("Error calculating progress for goal %s", goal.id)

    async def drain(self) -> None:
        """Wait for sweeps started by mutations or ticks to finish.

        The delayed baseline sweep from activate() is not waited for.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Periodic trigger

    def recently_updated(self, now: Optional[float] = None) -> bool:
        """True if a task or project mutation happened within the recent window."""
        now = self._clock() if now is None else now
        for stamp in (self.last_task_update, self.last_project_update):
            if stamp is not None and now - stamp < self.recent_window:
                return True
        return False

    def tick(self) -> bool:
        """
        One periodic check.

        Returns:
            True if a sweep was started
        """
        if not self.session.is_authenticated:
            logger.info("Session gone, stopping reconciler")
            self.deactivate()
            return False
        if self.recently_updated() and not self._reconciling:
            self.schedule_reconcile()
            return True
        return False

    async def _run_timer(self) -> None:
        me = asyncio.current_task()
        while self._timer is me:
            await asyncio.sleep(self.sweep_interval)
            self.tick()

    def activate(self) -> None:
        """Start the periodic check and a baseline sweep after the startup delay."""
        if self.active:
            return
        if not self.session.is_authenticated:
            logger.debug("Not activating reconciler: no session")
            return
        self._timer = asyncio.create_task(self._run_timer())
        self._baseline = asyncio.create_task(self._delayed_reconcile(self.startup_delay))
        logger.info(
            "Reconciler active (every %.1fs, window %.1fs)",
            self.sweep_interval,
            self.recent_window,
        )

    def deactivate(self) -> None:
        """Cancel the periodic check and any scheduled sweeps."""
        timer, self._timer = self._timer, None
        baseline, self._baseline = self._baseline, None
        tasks = [t for t in [timer, baseline, *self._pending] if t is not None]
        if not tasks:
            return
        current = asyncio.current_task()
        for task in tasks:
            if task is not current and not task.done():
                task.cancel()
                self._stopping.add(task)
                task.add_done_callback(self._stopping.discard)
        if timer is not None:
            logger.info("Reconciler inactive")

    async def aclose(self) -> None:
        """Deactivate and wait for cancelled tasks to unwind."""
        self.deactivate()
        if self._stopping:
            await asyncio.gather(*list(self._stopping), return_exceptions=True)

    def on_session_change(self, authenticated: bool) -> None:
        """SessionCredential listener."""
        if authenticated:
            self.activate()
        else:
            self.deactivate()
