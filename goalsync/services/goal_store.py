"""Goal store - the session's in-memory goal list."""
import logging
from enum import Enum
from typing import Optional

from goalsync.backend import BackendClient, GoalNotFoundError
from goalsync.models.goal import Goal, GoalFilter, clamp_progress
from goalsync.services.goal_tree import GoalTree
from goalsync.utils.session import SessionCredential


logger = logging.getLogger(__name__)


class StoreState(str, Enum):
    """Lifecycle of the goal list."""

    EMPTY = "empty"
    LOADED = "loaded"
    MODIFIED = "modified"


class GoalStore:
    """Authoritative goal list for the current session."""

    def __init__(self, client: BackendClient, session: SessionCredential):
        """Initialize store with the backend client and session credential."""
        self.client = client
        self.session = session
        self._goals: list[Goal] = []
        self._state = StoreState.EMPTY

    @property
    def goals(self) -> list[Goal]:
        return self._goals

    @property
    def state(self) -> StoreState:
        return self._state

    def get(self, goal_id: str) -> Optional[Goal]:
        for goal in self._goals:
            if goal.id == goal_id:
                return goal
        return None

    def tree(self) -> GoalTree:
        return GoalTree(self._goals)

    async def load(self, goal_filter: Optional[GoalFilter] = None) -> list[Goal]:
        """
        Replace the goal list with a fresh fetch.

        Does nothing without a session token. Local progress updates made
        before the load are discarded.

        Args:
            goal_filter: Optional backend filter

        Returns:
            The current goal list
        """
        if not self.session.is_authenticated:
            logger.debug("Skipping goal load: no session")
            return self._goals

        try:
            goals = await self.client.fetch_goals(goal_filter)
        except Exception:
            logger.exception("Error loading goals")
            goals = []

        self._goals = goals
        self._state = StoreState.LOADED if goals else StoreState.EMPTY
        logger.info("Loaded %d goals", len(goals))
        return self._goals

    async def refresh_one(self, goal_id: str) -> Optional[Goal]:
        """
        Re-fetch one goal and replace it in place.

        Returns:
            The refreshed goal, or None if it was not found or the fetch
            failed (the list is left untouched)
        """
        try:
            refreshed = await self.client.fetch_goal_by_id(goal_id)
        except GoalNotFoundError:
            logger.warning("Goal %s not found on refresh", goal_id)
            return None
        except Exception:
            logger.exception("Error refreshing goal %s", goal_id)
            return None

        self._replace(refreshed)
        return refreshed

    def apply_progress(self, goal_id: str, new_progress: float) -> Optional[Goal]:
        """
        Overwrite a goal's progress locally, clamped to 0..100.

        Unknown ids are ignored and the list is not touched.

        Returns:
            The updated goal, or None if the id is not loaded
        """
        for index, goal in enumerate(self._goals):
            if goal.id == goal_id:
                break
        else:
            logger.debug("Ignoring progress for unknown goal %s", goal_id)
            return None

        updated = goal.model_copy(update={"progress": clamp_progress(new_progress)})
        goals = list(self._goals)
        goals[index] = updated
        self._goals = goals
        self._state = StoreState.MODIFIED
        logger.debug("Goal %s progress %d -> %d", goal_id, goal.progress, updated.progress)
        return updated

    async def assign_parent(self, goal_id: str, parent_goal_id: Optional[str]) -> Goal:
        """
        Move a goal under a new parent (or to the top level).

        Raises:
            GoalNotFoundError: If the goal is not in the list or the parent
                is not loaded
            GoalCycleError: If the parent is the goal itself or a descendant
            BackendError: If the backend rejects the update
        """
        tree = self.tree()
        if self.get(goal_id) is None:
            raise GoalNotFoundError("Goal not found", status_code=404)
        if parent_goal_id is not None and parent_goal_id not in tree:
            raise GoalNotFoundError("Parent goal not found", status_code=404)
        tree.check_parent(goal_id, parent_goal_id)

        updated = await self.client.update_goal(goal_id, {"parentGoalId": parent_goal_id})
        self._replace(updated)
        return updated

    def _replace(self, goal: Goal) -> None:
        if self.get(goal.id) is None:
            return
        self._goals = [goal if g.id == goal.id else g for g in self._goals]
