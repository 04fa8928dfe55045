"""Async HTTP client for the task/project/goal backend."""
import logging
import math
from typing import Any, Optional

import httpx

from goalsync.config import settings
from goalsync.models.goal import Goal, GoalFilter
from goalsync.models.progress import ProjectMutationResult, TaskMutationResult
from goalsync.utils.session import SessionCredential


logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Backend call returned a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GoalNotFoundError(BackendError, ValueError):
    """Requested goal does not exist."""


class BackendClient:
    """Client for the backend REST API."""

    def __init__(
        self,
        session: SessionCredential,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            session: Session credential used for Authorization headers
            base_url: Backend base URL (defaults to settings.backend_url)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.session = session
        self.http = httpx.AsyncClient(
            base_url=base_url or settings.backend_url,
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self.http.request(
            method, path, headers=self.session.auth_headers(), **kwargs
        )
        if response.is_error:
            raise BackendError(
                f"{method} {path} failed: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response.json()

    async def fetch_goals(self, goal_filter: Optional[GoalFilter] = None) -> list[Goal]:
        """
        List goals, optionally filtered.

        Args:
            goal_filter: Optional filter (workspace, privacy, owner, ...)

        Returns:
            List of goals

        Raises:
            BackendError: If the backend rejects the request
        """
        params = goal_filter.to_params() if goal_filter else {}
        data = await self._request("GET", "/goals", params=params)
        goals = [Goal.model_validate(doc) for doc in data or []]
        logger.debug("Fetched %d goals", len(goals))
        return goals

    async def fetch_goal_by_id(self, goal_id: str) -> Goal:
        """
        Fetch a single goal.

        Raises:
            GoalNotFoundError: If the backend has no such goal
            BackendError: For any other failure
        """
        try:
            data = await self._request("GET", f"/goals/{goal_id}")
        except BackendError as e:
            if e.status_code == 404:
                raise GoalNotFoundError("Goal not found", status_code=404) from e
            raise
        return Goal.model_validate(data)

    async def calculate_goal_progress(self, goal_id: str) -> float:
        """
        Ask the backend to recompute a goal's progress from its links.

        Returns:
            Progress percentage
        """
        data = await self._request("GET", f"/goals/{goal_id}/calculate-progress")
        if isinstance(data, dict):
            data = data.get("progress")
        if not isinstance(data, (int, float)) or not math.isfinite(data):
            raise BackendError(f"Unexpected progress payload for goal {goal_id}: {data!r}")
        return float(data)

    async def update_goal(self, goal_id: str, updates: dict[str, Any]) -> Goal:
        """Patch goal fields and return the stored goal."""
        data = await self._request("PATCH", f"/goals/{goal_id}", json=updates)
        return Goal.model_validate(data)

    async def update_task_completion_and_progress(
        self,
        task_id: str,
        completed: bool,
        goal_id: Optional[str] = None,
    ) -> TaskMutationResult:
        """
        Mark a task (in)complete; the backend recalculates linked goals.

        Returns:
            Updated task and any goal progress values the backend computed
        """
        data = await self._request(
            "PATCH",
            f"/tasks/{task_id}/completion",
            json=self._completion_body(completed, goal_id),
        )
        return TaskMutationResult.model_validate(data or {})

    async def update_project_status_and_progress(
        self,
        project_id: str,
        completed: bool,
        goal_id: Optional[str] = None,
    ) -> ProjectMutationResult:
        """Mark a project (in)complete; see update_task_completion_and_progress."""
        data = await self._request(
            "PATCH",
            f"/projects/{project_id}/status-progress",
            json=self._completion_body(completed, goal_id),
        )
        return ProjectMutationResult.model_validate(data or {})

    def _completion_body(self, completed: bool, goal_id: Optional[str]) -> dict:
        body = {"completed": completed, "updatedBy": self.session.user_id}
        if goal_id:
            body["goalId"] = goal_id
        return body


class BackendMutations:
    """Task/project completion calls in the shape the reconciler wraps."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def update_task(
        self, task_id: str, completed: bool, goal_id: Optional[str] = None
    ) -> TaskMutationResult:
        return await self.client.update_task_completion_and_progress(
            task_id, completed, goal_id
        )

    async def update_project(
        self, project_id: str, completed: bool, goal_id: Optional[str] = None
    ) -> ProjectMutationResult:
        return await self.client.update_project_status_and_progress(
            project_id, completed, goal_id
        )


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase
