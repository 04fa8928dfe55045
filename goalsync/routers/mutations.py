"""Task and project completion endpoints routed through the reconciler."""
from fastapi import APIRouter, Depends, HTTPException

from goalsync.backend import BackendError
from goalsync.models.progress import (
    CompletionUpdate,
    ProjectMutationResult,
    TaskMutationResult,
)
from goalsync.routers.session import session_from_request
from goalsync.runtime import get_reconciler
from goalsync.services.progress_reconciler import ProgressReconciler


router = APIRouter(tags=["mutations"], dependencies=[Depends(session_from_request)])


@router.patch("/tasks/{task_id}/completion", response_model=TaskMutationResult)
async def update_task_completion(
    task_id: str,
    body: CompletionUpdate,
    reconciler: ProgressReconciler = Depends(get_reconciler),
):
    """
    Complete or reopen a task.

    - Goal progress reported by the backend is applied immediately
    - Otherwise a reconciliation sweep is scheduled
    - A failed update comes back with `error` set instead of an error status
    """
    try:
        return await reconciler.intercept_task_completion(
            task_id, body.completed, body.goal_id
        )
    except BackendError as e:
        # Only reachable without a session, when the call is not intercepted
        raise HTTPException(status_code=e.status_code or 502, detail=str(e))


@router.patch("/projects/{project_id}/status", response_model=ProjectMutationResult)
async def update_project_status(
    project_id: str,
    body: CompletionUpdate,
    reconciler: ProgressReconciler = Depends(get_reconciler),
):
    """Complete or reopen a project; same behavior as the task endpoint."""
    try:
        return await reconciler.intercept_project_status(
            project_id, body.completed, body.goal_id
        )
    except BackendError as e:
        raise HTTPException(status_code=e.status_code or 502, detail=str(e))
