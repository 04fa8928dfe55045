"""Goal router - API endpoints over the session's goal store."""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from goalsync.backend import BackendError, GoalNotFoundError
from goalsync.models.goal import Goal, GoalFilter, GoalStatus, ParentAssignment
from goalsync.routers.session import session_from_request
from goalsync.runtime import get_reconciler, get_store
from goalsync.services.goal_store import GoalStore
from goalsync.services.goal_tree import GoalCycleError
from goalsync.services.progress_reconciler import ProgressReconciler


router = APIRouter(
    prefix="/goals",
    tags=["goals"],
    dependencies=[Depends(session_from_request)],
)


def _get_loaded(store: GoalStore, goal_id: str) -> Goal:
    goal = store.get(goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


@router.get("", response_model=list[Goal])
async def list_goals(store: GoalStore = Depends(get_store)):
    """List the goals currently held for the session."""
    return store.goals


@router.post("/load", response_model=list[Goal])
async def load_goals(
    workspace_id: Optional[str] = Query(None, description="Filter by workspace"),
    owner_id: Optional[str] = Query(None, description="Filter by owner"),
    is_private: Optional[bool] = Query(None, description="Filter by visibility"),
    status: Optional[list[GoalStatus]] = Query(None, description="Filter by status"),
    timeframe: Optional[str] = Query(None, description="Filter by timeframe"),
    store: GoalStore = Depends(get_store),
):
    """
    Reload goals from the backend.

    - Replaces the whole list (local progress updates are dropped)
    - Does nothing without a session
    """
    goal_filter = GoalFilter(
        workspace_id=workspace_id,
        owner_id=owner_id,
        is_private=is_private,
        status=status,
        timeframe=timeframe,
    )
    return await store.load(goal_filter)


@router.post("/reconcile")
async def reconcile_goals(reconciler: ProgressReconciler = Depends(get_reconciler)):
    """
    Run a reconciliation sweep now.

    - Returns started=false if a sweep is already running
    """
    started = await reconciler.reconcile_all()
    return {"started": started}


@router.get("/{goal_id}", response_model=Goal)
async def get_goal(goal_id: str, store: GoalStore = Depends(get_store)):
    """Get a loaded goal by id."""
    return _get_loaded(store, goal_id)


@router.post("/{goal_id}/refresh", response_model=Goal)
async def refresh_goal(goal_id: str, store: GoalStore = Depends(get_store)):
    """
    Re-fetch one goal from the backend.

    - Returns 404 if the backend cannot provide it
    """
    goal = await store.refresh_one(goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


@router.get("/{goal_id}/eligible-parents", response_model=list[Goal])
async def eligible_parents(goal_id: str, store: GoalStore = Depends(get_store)):
    """List goals that may become this goal's parent."""
    _get_loaded(store, goal_id)
    return store.tree().eligible_parents(goal_id)


@router.patch("/{goal_id}/parent", response_model=Goal)
async def assign_parent(
    goal_id: str,
    body: ParentAssignment,
    store: GoalStore = Depends(get_store),
):
    """
    Move a goal under another goal.

    - Returns 400 if the parent is the goal itself or one of its descendants
    - Returns 404 if either goal is not loaded
    """
    try:
        return await store.assign_parent(goal_id, body.parent_goal_id)
    except GoalNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GoalCycleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))
