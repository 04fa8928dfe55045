"""Progress propagation models."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class GoalProgressUpdate(BaseModel):
    """A goal progress value computed by the backend."""

    goal_id: str = Field(alias="goalId")
    progress: float = Field(allow_inf_nan=False)

    model_config = {"populate_by_name": True}


class MutationResult(BaseModel):
    """Common shape of task/project completion responses."""

    updated_goals: list[GoalProgressUpdate] = Field(
        default_factory=list, alias="updatedGoals"
    )
    # Set only when the reconciler swallowed a failed mutation
    error: Optional[str] = None

    model_config = {"populate_by_name": True}

    @property
    def failed(self) -> bool:
        return self.error is not None


class TaskMutationResult(MutationResult):
    """Response of a task completion update."""

    task: Optional[dict[str, Any]] = None


class ProjectMutationResult(MutationResult):
    """Response of a project status update."""

    project: Optional[dict[str, Any]] = None


class CompletionUpdate(BaseModel):
    """Request body for task/project completion endpoints."""

    completed: bool
    goal_id: Optional[str] = Field(default=None, alias="goalId")

    model_config = {"populate_by_name": True}


class EntityKind(str, Enum):
    """Kinds of entity whose completion moves goal progress."""

    TASK = "task"
    PROJECT = "project"


class ProgressUpdateEvent(BaseModel):
    """Transient record of one successful completion mutation."""

    kind: EntityKind
    entity_id: str
    completed: bool
    updated_goals: list[GoalProgressUpdate] = Field(default_factory=list)

    @property
    def has_deltas(self) -> bool:
        return bool(self.updated_goals)
