"""Goal model definitions.

Field aliases follow the backend's JSON (camelCase, Mongo-style ``_id``).
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def clamp_progress(value: float) -> int:
    """
    Clamp a progress value into the 0..100 integer range.

    Example:
        >>> clamp_progress(140)
        100
        >>> clamp_progress(-3)
        0
        >>> clamp_progress(66.6)
        67
    """
    return max(0, min(100, int(round(value))))


def _ref_id(value: Any) -> Any:
    """Reduce an embedded document to its id."""
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


class GoalStatus(str, Enum):
    """Goal status values."""

    NO_STATUS = "no-status"
    ON_TRACK = "on-track"
    AT_RISK = "at-risk"
    OFF_TRACK = "off-track"
    ACHIEVED = "achieved"


class ProgressSource(str, Enum):
    """Where a goal's progress comes from."""

    MANUAL = "manual"
    TASKS = "tasks"
    PROJECTS = "projects"

    @property
    def is_derived(self) -> bool:
        return self is not ProgressSource.MANUAL


class Goal(BaseModel):
    """Goal as returned by the backend."""

    id: str = Field(alias="_id", serialization_alias="id")
    title: str
    description: str = ""
    progress: int = 0
    status: GoalStatus = GoalStatus.NO_STATUS
    is_private: bool = Field(default=False, alias="isPrivate")
    owner_id: Optional[str] = Field(default=None, alias="ownerId")
    parent_goal_id: Optional[str] = Field(default=None, alias="parentGoalId")
    children: Optional[list["Goal"]] = None
    progress_source: ProgressSource = Field(
        default=ProgressSource.MANUAL, alias="progressResource"
    )
    linked_tasks: list[str] = Field(default_factory=list, alias="linkedTasks")
    linked_projects: list[str] = Field(default_factory=list, alias="linkedProjects")
    timeframe: Optional[str] = None
    timeframe_year: Optional[int] = Field(default=None, alias="timeframeYear")
    workspace_id: Optional[str] = Field(default=None, alias="workspaceId")

    model_config = {"populate_by_name": True}

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        if value is None:
            return 0
        return clamp_progress(float(value))

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return value or GoalStatus.NO_STATUS

    @field_validator("progress_source", mode="before")
    @classmethod
    def _none_is_manual(cls, value: Any) -> Any:
        # The backend stores "none" for manually tracked goals
        if value in (None, "", "none"):
            return ProgressSource.MANUAL
        return value

    @field_validator("owner_id", "parent_goal_id", "workspace_id", mode="before")
    @classmethod
    def _embedded_ref(cls, value: Any) -> Any:
        return _ref_id(value)

    @field_validator("linked_tasks", "linked_projects", mode="before")
    @classmethod
    def _embedded_refs(cls, value: Any) -> Any:
        if value is None:
            return []
        return [_ref_id(item) for item in value]


class GoalFilter(BaseModel):
    """Query filters accepted by the backend's goal listing."""

    owner_id: Optional[str] = None
    team_id: Optional[str] = None
    workspace_id: Optional[str] = None
    status: Optional[list[GoalStatus]] = None
    timeframe: Optional[str] = None
    timeframe_year: Optional[int] = None
    is_private: Optional[bool] = None
    user_id: Optional[str] = None

    def to_params(self) -> dict[str, str]:
        """
        Build backend query parameters, omitting unset filters.

        Example:
            >>> GoalFilter(workspace_id="w1", is_private=False).to_params()
            {'workspaceId': 'w1', 'isPrivate': 'false'}
        """
        params: dict[str, str] = {}
        if self.owner_id:
            params["ownerId"] = self.owner_id
        if self.team_id:
            params["teamId"] = self.team_id
        if self.workspace_id:
            params["workspaceId"] = self.workspace_id
        if self.status:
            params["status"] = ",".join(s.value for s in self.status)
        if self.timeframe:
            params["timeframe"] = self.timeframe
        if self.timeframe_year:
            params["timeframeYear"] = str(self.timeframe_year)
        if self.is_private is not None:
            params["isPrivate"] = "true" if self.is_private else "false"
        if self.user_id:
            params["userId"] = self.user_id
        return params


class ParentAssignment(BaseModel):
    """Parent assignment request body."""

    parent_goal_id: Optional[str] = Field(default=None, alias="parentGoalId")

    model_config = {"populate_by_name": True}
