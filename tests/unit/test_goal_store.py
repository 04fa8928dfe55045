"""Tests for GoalStore."""
import pytest
from unittest.mock import AsyncMock, MagicMock


def make_goal(goal_id, **fields):
    from goalsync.models.goal import Goal

    fields.setdefault("title", f"Goal {goal_id}")
    return Goal(id=goal_id, **fields)


def make_store(token="token123"):
    from goalsync.services.goal_store import GoalStore
    from goalsync.utils.session import SessionCredential

    client = MagicMock()
    client.fetch_goals = AsyncMock(return_value=[])
    client.fetch_goal_by_id = AsyncMock()
    client.update_goal = AsyncMock()
    return GoalStore(client, SessionCredential(token)), client


@pytest.mark.asyncio
class TestGoalStoreLoad:
    """Tests for loading goals."""

    async def test_load_replaces_goals(self):
        """Test load replaces the list instead of merging."""
        from goalsync.services.goal_store import StoreState

        store, client = make_store()
        store._goals = [make_goal("old")]
        client.fetch_goals.return_value = [make_goal("A"), make_goal("B")]

        goals = await store.load()

        assert [g.id for g in goals] == ["A", "B"]
        assert store.get("old") is None
        assert store.state == StoreState.LOADED

    async def test_load_passes_filter(self):
        """Test the filter reaches the backend client."""
        from goalsync.models.goal import GoalFilter

        store, client = make_store()
        goal_filter = GoalFilter(workspace_id="w1", is_private=False)

        await store.load(goal_filter)

        client.fetch_goals.assert_awaited_once_with(goal_filter)

    async def test_load_without_session_is_noop(self):
        """Test nothing is fetched without a session token."""
        from goalsync.services.goal_store import StoreState

        store, client = make_store(token=None)

        goals = await store.load()

        assert goals == []
        assert store.state == StoreState.EMPTY
        client.fetch_goals.assert_not_awaited()

    async def test_load_failure_empties_store(self):
        """Test a failing fetch leaves an empty set."""
        store, client = make_store()
        store._goals = [make_goal("A")]
        client.fetch_goals.side_effect = RuntimeError("offline")

        goals = await store.load()

        assert goals == []
        assert store.goals == []

    async def test_load_discards_local_progress(self):
        """Test a reload resets locally applied progress."""
        from goalsync.services.goal_store import StoreState

        store, client = make_store()
        store._goals = [make_goal("A", progress=10)]
        store.apply_progress("A", 90)
        assert store.state == StoreState.MODIFIED
        client.fetch_goals.return_value = [make_goal("A", progress=10)]

        await store.load()

        assert store.get("A").progress == 10
        assert store.state == StoreState.LOADED


@pytest.mark.asyncio
class TestGoalStoreRefreshOne:
    """Tests for refreshing a single goal."""

    async def test_refresh_replaces_in_place(self):
        """Test the refreshed goal replaces the loaded one at the same position."""
        store, client = make_store()
        store._goals = [make_goal("A"), make_goal("B", progress=5), make_goal("C")]
        client.fetch_goal_by_id.return_value = make_goal("B", progress=60, title="Renamed")

        refreshed = await store.refresh_one("B")

        assert refreshed.title == "Renamed"
        assert [g.id for g in store.goals] == ["A", "B", "C"]
        assert store.goals[1].progress == 60

    async def test_refresh_not_found(self):
        """Test a missing goal yields None and leaves the list alone."""
        from goalsync.backend import GoalNotFoundError

        store, client = make_store()
        store._goals = [make_goal("A")]
        before = store.goals
        client.fetch_goal_by_id.side_effect = GoalNotFoundError("Goal not found", 404)

        assert await store.refresh_one("A") is None
        assert store.goals is before

    async def test_refresh_failure_keeps_state(self):
        """Test other fetch errors also keep the previous state."""
        store, client = make_store()
        store._goals = [make_goal("A", progress=20)]
        client.fetch_goal_by_id.side_effect = RuntimeError("timeout")

        assert await store.refresh_one("A") is None
        assert store.get("A").progress == 20


class TestGoalStoreApplyProgress:
    """Tests for local progress updates."""

    @pytest.mark.parametrize(
        "value,expected",
        [(-20, 0), (0, 0), (42, 42), (100, 100), (250, 100), (66.6, 67)],
    )
    def test_progress_clamped(self, value, expected):
        """Test stored progress is always within 0..100."""
        store, _ = make_store()
        store._goals = [make_goal("A", progress=10)]

        updated = store.apply_progress("A", value)

        assert updated.progress == expected
        assert store.get("A").progress == expected

    def test_unknown_goal_is_noop(self):
        """Test unknown ids do not add entries or touch the list."""
        store, _ = make_store()
        store._goals = [make_goal("A", progress=10)]
        before = store.goals

        assert store.apply_progress("missing", 50) is None
        assert store.goals is before
        assert len(store.goals) == 1

    def test_only_progress_changes(self):
        """Test other fields are preserved."""
        store, _ = make_store()
        store._goals = [make_goal("A", description="Ship it", progress_source="tasks")]

        store.apply_progress("A", 30)

        goal = store.get("A")
        assert goal.description == "Ship it"
        assert goal.progress_source.value == "tasks"


@pytest.mark.asyncio
class TestGoalStoreAssignParent:
    """Tests for parent assignment."""

    async def test_assign_parent_success(self):
        """Test a valid parent is sent to the backend and stored."""
        store, client = make_store()
        store._goals = [make_goal("A"), make_goal("B")]
        client.update_goal.return_value = make_goal("B", parent_goal_id="A")

        updated = await store.assign_parent("B", "A")

        client.update_goal.assert_awaited_once_with("B", {"parentGoalId": "A"})
        assert updated.parent_goal_id == "A"
        assert store.get("B").parent_goal_id == "A"

    async def test_assign_descendant_rejected(self):
        """Test a goal cannot be moved under its own descendant."""
        from goalsync.services.goal_tree import GoalCycleError

        store, client = make_store()
        store._goals = [
            make_goal("A"),
            make_goal("B", parent_goal_id="A"),
            make_goal("C", parent_goal_id="B"),
        ]

        with pytest.raises(GoalCycleError):
            await store.assign_parent("A", "C")
        client.update_goal.assert_not_awaited()

    async def test_assign_unknown_parent(self):
        """Test an unloaded parent is reported as not found."""
        from goalsync.backend import GoalNotFoundError

        store, _ = make_store()
        store._goals = [make_goal("A")]

        with pytest.raises(GoalNotFoundError, match="Parent goal not found"):
            await store.assign_parent("A", "nope")

    async def test_assign_nested_only_goal_rejected(self):
        """Test a goal held only as a nested child cannot be reassigned."""
        from goalsync.backend import GoalNotFoundError

        store, client = make_store()
        store._goals = [make_goal("A", children=[make_goal("B")]), make_goal("C")]

        with pytest.raises(GoalNotFoundError, match="^Goal not found"):
            await store.assign_parent("B", "C")
        client.update_goal.assert_not_awaited()

    async def test_nested_goal_can_be_parent(self):
        """Test a nested child is still a valid parent."""
        store, client = make_store()
        store._goals = [make_goal("A", children=[make_goal("B")]), make_goal("C")]
        client.update_goal.return_value = make_goal("C", parent_goal_id="B")

        await store.assign_parent("C", "B")

        assert store.get("C").parent_goal_id == "B"
