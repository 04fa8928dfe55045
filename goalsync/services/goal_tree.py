"""Goal hierarchy with cycle detection."""
from collections import defaultdict
from typing import Iterable, Optional

from goalsync.models.goal import Goal


class GoalCycleError(ValueError):
    """Parent assignment would make a goal its own ancestor."""


class GoalTree:
    """
    Flat index of goals with parent/child relations kept as ids.

    Goals arriving with nested ``children`` (the backend's hierarchy
    payload) are flattened into the same index.
    """

    def __init__(self, goals: Iterable[Goal]):
        self._nodes: dict[str, Goal] = {}
        self._parent: dict[str, Optional[str]] = {}
        self._children: dict[str, list[str]] = defaultdict(list)

        stack = [(goal, goal.parent_goal_id) for goal in goals]
        while stack:
            goal, parent_id = stack.pop()
            if goal.id in self._nodes:
                continue
            self._nodes[goal.id] = goal
            self._parent[goal.id] = goal.parent_goal_id or parent_id
            for child in goal.children or []:
                stack.append((child, goal.id))

        for goal_id, parent_id in self._parent.items():
            if parent_id:
                self._children[parent_id].append(goal_id)

    def __contains__(self, goal_id: str) -> bool:
        return goal_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, goal_id: str) -> Optional[Goal]:
        return self._nodes.get(goal_id)

    def parent_of(self, goal_id: str) -> Optional[str]:
        return self._parent.get(goal_id)

    def children_of(self, goal_id: str) -> list[str]:
        return list(self._children.get(goal_id, []))

    def roots(self) -> list[Goal]:
        """Goals without a parent (or whose parent is not loaded)."""
        return [
            goal
            for goal_id, goal in self._nodes.items()
            if not self._parent[goal_id] or self._parent[goal_id] not in self._nodes
        ]

    def descendants(self, goal_id: str) -> set[str]:
        """All ids below a goal, found by iterative traversal."""
        seen: set[str] = set()
        stack = list(self._children.get(goal_id, []))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._children.get(current, []))
        return seen

    def would_create_cycle(self, goal_id: str, parent_goal_id: Optional[str]) -> bool:
        """
        Check whether making ``parent_goal_id`` the parent of ``goal_id``
        introduces a cycle.

        Example:
            >>> tree = GoalTree([
            ...     Goal(id="a", title="A"),
            ...     Goal(id="b", title="B", parent_goal_id="a"),
            ... ])
            >>> tree.would_create_cycle("a", "b")
            True
            >>> tree.would_create_cycle("b", None)
            False
        """
        if parent_goal_id is None:
            return False
        if parent_goal_id == goal_id:
            return True
        return parent_goal_id in self.descendants(goal_id)

    def check_parent(self, goal_id: str, parent_goal_id: Optional[str]) -> None:
        """
        Validate a parent assignment.

        Raises:
            GoalCycleError: If the assignment creates a cycle
        """
        if self.would_create_cycle(goal_id, parent_goal_id):
            raise GoalCycleError(
                f"Goal {parent_goal_id} cannot be the parent of goal {goal_id}"
            )

    def eligible_parents(self, goal_id: str) -> list[Goal]:
        """Goals that may become the parent: everything but self and descendants."""
        excluded = self.descendants(goal_id) | {goal_id}
        return [goal for gid, goal in self._nodes.items() if gid not in excluded]
