"""Pytest configuration and fixtures."""
import json
import re

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from goalsync.main import app


def goal_doc(goal_id: str, **fields) -> dict:
    """Backend-shaped goal document."""
    doc = {
        "_id": goal_id,
        "title": f"Goal {goal_id}",
        "description": "",
        "progress": 0,
        "status": "on-track",
        "isPrivate": False,
        "ownerId": "user123",
        "progressResource": "none",
    }
    doc.update(fields)
    return doc


class FakeBackend:
    """In-memory stand-in for the backend REST API, served via httpx.MockTransport."""

    def __init__(self):
        self.goals: dict[str, dict] = {}
        self.progress: dict[str, float] = {}
        self.updated_goals: list[dict] = []
        self.fail_paths: set[str] = set()
        self.requests: list[httpx.Request] = []

    def add_goal(self, goal_id: str, **fields) -> dict:
        doc = goal_doc(goal_id, **fields)
        self.goals[goal_id] = doc
        return doc

    def calls_to(self, pattern: str) -> list[httpx.Request]:
        return [r for r in self.requests if re.fullmatch(pattern, r.url.path)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.fail_paths:
            return httpx.Response(500, json={"message": "backend exploded"})

        if request.method == "GET" and path == "/goals":
            return httpx.Response(200, json=list(self.goals.values()))

        match = re.fullmatch(r"/goals/([^/]+)/calculate-progress", path)
        if match:
            return httpx.Response(200, json=self.progress.get(match.group(1), 0))

        match = re.fullmatch(r"/goals/([^/]+)", path)
        if match:
            doc = self.goals.get(match.group(1))
            if doc is None:
                return httpx.Response(404, json={"message": "Goal not found"})
            if request.method == "PATCH":
                doc.update(json.loads(request.content))
            return httpx.Response(200, json=doc)

        match = re.fullmatch(r"/(tasks|projects)/([^/]+)/(completion|status-progress)", path)
        if match and request.method == "PATCH":
            body = json.loads(request.content)
            entity = "task" if match.group(1) == "tasks" else "project"
            return httpx.Response(
                200,
                json={
                    entity: {"_id": match.group(2), "completed": body["completed"]},
                    "updatedGoals": self.updated_goals,
                },
            )

        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def backend():
    """Fresh fake backend."""
    return FakeBackend()


@pytest_asyncio.fixture
async def app_client(backend):
    """
    Create a test client wired to the fake backend.

    This fixture:
    - Connects the runtime with a mock transport
    - Yields an async HTTP client for testing
    - Stops reconciliation and closes the backend client afterwards
    """
    from goalsync.runtime import runtime

    await runtime.connect(transport=httpx.MockTransport(backend.handle))
    # Keep background sweeps out of the way unless a test asks for them
    runtime.reconciler.startup_delay = 60.0
    runtime.reconciler.sweep_interval = 60.0

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    await runtime.disconnect()
