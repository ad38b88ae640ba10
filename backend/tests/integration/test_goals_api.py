"""Goal and milestone endpoints.

Testing Strategy:
1. Database: in-memory SQLite shared by the app and the test
2. AI Services: litellm.acompletion patched where milestones are suggested
3. Authentication: trusted-gateway header, one user per client
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from src.database.session import unit_of_work
from src.exceptions import ConflictError
from src.goals.models import Goal
from tests.fixtures.payloads import MILESTONE_SUGGESTIONS, goal_payload, lesson_payload, llm_response


FOUR_MILESTONES = [{"title": f"Step {i}"} for i in range(1, 5)]


async def create_goal(client, **overrides) -> dict:
    response = await client.post("/api/v1/goals", json=goal_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestGoalLifecycle:
    @pytest.mark.asyncio
    async def test_create_goal_defaults(self, client) -> None:
        goal = await create_goal(client)

        assert goal["status"] == "not_started"
        assert goal["progress"] == 0
        assert goal["priority"] == "medium"
        assert goal["milestones"] == []
        assert goal["metrics"]["lessonsCompleted"] == 0
        assert goal["targetDate"] == "2030-01-01"

    @pytest.mark.asyncio
    async def test_milestones_drive_progress_and_status(self, client) -> None:
        goal = await create_goal(client, milestones=FOUR_MILESTONES)
        url = f"/api/v1/goals/{goal['id']}/milestones"
        assert [m["order"] for m in goal["milestones"]] == [1, 2, 3, 4]

        await client.patch(f"{url}/0", json={"completed": True})
        response = await client.patch(f"{url}/1", json={"completed": True})

        half = response.json()
        assert half["progress"] == 50
        assert half["status"] == "in_progress"
        assert half["milestones"][0]["completedAt"] is not None

        for index in (2, 3):
            response = await client.patch(f"{url}/{index}", json={"completed": True})

        done = response.json()
        assert done["progress"] == 100
        assert done["status"] == "completed"

        stats = (await client.get("/api/v1/users/stats")).json()
        assert stats["totalGoalsAchieved"] == 1

    @pytest.mark.asyncio
    async def test_reopening_and_recompleting_counts_achievement_once(self, client) -> None:
        goal = await create_goal(client, milestones=[{"title": "Only step"}])
        url = f"/api/v1/goals/{goal['id']}/milestones/0"

        await client.patch(url, json={"completed": True})
        reopened = (await client.patch(url, json={"completed": False})).json()
        await client.patch(url, json={"completed": True})

        assert reopened["status"] == "not_started"
        stats = (await client.get("/api/v1/users/stats")).json()
        assert stats["totalGoalsAchieved"] == 1

    @pytest.mark.asyncio
    async def test_add_and_remove_milestones(self, client) -> None:
        goal = await create_goal(client, milestones=[{"title": "Read", "completed": True}])
        assert goal["progress"] == 100
        assert goal["status"] == "completed"

        response = await client.post(f"/api/v1/goals/{goal['id']}/milestones", json={"title": "Practice"})
        assert response.status_code == 201
        added = response.json()
        assert [m["order"] for m in added["milestones"]] == [1, 2]
        assert added["progress"] == 50
        assert added["version"] > goal["version"]

        removed = (await client.delete(f"/api/v1/goals/{goal['id']}/milestones/1")).json()
        assert [m["title"] for m in removed["milestones"]] == ["Read"]
        assert removed["progress"] == 100

    @pytest.mark.asyncio
    async def test_milestone_errors(self, client) -> None:
        goal = await create_goal(client, milestones=FOUR_MILESTONES[:2])
        url = f"/api/v1/goals/{goal['id']}/milestones"

        missing = await client.patch(f"{url}/7", json={"completed": True})
        unknown_field = await client.patch(f"{url}/0", json={"priority": "high"})
        collision = await client.patch(f"{url}/0", json={"order": 2})

        assert missing.status_code == 404
        assert unknown_field.status_code == 422
        assert collision.status_code == 400
        assert collision.json()["error"]["code"] == "INVALID_INPUT"

    @pytest.mark.asyncio
    async def test_direct_progress(self, client) -> None:
        goal = await create_goal(client)
        url = f"/api/v1/goals/{goal['id']}/progress"

        updated = (await client.patch(url, json={"progress": 30})).json()
        out_of_range = await client.patch(url, json={"progress": 101})

        assert updated["progress"] == 30
        assert updated["status"] == "in_progress"
        assert out_of_range.status_code == 400

    @pytest.mark.asyncio
    async def test_pause_then_resume(self, client) -> None:
        goal = await create_goal(client)
        await client.patch(f"/api/v1/goals/{goal['id']}/progress", json={"progress": 40})

        paused = (await client.put(f"/api/v1/goals/{goal['id']}", json={"status": "paused"})).json()
        resumed = (await client.put(f"/api/v1/goals/{goal['id']}", json={"status": "in_progress"})).json()

        assert paused["status"] == "paused"
        assert paused["progress"] == 40
        assert resumed["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_update_fields(self, client) -> None:
        goal = await create_goal(client)

        response = await client.put(
            f"/api/v1/goals/{goal['id']}",
            json={"title": "Learn Python deeply", "priority": "high", "tags": ["python"]},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["title"] == "Learn Python deeply"
        assert body["priority"] == "high"
        assert body["tags"] == ["python"]

    @pytest.mark.asyncio
    async def test_delete_detaches_lessons(self, client) -> None:
        goal = await create_goal(client)
        lesson = (await client.post("/api/v1/lessons", json=lesson_payload(goalId=goal["id"]))).json()

        response = await client.delete(f"/api/v1/goals/{goal['id']}")

        assert response.status_code == 204
        assert (await client.get(f"/api/v1/goals/{goal['id']}")).status_code == 404
        kept = (await client.get(f"/api/v1/lessons/{lesson['id']}")).json()
        assert kept["goalId"] is None


class TestGoalQueries:
    @pytest.mark.asyncio
    async def test_list_filters_and_sorts(self, client) -> None:
        await create_goal(client, title="B goal", category="language")
        await create_goal(client, title="A goal")

        by_title = (await client.get("/api/v1/goals", params={"sort": "title"})).json()
        languages = (await client.get("/api/v1/goals", params={"category": "language"})).json()
        not_started = (await client.get("/api/v1/goals", params={"status": "not_started"})).json()

        assert [g["title"] for g in by_title] == ["B goal", "A goal"]
        assert [g["title"] for g in languages] == ["B goal"]
        assert len(not_started) == 2

    @pytest.mark.asyncio
    async def test_unknown_sort_is_rejected(self, client) -> None:
        response = await client.get("/api/v1/goals", params={"sort": "colour"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_suggestions_skip_existing_titles(self, client) -> None:
        await create_goal(client, title="react development")

        titles = [s["title"] for s in (await client.get("/api/v1/goals/suggestions")).json()]

        assert titles == ["JavaScript Fundamentals", "Data Structures and Algorithms"]

    @pytest.mark.asyncio
    async def test_validation_error_shape(self, client) -> None:
        response = await client.post("/api/v1/goals", json={"title": "", "category": "programming"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["category"] == "VALIDATION_ERROR"
        assert {e["field"] for e in error["metadata"]["errors"]} >= {"body -> title", "body -> targetDate"}


class TestGoalOwnership:
    @pytest.mark.asyncio
    async def test_other_users_goal_is_not_found(self, client_factory) -> None:
        owner = await client_factory(uuid.uuid4())
        stranger = await client_factory(uuid.uuid4())
        goal = await create_goal(owner)

        responses = [
            await stranger.get(f"/api/v1/goals/{goal['id']}"),
            await stranger.put(f"/api/v1/goals/{goal['id']}", json={"title": "Mine now"}),
            await stranger.patch(f"/api/v1/goals/{goal['id']}/progress", json={"progress": 10}),
            await stranger.delete(f"/api/v1/goals/{goal['id']}"),
        ]

        assert [r.status_code for r in responses] == [404, 404, 404, 404]
        assert responses[0].json()["error"]["metadata"]["resource_type"] == "Goal"
        assert (await stranger.get("/api/v1/goals")).json() == []


class TestSuggestedMilestones:
    @pytest.mark.asyncio
    async def test_milestones_from_ai(self, client) -> None:
        mock = AsyncMock(return_value=llm_response(MILESTONE_SUGGESTIONS))
        with patch("src.ai.client.litellm.acompletion", new=mock):
            goal = await create_goal(client, suggestMilestones=True)

        assert [m["title"] for m in goal["milestones"]] == [
            "Install the toolchain",
            "Write small scripts",
            "Build a project",
        ]

    @pytest.mark.asyncio
    async def test_goal_is_created_when_ai_is_down(self, client) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(side_effect=RuntimeError("down"))):
            goal = await create_goal(client, suggestMilestones=True)

        assert goal["milestones"] == []


class TestOptimisticLocking:
    @pytest.mark.asyncio
    async def test_stale_write_becomes_conflict(self, client, session_maker) -> None:
        goal_id = uuid.UUID((await create_goal(client))["id"])

        async with session_maker() as stale, session_maker() as fresh:
            stale_goal = await stale.get(Goal, goal_id)

            fresh_goal = (await fresh.execute(select(Goal).where(Goal.id == goal_id))).scalar_one()
            fresh_goal.title = "Changed elsewhere"
            await fresh.commit()

            with pytest.raises(ConflictError):
                async with unit_of_work(stale, "Goal", goal_id):
                    stale_goal.title = "Too late"
