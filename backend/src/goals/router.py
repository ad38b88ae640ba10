"""Goal and milestone API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from src.auth import CurrentAuth

from .models import GoalCategory, GoalStatus
from .schemas import (
    GoalCreate,
    GoalProgressUpdate,
    GoalResponse,
    GoalSuggestion,
    GoalUpdate,
    MilestoneCreate,
    MilestoneUpdate,
)
from .service import GoalService


router = APIRouter(prefix="/api/v1/goals", tags=["goals"])


@router.get("")
async def list_goals(
    auth: CurrentAuth,
    status_filter: GoalStatus | None = Query(None, alias="status"),
    category: GoalCategory | None = None,
    sort: str = Query("createdAt", description="createdAt, updatedAt, targetDate, progress, priority or title"),
) -> list[GoalResponse]:
    """List the caller's goals."""
    goals = await GoalService(auth).list_goals(status=status_filter, category=category, sort=sort)
    return [GoalResponse.from_model(goal) for goal in goals]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_goal(data: GoalCreate, auth: CurrentAuth) -> GoalResponse:
    """Create a goal, optionally with AI-suggested milestones."""
    goal = await GoalService(auth).create_goal(data)
    return GoalResponse.from_model(goal)


# Declared before /{goal_id} so "suggestions" is not parsed as an id
@router.get("/suggestions")
async def get_goal_suggestions(auth: CurrentAuth) -> list[GoalSuggestion]:
    """Suggest catalog goals the caller has not created yet."""
    return await GoalService(auth).suggestions()


@router.get("/{goal_id}")
async def get_goal(goal_id: UUID, auth: CurrentAuth) -> GoalResponse:
    goal = await GoalService(auth).get_goal(goal_id)
    return GoalResponse.from_model(goal)


@router.put("/{goal_id}")
async def update_goal(goal_id: UUID, data: GoalUpdate, auth: CurrentAuth) -> GoalResponse:
    goal = await GoalService(auth).update_goal(goal_id, data)
    return GoalResponse.from_model(goal)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(goal_id: UUID, auth: CurrentAuth) -> None:
    """Delete a goal; its lessons are kept and detached."""
    await GoalService(auth).delete_goal(goal_id)


@router.patch("/{goal_id}/progress")
async def update_goal_progress(goal_id: UUID, data: GoalProgressUpdate, auth: CurrentAuth) -> GoalResponse:
    """Set progress directly; status follows from it."""
    goal = await GoalService(auth).update_progress(goal_id, data.progress)
    return GoalResponse.from_model(goal)


@router.post("/{goal_id}/milestones", status_code=status.HTTP_201_CREATED)
async def add_milestone(goal_id: UUID, data: MilestoneCreate, auth: CurrentAuth) -> GoalResponse:
    goal = await GoalService(auth).add_milestone(goal_id, data)
    return GoalResponse.from_model(goal)


@router.patch("/{goal_id}/milestones/{index}")
async def update_milestone(goal_id: UUID, index: int, data: MilestoneUpdate, auth: CurrentAuth) -> GoalResponse:
    """Patch the milestone at a zero-based position and recompute the goal."""
    goal = await GoalService(auth).update_milestone(goal_id, index, data.model_dump(exclude_unset=True))
    return GoalResponse.from_model(goal)


@router.delete("/{goal_id}/milestones/{index}")
async def remove_milestone(goal_id: UUID, index: int, auth: CurrentAuth) -> GoalResponse:
    goal = await GoalService(auth).remove_milestone(goal_id, index)
    return GoalResponse.from_model(goal)
