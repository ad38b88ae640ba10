import logging
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select

from src.ai.service import AIService
from src.auth import AuthContext
from src.database.session import unit_of_work
from src.exceptions import CollaboratorUnavailableError, ValidationError
from src.goals.models import OWNER_STATUSES, Difficulty, Goal, GoalCategory, GoalMilestone, GoalStatus
from src.goals.schemas import GoalCreate, GoalSuggestion, GoalUpdate, MilestoneCreate
from src.lessons.models import Lesson
from src.progress.clock import utc_now
from src.progress.ledger import ProgressLedger
from src.progress.stats import apply_ledger_events
from src.users.service import get_or_create_user


logger = logging.getLogger(__name__)

GOAL_SORT_COLUMNS = {
    "createdAt": Goal.created_at,
    "updatedAt": Goal.updated_at,
    "targetDate": Goal.target_date,
    "progress": Goal.progress,
    "priority": Goal.priority,
    "title": Goal.title,
}

SUGGESTED_GOALS = (
    GoalSuggestion(
        title="JavaScript Fundamentals",
        description="Master the basics of JavaScript programming",
        category=GoalCategory.PROGRAMMING,
        difficulty=Difficulty.BEGINNER,
        estimated_hours=20,
    ),
    GoalSuggestion(
        title="React Development",
        description="Learn to build modern web applications with React",
        category=GoalCategory.PROGRAMMING,
        difficulty=Difficulty.INTERMEDIATE,
        estimated_hours=40,
    ),
    GoalSuggestion(
        title="Data Structures and Algorithms",
        description="Understand fundamental computer science concepts",
        category=GoalCategory.PROGRAMMING,
        difficulty=Difficulty.INTERMEDIATE,
        estimated_hours=50,
    ),
)


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class GoalService:
    """Owner-scoped goal operations.

    Every mutation loads the goal, applies one ledger transition, folds the
    emitted events into the user's stats and commits as a single unit.
    """

    def __init__(self, auth: AuthContext, ai_service: AIService | None = None) -> None:
        self._auth = auth
        self._session = auth.session
        self._ai_service = ai_service

    async def list_goals(
        self,
        status: GoalStatus | None = None,
        category: GoalCategory | None = None,
        sort: str = "createdAt",
    ) -> list[Goal]:
        """List the caller's goals, newest first by the chosen sort column."""
        column = GOAL_SORT_COLUMNS.get(sort)
        if column is None:
            msg = f"Unsupported sort field: {sort}. Use one of: {', '.join(GOAL_SORT_COLUMNS)}"
            raise ValidationError(msg)

        query = select(Goal).where(Goal.user_id == self._auth.user_id)
        if status is not None:
            query = query.where(Goal.status == status.value)
        if category is not None:
            query = query.where(Goal.category == category.value)

        result = await self._session.execute(query.order_by(column.desc(), Goal.id))
        return list(result.scalars().all())

    async def get_goal(self, goal_id: UUID) -> Goal:
        return await self._auth.get_or_404(Goal, goal_id, "Goal")

    async def create_goal(self, data: GoalCreate) -> Goal:
        """Create a goal with its milestones.

        With ``suggest_milestones`` and no explicit milestones, the AI
        assistant is asked for a breakdown first; if it is unavailable the goal
        is created without milestones.
        """
        user = await get_or_create_user(self._session, self._auth.user_id)

        milestones = list(data.milestones)
        if not milestones and data.suggest_milestones:
            milestones = await self._suggest_milestones(data)

        now = utc_now()
        goal = Goal(
            id=uuid4(),
            user_id=self._auth.user_id,
            title=data.title,
            description=data.description,
            category=data.category.value,
            difficulty=data.difficulty.value,
            target_date=data.target_date,
            priority=data.priority.value,
            tags=data.tags,
            estimated_hours=data.estimated_hours,
            lessons_required=data.lessons_required,
            progress=0,
            status=GoalStatus.NOT_STARTED.value,
            milestones=[
                GoalMilestone(
                    title=m.title,
                    description=m.description,
                    completed=m.completed,
                    completed_at=now if m.completed else None,
                    order=position,
                )
                for position, m in enumerate(milestones, start=1)
            ],
        )

        ledger = ProgressLedger()
        async with unit_of_work(self._session, "Goal", goal.id):
            self._session.add(goal)
            ledger.recompute_goal(goal)
            await apply_ledger_events(self._session, user, ledger)

        logger.info(f"Created goal {goal.id} with {len(goal.milestones)} milestone(s) for user {user.id}")
        return goal

    async def update_goal(self, goal_id: UUID, data: GoalUpdate) -> Goal:
        """Update goal fields.

        Setting status to paused or cancelled parks the goal; any other status
        resumes it with the status derived from its progress.
        """
        user = await get_or_create_user(self._session, self._auth.user_id)
        goal = await self.get_goal(goal_id)
        ledger = ProgressLedger()

        async with unit_of_work(self._session, "Goal", goal_id):
            updates = data.model_dump(exclude_unset=True)
            status = updates.pop("status", None)
            for field, value in updates.items():
                if value is None and field != "description":
                    continue
                setattr(goal, field, _column_value(value))

            if status is not None:
                if status.value in OWNER_STATUSES:
                    goal.status = status.value
                elif goal.milestones:
                    ledger.recompute_goal(goal)
                else:
                    ledger.set_goal_progress(goal, goal.progress)
            await apply_ledger_events(self._session, user, ledger)

        return goal

    async def delete_goal(self, goal_id: UUID) -> None:
        """Delete a goal and its milestones; linked lessons are kept and detached."""
        goal = await self.get_goal(goal_id)

        async with unit_of_work(self._session, "Goal", goal_id):
            lessons = await self._auth.query_owned(Lesson, goal_id=goal_id)
            for lesson in lessons:
                lesson.goal_id = None
            await self._session.delete(goal)

        logger.info(f"Deleted goal {goal_id}, detached {len(lessons)} lesson(s)")

    async def update_progress(self, goal_id: UUID, progress: int) -> Goal:
        user = await get_or_create_user(self._session, self._auth.user_id)
        goal = await self.get_goal(goal_id)
        ledger = ProgressLedger()

        async with unit_of_work(self._session, "Goal", goal_id):
            ledger.set_goal_progress(goal, progress)
            await apply_ledger_events(self._session, user, ledger)
        return goal

    async def update_milestone(self, goal_id: UUID, index: int, patch: dict[str, Any]) -> Goal:
        user = await get_or_create_user(self._session, self._auth.user_id)
        goal = await self.get_goal(goal_id)
        ledger = ProgressLedger()

        # Explicit nulls only clear the description
        patch = {k: v for k, v in patch.items() if v is not None or k == "description"}

        async with unit_of_work(self._session, "Goal", goal_id):
            ledger.update_milestone(goal, index, patch)
            self._touch(goal)
            await apply_ledger_events(self._session, user, ledger)
        return goal

    async def add_milestone(self, goal_id: UUID, data: MilestoneCreate) -> Goal:
        user = await get_or_create_user(self._session, self._auth.user_id)
        goal = await self.get_goal(goal_id)
        ledger = ProgressLedger()

        async with unit_of_work(self._session, "Goal", goal_id):
            ledger.add_milestone(goal, data.title, data.description)
            if data.completed:
                ledger.update_milestone(goal, len(goal.milestones) - 1, {"completed": True})
            self._touch(goal)
            await apply_ledger_events(self._session, user, ledger)
        return goal

    async def remove_milestone(self, goal_id: UUID, index: int) -> Goal:
        user = await get_or_create_user(self._session, self._auth.user_id)
        goal = await self.get_goal(goal_id)
        ledger = ProgressLedger()

        async with unit_of_work(self._session, "Goal", goal_id):
            ledger.remove_milestone(goal, index)
            self._touch(goal)
            await apply_ledger_events(self._session, user, ledger)
        return goal

    async def suggestions(self) -> list[GoalSuggestion]:
        """Catalog goals whose titles the caller does not already use."""
        result = await self._session.execute(select(Goal.title).where(Goal.user_id == self._auth.user_id))
        existing = {title.strip().lower() for title in result.scalars().all()}
        return [s for s in SUGGESTED_GOALS if s.title.lower() not in existing]

    @staticmethod
    def _touch(goal: Goal) -> None:
        # Milestone rows have no version of their own; dirtying the goal bumps its version
        goal.updated_at = utc_now()

    async def _suggest_milestones(self, data: GoalCreate) -> list[MilestoneCreate]:
        ai_service = self._ai_service or AIService()
        try:
            suggestions = await ai_service.suggest_goal_milestones(
                data.title,
                data.description,
                data.category.value,
                data.difficulty.value,
            )
        except CollaboratorUnavailableError as e:
            logger.warning(f"Creating goal without suggested milestones: {e}")
            return []

        return [
            MilestoneCreate(title=s.title[:200], description=s.description[:500] or None)
            for s in suggestions.milestones
        ]
