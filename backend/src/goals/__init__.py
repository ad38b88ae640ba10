from src.goals.models import Goal, GoalMilestone, GoalStatus


__all__ = ["Goal", "GoalMilestone", "GoalStatus"]
