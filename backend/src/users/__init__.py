from src.users.models import AppliedStatsEvent, User


__all__ = ["AppliedStatsEvent", "User"]
