from fastapi import APIRouter, Query

from src.auth import CurrentAuth
from src.users.schemas import (
    AnalyticsResponse,
    DashboardResponse,
    UserProfileResponse,
    UserProfileUpdate,
    UserStats,
)
from src.users.service import UserService


router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/profile")
async def get_profile(auth: CurrentAuth) -> UserProfileResponse:
    """Get the caller's profile, preferences and stats."""
    user = await UserService(auth.session).get_profile(auth.user_id)
    return UserProfileResponse.from_model(user)


@router.put("/profile")
async def update_profile(data: UserProfileUpdate, auth: CurrentAuth) -> UserProfileResponse:
    """Update the caller's profile and preferences."""
    user = await UserService(auth.session).update_profile(auth.user_id, data)
    return UserProfileResponse.from_model(user)


@router.get("/dashboard")
async def get_dashboard(auth: CurrentAuth) -> DashboardResponse:
    """Get headline counts, streak and recent activity."""
    return await UserService(auth.session).get_dashboard(auth.user_id)


@router.get("/analytics")
async def get_analytics(
    auth: CurrentAuth,
    period: str = Query("7d", description="24h, 7d, 30d or 90d; unknown values mean 7d"),
) -> AnalyticsResponse:
    """Get completed-lesson analytics for a lookback window."""
    report = await UserService(auth.session).get_analytics(auth.user_id, period)
    return AnalyticsResponse.from_report(report)


@router.get("/stats")
async def get_stats(auth: CurrentAuth) -> UserStats:
    """Get aggregate learning stats with an up-to-date streak."""
    user = await UserService(auth.session).get_stats(auth.user_id)
    return UserStats.from_model(user)
