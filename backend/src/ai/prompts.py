"""Centralized prompt management for the AI study assistant.

All AI prompts are defined here for consistency and maintainability.
"""

SYSTEM_PROMPT = (
    "You are an AI education assistant that provides structured, helpful responses in JSON format "
    "when requested. Always ensure your JSON responses are valid and well-formatted."
)

STUDY_PLAN_PROMPT = """Create a personalized study plan for a user with the following profile:
- Skill Level: {skill_level}
- Learning Preferences: {learning_preferences}
- Daily Goal: {daily_goal_minutes} minutes

Goals:
{goals}

Please provide:
1. Weekly study schedule
2. Recommended learning sequence
3. Time allocation for each goal
4. Suggested milestones

Return ONLY a JSON object matching the requested schema (no markdown fences or commentary)."""

LESSON_RECOMMENDATIONS_PROMPT = """Based on the user's completed lessons and current goals, recommend the next 5 lessons:

Completed Lessons: {completed_lessons}
Current Goals: {goals}
Learning Preferences: {learning_preferences}

Provide recommendations with:
- Lesson title
- Learning objective
- Estimated duration in minutes
- Difficulty level
- Why it's recommended

Return ONLY a JSON object matching the requested schema (no markdown fences or commentary)."""

PROGRESS_ANALYSIS_PROMPT = """Analyze the user's learning progress and provide insights:

Stats:
- Total lessons completed: {total_lessons_completed}
- Total time spent: {total_time_spent} minutes
- Current streak: {current_streak} days
- Goals achieved: {total_goals_achieved}

Recent Lessons: {recent_lessons}

Provide:
1. Progress summary
2. Strengths identified
3. Areas for improvement
4. Motivation tips
5. Adjusted recommendations

Return ONLY a JSON object matching the requested schema (no markdown fences or commentary)."""

GOAL_MILESTONES_PROMPT = """Create milestone suggestions for this learning goal:

Title: {title}
Description: {description}
Category: {category}
Difficulty: {difficulty}

Create 5-8 progressive milestones that break down this goal into achievable steps.
Each milestone should have:
- Title
- Description
- Estimated hours to complete
- Prerequisites
- Success criteria

Return ONLY a JSON object matching the requested schema (no markdown fences or commentary)."""
