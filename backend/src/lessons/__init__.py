# Lessons package: lesson records and their progress endpoints.
from src.lessons.models import Lesson, LessonStatus, LessonType, SourcePlatform


__all__ = ["Lesson", "LessonStatus", "LessonType", "SourcePlatform"]
