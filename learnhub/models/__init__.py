"""
Models package initialization
Import all models so Base.metadata knows every table
"""

from .course import Course
from .course_progress import CourseProgress
from .purchase import Purchase
from .user import User

__all__ = [
    "Course",
    "CourseProgress",
    "Purchase",
    "User",
]
