# learnhub/models/course_progress.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)

from learnhub.core.database import Base


class CourseProgress(Base):
    """Consumption state of one course for one user."""

    __tablename__ = "course_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_course_progress_user_course"),
        CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_course_progress_range"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, nullable=False, index=True)
    course_id = Column(String(64), nullable=False, index=True)

    progress = Column(Integer, nullable=False, default=0)  # percent
    completed = Column(Boolean, nullable=False, default=False)

    # Set by the tracker on every write; created_at only on insert
    last_updated = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<CourseProgress(user_id={self.user_id}, course_id={self.course_id}, progress={self.progress})>"
