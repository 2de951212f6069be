# learnhub/models/course.py
import uuid

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from learnhub.core.database import Base


def generate_course_id() -> str:
    return uuid.uuid4().hex


class Course(Base):
    __tablename__ = "courses"

    # Opaque catalog key
    id = Column(String(64), primary_key=True, default=generate_course_id)

    # Basic Info
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Pricing, in minor currency units (cents); 0 means free
    price = Column(Integer, nullable=False, default=0)

    # Media reference on the video platform
    video_playback_id = Column(String(255), nullable=True)
    video_duration = Column(Integer, nullable=True)  # seconds
    video_thumbnail = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def is_free(self) -> bool:
        return not self.price

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', price={self.price})>"
