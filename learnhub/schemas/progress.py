# learnhub/schemas/progress.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProgressUpdateRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    # Out-of-range values are clamped, not rejected
    progress: float = Field(..., description="Completion percentage")


class PlaybackReport(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    percent: float = Field(..., description="Current playback position in percent")
    last_milestone: int = Field(0, ge=0, le=100)


class ProgressResponse(BaseModel):
    course_id: str
    progress: int
    completed: bool
    state: str


class PlaybackReportResponse(BaseModel):
    saved: bool
    milestone: Optional[int] = None
    progress: int


class PlaybackInfoResponse(BaseModel):
    course_id: str
    title: str
    playback_id: str
    stream_url: str
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None
    progress: int


class PurchasedCourseResponse(BaseModel):
    course_id: str
    title: str
    description: Optional[str] = None
    price: int
    video_thumbnail: Optional[str] = None
    video_duration: Optional[int] = None
    purchase_date: datetime
    progress: int
    completed: bool


class MyCoursesResponse(BaseModel):
    courses: List[PurchasedCourseResponse]
    total: int


class DashboardResponse(BaseModel):
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    not_started_courses: int
    average_progress: float
