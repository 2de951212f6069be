# learnhub/schemas/course.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PriceFilter = Literal["all", "free", "paid"]

# ==================== Course Schemas ====================


class CourseBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: int = Field(0, ge=0, description="Price in minor currency units")
    video_playback_id: Optional[str] = Field(None, max_length=255)
    video_duration: Optional[int] = Field(None, ge=0, description="Seconds")
    video_thumbnail: Optional[str] = None


class CourseCreate(CourseBase):
    id: Optional[str] = Field(
        None, min_length=1, max_length=64, description="Catalog key (generated if omitted)"
    )


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    video_playback_id: Optional[str] = Field(None, max_length=255)
    video_duration: Optional[int] = Field(None, ge=0)
    video_thumbnail: Optional[str] = None


class CourseResponse(CourseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    updated_at: datetime


class CourseDetailResponse(CourseResponse):
    """Course as seen by a (possibly anonymous) visitor"""

    has_access: Optional[bool] = None
    progress: Optional[int] = None


class CourseListItem(CourseResponse):
    is_purchased: bool = False


class CourseListResponse(BaseModel):
    courses: List[CourseListItem]
    total: int
    page: int
    size: int
    total_pages: int
