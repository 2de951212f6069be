# learnhub/services/course.py
import math
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from learnhub.core.cache import CatalogCache
from learnhub.core.exceptions import NotFoundError, db_exception
from learnhub.models.course import Course
from learnhub.schemas.course import CourseCreate, CourseResponse, CourseUpdate


class CourseService:
    def __init__(self, db: Session, cache: Optional[CatalogCache] = None):
        self.db = db
        self.cache = cache or CatalogCache(None)

    def get_course(self, course_id: str) -> Optional[Course]:
        """Get a course by ID"""
        return self.db.query(Course).filter(Course.id == course_id).first()

    def get_course_or_404(self, course_id: str) -> Course:
        course = self.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    def get_courses_by_ids(self, course_ids: List[str]) -> List[Course]:
        if not course_ids:
            return []
        return self.db.query(Course).filter(Course.id.in_(course_ids)).all()

    def get_courses(
        self,
        page: int = 1,
        size: int = 20,
        search: Optional[str] = None,
        price: str = "all",
    ) -> Tuple[List[dict], dict]:
        """
        Public catalog page as plain dicts, served from the cache when possible.
        """
        cache_key = f"list:{page}:{size}:{price}:{(search or '').strip().lower()}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached["courses"], cached["pagination"]

        query = self.db.query(Course)

        # Filter by price
        if price == "free":
            query = query.filter(Course.price == 0)
        elif price == "paid":
            query = query.filter(Course.price > 0)

        # Search by title or description
        if search:
            search_pattern = f"%{search.strip()}%"
            query = query.filter(
                (Course.title.ilike(search_pattern))
                | (Course.description.ilike(search_pattern))
            )

        total = query.count()

        offset = (page - 1) * size
        courses = (
            query.order_by(Course.created_at.desc(), Course.title)
            .offset(offset)
            .limit(size)
            .all()
        )

        total_pages = math.ceil(total / size) if size > 0 else 0
        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": total_pages,
        }
        items = [
            CourseResponse.model_validate(course).model_dump(mode="json")
            for course in courses
        ]

        self.cache.set(cache_key, {"courses": items, "pagination": pagination})
        return items, pagination

    @db_exception
    def create_course(self, course_in: CourseCreate) -> Course:
        """Create a new course (admin only)"""
        data = course_in.model_dump(exclude_none=True)
        course = Course(**data)

        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        self.cache.invalidate()
        return course

    @db_exception
    def update_course(self, course_id: str, course_in: CourseUpdate) -> Course:
        """Update a course (admin only)"""
        course = self.get_course_or_404(course_id)

        for field, value in course_in.model_dump(exclude_unset=True).items():
            setattr(course, field, value)

        self.db.commit()
        self.db.refresh(course)

        self.cache.invalidate()
        return course
