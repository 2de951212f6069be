# learnhub/services/progress_tracker.py
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.core.exceptions import PersistenceError
from learnhub.models.course_progress import CourseProgress

logger = logging.getLogger(__name__)

COMPLETE = 100
MILESTONE_STEP = 25

# Dialects with a native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ProgressState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_progress(cls, progress: int) -> "ProgressState":
        if progress >= COMPLETE:
            return cls.COMPLETED
        if progress <= 0:
            return cls.NOT_STARTED
        return cls.IN_PROGRESS


@dataclass
class ProgressUpdate:
    previous: int
    progress: int
    state: ProgressState

    @property
    def completed(self) -> bool:
        return self.state is ProgressState.COMPLETED

    @property
    def newly_completed(self) -> bool:
        """Only the transition into COMPLETED triggers completion side effects."""
        return self.completed and self.previous < COMPLETE


def clamp_progress(percent: float) -> int:
    return int(min(COMPLETE, max(0, round(percent))))


def milestone_reached(percent: float, last_milestone: int = 0) -> Optional[int]:
    """
    Coarse sampling of continuous playback position.

    Returns the highest milestone (a multiple of 25, or exactly 100) reached
    by ``percent`` when it is past ``last_milestone``, else None.
    """
    if percent >= COMPLETE:
        reached = COMPLETE
    else:
        reached = int(max(0, percent) // MILESTONE_STEP) * MILESTONE_STEP
    if reached > last_milestone:
        return reached
    return None


class _StripedLocks:
    """
    Fixed pool of locks for dialects without an atomic upsert. A (user,
    course) key always maps to the same stripe; unrelated keys may share one.
    """

    def __init__(self, stripes: int = 64):
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def lock_for(self, key: Tuple[int, str]) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    @contextmanager
    def hold(self, key: Tuple[int, str]):
        with self.lock_for(key):
            yield


_keyed_locks = _StripedLocks()


class ProgressTracker:
    """Per (user, course) completion percentage."""

    def __init__(self, db: Session):
        self.db = db

    def get_progress(self, user_id: int, course_id: str) -> int:
        """Stored percent, or 0 when there is no record or it cannot be read."""
        try:
            record = self._find(user_id, course_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error getting progress user={user_id} course={course_id}: {e}"
            )
            return 0
        return record.progress if record else 0

    def save_progress(self, user_id: int, course_id: str, percent: float) -> ProgressUpdate:
        """
        Clamp ``percent`` to [0, 100] and store it as the pair's progress.

        Insert-or-update is a single statement where the database supports
        it. Raises PersistenceError when the prior value cannot be read or
        the write fails, so completion is never reported twice.
        """
        progress = clamp_progress(percent)
        now = datetime.now(timezone.utc)

        try:
            dialect = self.db.get_bind().dialect.name
            if dialect in _UPSERT_INSERTS:
                record = self._find(user_id, course_id)
                previous = record.progress if record else 0
                self._atomic_upsert(_UPSERT_INSERTS[dialect], user_id, course_id, progress, now)
                self.db.commit()
            else:
                # Only serializes writers inside this process; the commit
                # must happen before the next writer reads
                with _keyed_locks.hold((user_id, course_id)):
                    previous = self._read_then_write(user_id, course_id, progress, now)
                    self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error saving progress user={user_id} course={course_id}: {e}"
            )
            raise PersistenceError("Failed to save progress")

        update = ProgressUpdate(
            previous=previous,
            progress=progress,
            state=ProgressState.from_progress(progress),
        )
        logger.info(
            f"Progress saved: user={user_id} course={course_id} "
            f"{previous}% -> {progress}% ({update.state.value})"
        )
        return update

    def summarize(self, user_id: int, course_ids: Iterable[str]) -> dict:
        """Aggregate stats over the given (purchased) courses."""
        course_ids = list(dict.fromkeys(course_ids))
        if not course_ids:
            return {
                "total_courses": 0,
                "completed_courses": 0,
                "in_progress_courses": 0,
                "not_started_courses": 0,
                "average_progress": 0.0,
            }

        records = (
            self.db.query(CourseProgress)
            .filter(
                and_(
                    CourseProgress.user_id == user_id,
                    CourseProgress.course_id.in_(course_ids),
                )
            )
            .all()
        )
        by_course = {record.course_id: record.progress for record in records}
        values = [by_course.get(course_id, 0) for course_id in course_ids]
        states = [ProgressState.from_progress(value) for value in values]

        return {
            "total_courses": len(values),
            "completed_courses": states.count(ProgressState.COMPLETED),
            "in_progress_courses": states.count(ProgressState.IN_PROGRESS),
            "not_started_courses": states.count(ProgressState.NOT_STARTED),
            "average_progress": round(sum(values) / len(values), 1),
        }

    def progress_by_course(self, user_id: int, course_ids: Iterable[str]) -> Dict[str, int]:
        course_ids = list(course_ids)
        if not course_ids:
            return {}
        try:
            rows = (
                self.db.query(CourseProgress.course_id, CourseProgress.progress)
                .filter(
                    and_(
                        CourseProgress.user_id == user_id,
                        CourseProgress.course_id.in_(course_ids),
                    )
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error listing progress for user={user_id}: {e}")
            return {}
        return {course_id: progress for course_id, progress in rows}

    def _find(self, user_id: int, course_id: str) -> Optional[CourseProgress]:
        return (
            self.db.query(CourseProgress)
            .filter(
                and_(
                    CourseProgress.user_id == user_id,
                    CourseProgress.course_id == course_id,
                )
            )
            .first()
        )

    def _atomic_upsert(self, insert, user_id, course_id, progress, now) -> None:
        stmt = insert(CourseProgress).values(
            user_id=user_id,
            course_id=course_id,
            progress=progress,
            completed=progress == COMPLETE,
            last_updated=now,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "course_id"],
            set_={
                "progress": stmt.excluded.progress,
                "completed": stmt.excluded.completed,
                "last_updated": stmt.excluded.last_updated,
            },
        )
        self.db.execute(stmt)

    def _read_then_write(self, user_id, course_id, progress, now) -> int:
        record = self._find(user_id, course_id)
        previous = record.progress if record else 0
        if record is None:
            record = CourseProgress(user_id=user_id, course_id=course_id, created_at=now)
            self.db.add(record)
        record.progress = progress
        record.completed = progress == COMPLETE
        record.last_updated = now
        return previous
