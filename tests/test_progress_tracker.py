import threading
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from learnhub.core.database import Base, create_session_factory
from learnhub.core.exceptions import PersistenceError
from learnhub.models import CourseProgress
from learnhub.services import progress_tracker
from learnhub.services.progress_tracker import (
    ProgressState,
    ProgressTracker,
    clamp_progress,
    milestone_reached,
)


def test_unknown_pair_has_zero_progress(db_session):
    assert ProgressTracker(db_session).get_progress(1, "course-1") == 0


def test_save_then_get(db_session):
    tracker = ProgressTracker(db_session)

    update = tracker.save_progress(1, "course-1", 40)

    assert update.progress == 40
    assert update.state is ProgressState.IN_PROGRESS
    assert update.completed is False
    assert tracker.get_progress(1, "course-1") == 40


@pytest.mark.parametrize(
    "percent, expected",
    [(150, 100), (-5, 0), (42.4, 42), (42.6, 43), (0, 0), (100, 100)],
)
def test_clamp_progress(percent, expected):
    assert clamp_progress(percent) == expected


def test_out_of_range_values_are_clamped_on_save(db_session):
    tracker = ProgressTracker(db_session)

    assert tracker.save_progress(1, "course-1", 150).progress == 100
    assert tracker.get_progress(1, "course-1") == 100

    assert tracker.save_progress(1, "course-2", -5).progress == 0
    assert tracker.get_progress(1, "course-2") == 0


def test_completed_flag_follows_progress(db_session):
    tracker = ProgressTracker(db_session)

    tracker.save_progress(1, "course-1", 100)
    record = db_session.query(CourseProgress).filter_by(user_id=1).one()
    assert record.completed is True

    tracker.save_progress(1, "course-1", 60)
    db_session.refresh(record)
    assert record.completed is False
    assert record.progress == 60


def test_completion_is_idempotent(db_session):
    tracker = ProgressTracker(db_session)

    first = tracker.save_progress(1, "course-1", 100)
    second = tracker.save_progress(1, "course-1", 100)

    assert first.newly_completed is True
    assert second.newly_completed is False
    assert second.completed is True
    assert db_session.query(CourseProgress).count() == 1


def test_repeated_saves_keep_one_row_per_pair(db_session):
    tracker = ProgressTracker(db_session)
    for percent in (10, 20, 30):
        tracker.save_progress(1, "course-1", percent)
    tracker.save_progress(2, "course-1", 5)

    assert db_session.query(CourseProgress).count() == 2
    assert tracker.get_progress(1, "course-1") == 30


def test_get_progress_read_failure_returns_zero():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
    assert ProgressTracker(db).get_progress(1, "course-1") == 0


def test_save_failure_raises_persistence_error():
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = None
    db.get_bind.return_value.dialect.name = "postgresql"
    db.execute.side_effect = OperationalError("INSERT", {}, Exception("db down"))

    with pytest.raises(PersistenceError):
        ProgressTracker(db).save_progress(1, "course-1", 50)
    db.rollback.assert_called()


@pytest.mark.parametrize(
    "progress, state",
    [
        (0, ProgressState.NOT_STARTED),
        (1, ProgressState.IN_PROGRESS),
        (99, ProgressState.IN_PROGRESS),
        (100, ProgressState.COMPLETED),
    ],
)
def test_state_from_progress(progress, state):
    assert ProgressState.from_progress(progress) is state


@pytest.mark.parametrize(
    "percent, last, expected",
    [
        (10, 0, None),
        (25, 0, 25),
        (49.9, 0, 25),
        (52, 25, 50),
        (80, 0, 75),
        (80, 75, None),
        (99.5, 75, None),
        (100, 75, 100),
        (120, 0, 100),
        (100, 100, None),
    ],
)
def test_milestone_reached(percent, last, expected):
    assert milestone_reached(percent, last) == expected


def test_summarize(db_session):
    tracker = ProgressTracker(db_session)
    tracker.save_progress(1, "a", 100)
    tracker.save_progress(1, "b", 50)

    summary = tracker.summarize(1, ["a", "b", "c"])

    assert summary == {
        "total_courses": 3,
        "completed_courses": 1,
        "in_progress_courses": 1,
        "not_started_courses": 1,
        "average_progress": 50.0,
    }


def test_summarize_without_courses(db_session):
    assert ProgressTracker(db_session).summarize(1, [])["total_courses"] == 0


@pytest.fixture
def without_upsert(monkeypatch):
    """Force the read-then-write path used by databases without ON CONFLICT."""
    monkeypatch.setattr(progress_tracker, "_UPSERT_INSERTS", {})


def test_locked_write_path_round_trip(db_session, without_upsert):
    tracker = ProgressTracker(db_session)

    first = tracker.save_progress(1, "course-1", 40)
    second = tracker.save_progress(1, "course-1", 100)

    assert first.previous == 0
    assert second.previous == 40
    assert second.newly_completed is True
    record = db_session.query(CourseProgress).one()
    assert record.progress == 100
    assert record.completed is True


def test_concurrent_locked_writes_keep_one_row(tmp_path, without_upsert):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'progress.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    session_factory = create_session_factory(engine)

    writers = 8
    barrier = threading.Barrier(writers)
    errors = []

    def write(percent):
        session = session_factory()
        try:
            barrier.wait()
            ProgressTracker(session).save_progress(1, "course-1", percent)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [
        threading.Thread(target=write, args=(10 * (i + 1),)) for i in range(writers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    session = session_factory()
    try:
        assert errors == []
        assert session.query(CourseProgress).count() == 1
    finally:
        session.close()
        engine.dispose()


def test_unreadable_prior_progress_fails_the_save():
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "postgresql"
    db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))

    with pytest.raises(PersistenceError):
        ProgressTracker(db).save_progress(1, "course-1", 100)

    db.execute.assert_not_called()
    db.commit.assert_not_called()


def test_striped_locks_map_a_key_to_one_lock():
    locks = progress_tracker._StripedLocks(stripes=4)

    assert locks.lock_for((1, "course-1")) is locks.lock_for((1, "course-1"))
    assert len({id(locks.lock_for((i, "c"))) for i in range(100)}) <= 4
