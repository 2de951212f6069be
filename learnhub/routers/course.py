# learnhub/routers/course.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from learnhub.clients import ServiceClients
from learnhub.core.dependencies import (
    get_access_authorization,
    get_clients,
    get_course_service,
    get_current_admin,
    get_current_user,
    get_notification_service,
    get_optional_user,
    get_progress_tracker,
    get_purchase_ledger,
)
from learnhub.core.exceptions import NotFoundError, ValidationError
from learnhub.models.user import User
from learnhub.schemas.course import (
    CourseCreate,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
    PriceFilter,
)
from learnhub.schemas.progress import (
    PlaybackInfoResponse,
    PlaybackReport,
    PlaybackReportResponse,
    ProgressResponse,
    ProgressUpdateRequest,
)
from learnhub.services.access import AccessAuthorization
from learnhub.services.course import CourseService
from learnhub.services.notification import NotificationService
from learnhub.services.progress_tracker import (
    ProgressState,
    ProgressTracker,
    milestone_reached,
)
from learnhub.services.purchase_ledger import PurchaseLedger

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    responses={404: {"description": "Not found"}},
)


# ==================== Catalog Endpoints ====================


@router.get("", response_model=CourseListResponse)
def list_courses(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search by title or description"),
    price: PriceFilter = Query("all", description="all, free or paid"),
    course_service: CourseService = Depends(get_course_service),
    ledger: PurchaseLedger = Depends(get_purchase_ledger),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Get list of courses with pagination and filters.
    Available to all users; authenticated users also see what they own.
    """
    courses, pagination = course_service.get_courses(
        page=page, size=size, search=search, price=price
    )

    for course in courses:
        course["is_purchased"] = bool(
            current_user and ledger.has_purchased(current_user.id, course["id"])
        )

    return {"courses": courses, **pagination}


@router.get("/{course_id}", response_model=CourseDetailResponse)
def get_course(
    course_id: str,
    course_service: CourseService = Depends(get_course_service),
    access: AccessAuthorization = Depends(get_access_authorization),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Get a course by ID.
    For authenticated users the response says whether they may watch it
    and how far they got.
    """
    course = course_service.get_course_or_404(course_id)

    course_dict = CourseResponse.model_validate(course).model_dump()
    if current_user:
        has_access = access.can_access(current_user.id, course.id)
        course_dict["has_access"] = has_access
        course_dict["progress"] = (
            tracker.get_progress(current_user.id, course.id) if has_access else 0
        )

    return course_dict


@router.post("", response_model=CourseResponse, status_code=201)
def create_course(
    course_in: CourseCreate,
    course_service: CourseService = Depends(get_course_service),
    current_admin: User = Depends(get_current_admin),
):
    """
    Create a new course.
    Only admins can create courses.
    """
    return course_service.create_course(course_in)


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    course_in: CourseUpdate,
    course_service: CourseService = Depends(get_course_service),
    current_admin: User = Depends(get_current_admin),
):
    """
    Update a course.
    Only admins can update courses.
    """
    return course_service.update_course(course_id, course_in)


@router.post("/{course_id}/enroll", response_model=ProgressResponse, status_code=201)
def enroll_free_course(
    course_id: str,
    course_service: CourseService = Depends(get_course_service),
    ledger: PurchaseLedger = Depends(get_purchase_ledger),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    current_user: User = Depends(get_current_user),
):
    """Enroll in a free course without going through checkout."""
    course = course_service.get_course_or_404(course_id)
    if not course.is_free:
        raise ValidationError("This course requires payment")

    ledger.record_purchase(current_user.id, course.id, amount_paid=0)
    return _progress_response(course.id, tracker.get_progress(current_user.id, course.id))


# ==================== Content & Progress Endpoints ====================


@router.get("/{course_id}/content", response_model=PlaybackInfoResponse)
def get_course_content(
    course_id: str,
    course_service: CourseService = Depends(get_course_service),
    access: AccessAuthorization = Depends(get_access_authorization),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    clients: ServiceClients = Depends(get_clients),
    current_user: User = Depends(get_current_user),
):
    """Playback details for a purchased course, plus where to resume."""
    course = course_service.get_course_or_404(course_id)
    access.require_access(current_user.id, course.id)

    if not course.video_playback_id:
        raise NotFoundError("This course has no video yet")

    playback = clients.video.playback_info(course.video_playback_id)
    return PlaybackInfoResponse(
        course_id=course.id,
        title=course.title,
        playback_id=playback.playback_id,
        stream_url=playback.stream_url,
        thumbnail_url=course.video_thumbnail or playback.thumbnail_url,
        duration=course.video_duration,
        progress=tracker.get_progress(current_user.id, course.id),
    )


@router.get("/{course_id}/progress", response_model=ProgressResponse)
def get_course_progress(
    course_id: str,
    access: AccessAuthorization = Depends(get_access_authorization),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    current_user: User = Depends(get_current_user),
):
    access.require_access(current_user.id, course_id)
    return _progress_response(course_id, tracker.get_progress(current_user.id, course_id))


@router.put("/{course_id}/progress", response_model=ProgressResponse)
def save_course_progress(
    course_id: str,
    progress_in: ProgressUpdateRequest,
    background_tasks: BackgroundTasks,
    course_service: CourseService = Depends(get_course_service),
    access: AccessAuthorization = Depends(get_access_authorization),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    notifier: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
):
    """Store a completion percentage; values outside 0..100 are clamped."""
    course = course_service.get_course_or_404(course_id)
    access.require_access(current_user.id, course.id)

    update = tracker.save_progress(current_user.id, course.id, progress_in.progress)
    if update.newly_completed:
        background_tasks.add_task(
            notifier.send_course_completed,
            current_user.email,
            current_user.display_name,
            course.title,
        )
    return _progress_response(course.id, update.progress)


@router.post("/{course_id}/playback", response_model=PlaybackReportResponse)
def report_playback(
    course_id: str,
    report: PlaybackReport,
    background_tasks: BackgroundTasks,
    course_service: CourseService = Depends(get_course_service),
    access: AccessAuthorization = Depends(get_access_authorization),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    notifier: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user),
):
    """
    Continuous position reported by the player.
    Only persisted when it crosses a new milestone (25, 50, 75, 100).
    """
    course = course_service.get_course_or_404(course_id)
    access.require_access(current_user.id, course.id)

    # Playback never moves stored progress backwards
    stored = tracker.get_progress(current_user.id, course.id)
    milestone = milestone_reached(report.percent, max(report.last_milestone, stored))
    if milestone is None:
        return PlaybackReportResponse(saved=False, milestone=None, progress=stored)

    update = tracker.save_progress(current_user.id, course.id, milestone)
    if update.newly_completed:
        background_tasks.add_task(
            notifier.send_course_completed,
            current_user.email,
            current_user.display_name,
            course.title,
        )
    return PlaybackReportResponse(saved=True, milestone=milestone, progress=update.progress)


def _progress_response(course_id: str, progress: int) -> ProgressResponse:
    state = ProgressState.from_progress(progress)
    return ProgressResponse(
        course_id=course_id,
        progress=progress,
        completed=state is ProgressState.COMPLETED,
        state=state.value,
    )
