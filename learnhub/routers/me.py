# learnhub/routers/me.py
from fastapi import APIRouter, Depends

from learnhub.core.dependencies import (
    get_course_service,
    get_current_user,
    get_progress_tracker,
    get_purchase_ledger,
)
from learnhub.models.user import User
from learnhub.schemas.progress import (
    DashboardResponse,
    MyCoursesResponse,
    PurchasedCourseResponse,
)
from learnhub.services.course import CourseService
from learnhub.services.progress_tracker import COMPLETE, ProgressTracker
from learnhub.services.purchase_ledger import PurchaseLedger

router = APIRouter(prefix="/me", tags=["My Learning"])


@router.get("/courses", response_model=MyCoursesResponse)
def list_my_courses(
    current_user: User = Depends(get_current_user),
    ledger: PurchaseLedger = Depends(get_purchase_ledger),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    course_service: CourseService = Depends(get_course_service),
):
    """
    Purchased courses, newest purchase first, with current progress.
    Purchases whose course was removed from the catalog are skipped.
    """
    purchases = ledger.list_purchases(current_user.id)
    course_ids = [purchase.course_id for purchase in purchases]

    courses = {course.id: course for course in course_service.get_courses_by_ids(course_ids)}
    progress = tracker.progress_by_course(current_user.id, course_ids)

    items = []
    for purchase in purchases:
        course = courses.get(purchase.course_id)
        if course is None:
            continue
        percent = progress.get(course.id, 0)
        items.append(
            PurchasedCourseResponse(
                course_id=course.id,
                title=course.title,
                description=course.description,
                price=course.price,
                video_thumbnail=course.video_thumbnail,
                video_duration=course.video_duration,
                purchase_date=purchase.purchase_date,
                progress=percent,
                completed=percent == COMPLETE,
            )
        )

    return MyCoursesResponse(courses=items, total=len(items))


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    current_user: User = Depends(get_current_user),
    ledger: PurchaseLedger = Depends(get_purchase_ledger),
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """Aggregate learning stats over everything the user owns."""
    course_ids = [purchase.course_id for purchase in ledger.list_purchases(current_user.id)]
    return tracker.summarize(current_user.id, course_ids)
