from .auth import router as auth_router
from .checkout import router as checkout_router
from .course import router as course_router
from .emails import router as emails_router
from .me import router as me_router

routes = [
    auth_router,
    course_router,
    checkout_router,
    me_router,
    emails_router,
]
