"""
API v1 Router

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from lms.api.v1.endpoints import (
    analytics,
    auth,
    certificates,
    courses,
    lessons,
    progress,
    users,
)

router = APIRouter()

# Include authentication routes
router.include_router(auth.router)

# Include user routes
router.include_router(users.router)

# Include course, enrollment and roster routes
router.include_router(courses.router)

# Include lesson routes
router.include_router(lessons.router)

# Include progress routes
router.include_router(progress.router)

# Include certificate routes
router.include_router(certificates.router)

# Include analytics routes
router.include_router(analytics.router)
