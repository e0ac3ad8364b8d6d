"""API v1 router."""

from fastapi import APIRouter

from knowledge_chakra.api.v1 import assessments, auth, courses, enrollments, notifications, users

router = APIRouter(prefix="/api/v1")

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(courses.router, prefix="/courses", tags=["courses"])
router.include_router(enrollments.router, prefix="/enrollments", tags=["enrollments"])
router.include_router(assessments.router, prefix="/assessments", tags=["assessments"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(users.router, prefix="/users", tags=["users"])
