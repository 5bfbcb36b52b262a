"""Route aggregation for the grading API."""

from fastapi import APIRouter

from . import assessment, grading, statistics, submission

router = APIRouter()
router.include_router(assessment.router)
router.include_router(grading.router)
router.include_router(submission.router)
router.include_router(statistics.router)
