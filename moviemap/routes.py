"""
HTTP routes for the MovieMap API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from moviemap import __version__
from moviemap.auth import Moderator
from moviemap.db import LocationRecord, LocationStore, SubmissionRecord, SubmissionStore
from moviemap.dependencies import (
    get_location_store,
    get_moderation_engine,
    get_submission_store,
    require_moderator,
)
from moviemap.moderation import ModerationEngine
from moviemap.schemas import (
    ApiIndexResponse,
    HealthResponse,
    ListLocationsResponse,
    ListSubmissionsResponse,
    LocationOut,
    ModerateRequest,
    ModerateResponse,
    ProfileResponse,
    SubmissionOut,
    SubmitLocationRequest,
    SubmitLocationResponse,
)
from moviemap.types import SubmissionStatus

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_moderator)])

ENDPOINTS = {
    "public": [
        {"method": "GET", "path": "/api", "description": "API information"},
        {"method": "GET", "path": "/api/health", "description": "Health check"},
        {
            "method": "GET",
            "path": "/api/locations",
            "description": "Get all approved locations",
        },
        {
            "method": "POST",
            "path": "/api/submit-location",
            "description": "Submit a new location for moderation",
        },
    ],
    "admin": [
        {
            "method": "GET",
            "path": "/api/admin/submissions",
            "description": "Get submissions by status, pending by default (requires auth)",
        },
        {
            "method": "PUT",
            "path": "/api/admin/moderate/:id",
            "description": "Approve/reject submission (requires auth)",
        },
        {
            "method": "GET",
            "path": "/api/admin/profile",
            "description": "Get moderator profile (requires auth)",
        },
    ],
}


def _location_out(record: LocationRecord) -> LocationOut:
    return LocationOut.model_validate(record.as_dict())


def _submission_out(record: SubmissionRecord) -> SubmissionOut:
    return SubmissionOut.model_validate(record.as_dict())


@router.get("/", response_model=ApiIndexResponse)
def api_index():
    return ApiIndexResponse(name="MovieMap API", version=__version__, endpoints=ENDPOINTS)


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/locations", response_model=ListLocationsResponse)
def list_locations(locations: LocationStore = Depends(get_location_store)):
    return ListLocationsResponse(
        locations=[_location_out(record) for record in locations.list_all()]
    )


@router.post("/submit-location", response_model=SubmitLocationResponse, status_code=201)
def submit_location(
    payload: SubmitLocationRequest,
    submissions: SubmissionStore = Depends(get_submission_store),
):
    """
    Queue a candidate location for review. Any client-supplied status is
    ignored; new submissions are always pending.
    """
    record = submissions.create(payload.model_dump())
    logger.info("Received submission %s (%s)", record.id, record.title)
    return SubmitLocationResponse(
        message="Location submitted successfully for review",
        submission=_submission_out(record),
    )


@admin_router.get("/submissions", response_model=ListSubmissionsResponse)
def list_submissions(
    status: SubmissionStatus = Query(SubmissionStatus.PENDING),
    submissions: SubmissionStore = Depends(get_submission_store),
):
    records = submissions.list_by_status(status)
    return ListSubmissionsResponse(
        submissions=[_submission_out(record) for record in records]
    )


@admin_router.put("/moderate/{submission_id}", response_model=ModerateResponse)
def moderate_submission(
    submission_id: str,
    payload: ModerateRequest,
    engine: ModerationEngine = Depends(get_moderation_engine),
    moderator: Moderator = Depends(require_moderator),
):
    result = engine.resolve(submission_id, payload.action, payload.updates)
    logger.info(
        "Moderator %s resolved submission %s: %s",
        moderator.uid,
        submission_id,
        result.status.value,
    )
    return ModerateResponse(
        submission_id=result.submission_id,
        action=result.decision,
        status=result.status,
        message=f"Submission {result.status.value} successfully",
        location=_location_out(result.location) if result.location else None,
    )


@admin_router.get("/profile", response_model=ProfileResponse)
def profile(moderator: Moderator = Depends(require_moderator)):
    return ProfileResponse(
        uid=moderator.uid, email=moderator.email or "Unknown", role="moderator"
    )
