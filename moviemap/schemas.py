"""
Pydantic schemas for the MovieMap API.

JSON leaving the API is camelCase (``trailerUrl``); Python attributes and
storage columns are snake_case (``trailer_url``). Request bodies accept either.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from moviemap.errors import ValidationError
from moviemap.types import Decision, MediaType, SubmissionStatus

EXTERNAL_NAMES = {
    "location_name": "locationName",
    "trailer_url": "trailerUrl",
    "imdb_link": "imdbLink",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "submission_id": "submissionId",
}
INTERNAL_NAMES = {external: internal for internal, external in EXTERNAL_NAMES.items()}


def to_internal(data: Mapping[str, Any]) -> dict:
    """Rename camelCase API keys to snake_case; snake_case keys pass through."""
    return {INTERNAL_NAMES.get(key, key): value for key, value in data.items()}


def pydantic_error_details(exc: PydanticValidationError) -> list[dict]:
    details = []
    for error in exc.errors():
        details.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
            }
        )
    return details


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LocationFields(ApiModel):
    """Descriptive fields of a location, validated against business rules."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    title: str = Field(..., min_length=1, max_length=200)
    type: MediaType
    year: Optional[int] = Field(default=None, ge=1870, le=2100)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    location_name: Optional[str] = Field(default=None, max_length=300)
    trailer_url: Optional[str] = Field(default=None, max_length=2048)
    imdb_link: Optional[str] = Field(default=None, max_length=2048)

    @field_validator("location_name", "trailer_url", "imdb_link", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("trailer_url", "imdb_link")
    @classmethod
    def _require_http_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.lower().startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value


def validate_location_fields(data: Mapping[str, Any]) -> dict:
    """
    Validate descriptive fields (either casing) and return them snake_cased.

    Raises ``ValidationError`` with per-field details on failure.
    """
    try:
        fields = LocationFields.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid location fields", details=pydantic_error_details(exc)
        ) from exc
    return fields.model_dump()


class SubmitLocationRequest(LocationFields):
    """Public submission body. Unknown keys, including ``status``, are dropped."""


class LocationOut(ApiModel):
    id: str
    title: str
    type: MediaType
    year: Optional[int] = None
    lat: float
    lng: float
    location_name: Optional[str] = None
    trailer_url: Optional[str] = None
    imdb_link: Optional[str] = None
    created_at: float


class SubmissionOut(LocationOut):
    status: SubmissionStatus
    updated_at: float


class ListLocationsResponse(BaseModel):
    locations: list[LocationOut]


class SubmitLocationResponse(BaseModel):
    message: str
    submission: SubmissionOut


class ListSubmissionsResponse(BaseModel):
    submissions: list[SubmissionOut]


class ModerateRequest(BaseModel):
    action: Decision
    updates: Optional[dict[str, Any]] = None


class ModerateResponse(ApiModel):
    submission_id: str
    action: Decision
    status: SubmissionStatus
    message: str
    location: Optional[LocationOut] = None


class ProfileResponse(BaseModel):
    uid: str
    email: str
    role: str


class EndpointInfo(BaseModel):
    method: str
    path: str
    description: str


class ApiIndexResponse(BaseModel):
    name: str
    version: str
    endpoints: dict[str, list[EndpointInfo]]


class HealthResponse(BaseModel):
    status: str
