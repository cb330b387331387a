"""
Moderation engine: resolves pending submissions into public locations.

A submission moves ``pending -> approved`` (publishing a new location) or
``pending -> rejected``. Both end states are terminal; resolving a submission
that is no longer pending raises ``Conflict``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from moviemap.db import (
    DESCRIPTIVE_FIELDS,
    LocationRecord,
    LocationStore,
    SubmissionRecord,
    SubmissionStore,
)
from moviemap.errors import (
    Conflict,
    MovieMapError,
    PartiallyApplied,
    StoreUnavailable,
    ValidationError,
)
from moviemap.schemas import to_internal, validate_location_fields
from moviemap.types import Decision, SubmissionStatus

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    submission_id: str
    decision: Decision
    status: SubmissionStatus
    location: Optional[LocationRecord] = None


class ModerationEngine:
    """
    Applies approve/reject decisions using the injected stores.

    The conditional ``pending -> <outcome>`` status write is what serializes
    concurrent resolutions of the same submission: only one caller wins it,
    the others get ``Conflict``. On approve the status is claimed first and
    the location is created second; if the location cannot be created the
    claim is released back to ``pending``.
    """

    def __init__(
        self,
        locations: LocationStore,
        submissions: SubmissionStore,
        *,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 0.5,
    ):
        self.locations = locations
        self.submissions = submissions
        self.retry_attempts = max(1, retry_attempts)
        self.retry_wait_seconds = retry_wait_seconds

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(StoreUnavailable),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=10),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def resolve(
        self,
        submission_id: str,
        decision: Decision | str,
        override_fields: Optional[Mapping[str, Any]] = None,
    ) -> ResolutionResult:
        try:
            decision = Decision(decision)
        except ValueError as exc:
            raise ValidationError(
                'Invalid action. Must be "approve" or "reject"',
                details=[{"field": "action", "message": "Must be approve or reject"}],
            ) from exc

        submission = self.submissions.get(submission_id)
        if submission.status != SubmissionStatus.PENDING:
            raise Conflict(
                f"Submission {submission_id} is already {submission.status.value}"
            )

        if decision is Decision.REJECT:
            return self._reject(submission)
        return self._approve(submission, override_fields)

    def _merge_overrides(
        self, submission: SubmissionRecord, override_fields: Optional[Mapping[str, Any]]
    ) -> dict:
        merged = submission.fields()
        if override_fields:
            updates = to_internal(override_fields)
            unknown = sorted(set(updates) - set(DESCRIPTIVE_FIELDS))
            if unknown:
                raise ValidationError(
                    f"Fields cannot be overridden: {', '.join(unknown)}",
                    details=[
                        {"field": f"updates.{name}", "message": "Not an editable field"}
                        for name in unknown
                    ],
                )
            merged.update(updates)
        return validate_location_fields(merged)

    def _claim(self, submission_id: str, status: SubmissionStatus) -> None:
        if not self.submissions.transition_status(
            submission_id, SubmissionStatus.PENDING, status
        ):
            raise Conflict(f"Submission {submission_id} was resolved concurrently")

    def _reject(self, submission: SubmissionRecord) -> ResolutionResult:
        self._claim(submission.id, SubmissionStatus.REJECTED)
        logger.info("Rejected submission %s (%s)", submission.id, submission.title)
        return ResolutionResult(
            submission_id=submission.id,
            decision=Decision.REJECT,
            status=SubmissionStatus.REJECTED,
        )

    def _approve(
        self, submission: SubmissionRecord, override_fields: Optional[Mapping[str, Any]]
    ) -> ResolutionResult:
        fields = self._merge_overrides(submission, override_fields)
        self._claim(submission.id, SubmissionStatus.APPROVED)
        # Fixed up front so a retry after a lost commit cannot insert twice.
        location_id = uuid.uuid4().hex
        try:
            location = self._retrying()(self.locations.create, fields, location_id)
        except Exception:
            logger.warning(
                "Location create failed for submission %s; releasing claim",
                submission.id,
            )
            self._release_claim(submission.id)
            raise

        logger.info(
            "Approved submission %s as location %s (%s)",
            submission.id,
            location.id,
            location.title,
        )
        return ResolutionResult(
            submission_id=submission.id,
            decision=Decision.APPROVE,
            status=SubmissionStatus.APPROVED,
            location=location,
        )

    def _release_claim(self, submission_id: str) -> None:
        try:
            released = self._retrying()(
                self.submissions.transition_status,
                submission_id,
                SubmissionStatus.APPROVED,
                SubmissionStatus.PENDING,
            )
        except MovieMapError as exc:
            logger.error(
                "Submission %s marked approved but no location was created", submission_id
            )
            raise PartiallyApplied(
                "Submission was marked approved but its location could not be created",
                submission_id=submission_id,
                applied="status",
            ) from exc
        if not released:
            raise PartiallyApplied(
                "Submission status changed while its approval was being rolled back",
                submission_id=submission_id,
                applied="status",
            )
