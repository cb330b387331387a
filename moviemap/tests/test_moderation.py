import threading
import unittest

from moviemap.db import InMemoryLocationStore, InMemorySubmissionStore
from moviemap.errors import (
    Conflict,
    NotFound,
    PartiallyApplied,
    StoreUnavailable,
    ValidationError,
)
from moviemap.moderation import ModerationEngine
from moviemap.types import Decision, SubmissionStatus

DUNE = {"title": "Dune", "type": "movie", "lat": 36.2, "lng": -112.1}


class FlakyLocationStore(InMemoryLocationStore):
    """Fails the first ``failures`` creates with StoreUnavailable."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def create(self, fields, location_id=None):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise StoreUnavailable("locations table locked")
        return super().create(fields, location_id)


class LostCommitLocationStore(InMemoryLocationStore):
    """Stores the first create but reports it as failed."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def create(self, fields, location_id=None):
        self.attempts += 1
        record = super().create(fields, location_id)
        if self.attempts == 1:
            raise StoreUnavailable("connection dropped after commit")
        return record


class StuckSubmissionStore(InMemorySubmissionStore):
    """Cannot move a submission out of approved."""

    def transition_status(self, submission_id, from_status, to_status):
        if from_status == SubmissionStatus.APPROVED:
            raise StoreUnavailable("submissions table locked")
        return super().transition_status(submission_id, from_status, to_status)


class ModerationEngineTests(unittest.TestCase):
    def setUp(self):
        self.locations = InMemoryLocationStore()
        self.submissions = InMemorySubmissionStore()
        self.engine = ModerationEngine(
            self.locations, self.submissions, retry_wait_seconds=0
        )

    def test_approve_creates_location_with_merged_fields(self):
        submission = self.submissions.create({**DUNE, "location_name": "Page, AZ"})
        result = self.engine.resolve(submission.id, "approve", {"year": 2021})

        self.assertEqual(result.decision, Decision.APPROVE)
        self.assertEqual(result.status, SubmissionStatus.APPROVED)
        self.assertIsNotNone(result.location)

        locations = self.locations.list_all()
        self.assertEqual(len(locations), 1)
        location = locations[0]
        self.assertEqual(location.id, result.location.id)
        self.assertEqual(
            location.fields(),
            {**submission.fields(), "year": 2021},
        )
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.APPROVED
        )
        self.assertEqual(self.submissions.list_by_status(SubmissionStatus.PENDING), [])

    def test_approve_accepts_camel_case_overrides(self):
        submission = self.submissions.create(DUNE)
        result = self.engine.resolve(
            submission.id,
            Decision.APPROVE,
            {"locationName": "Wadi Rum, Jordan", "trailerUrl": "https://youtu.be/x"},
        )
        self.assertEqual(result.location.location_name, "Wadi Rum, Jordan")
        self.assertEqual(result.location.trailer_url, "https://youtu.be/x")

    def test_reject_creates_no_location_and_ignores_overrides(self):
        submission = self.submissions.create(DUNE)
        result = self.engine.resolve(submission.id, "reject", {"lat": 500})

        self.assertEqual(result.status, SubmissionStatus.REJECTED)
        self.assertIsNone(result.location)
        self.assertEqual(self.locations.list_all(), [])
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.REJECTED
        )

    def test_second_resolution_conflicts(self):
        submission = self.submissions.create(DUNE)
        self.engine.resolve(submission.id, "approve")
        with self.assertRaises(Conflict):
            self.engine.resolve(submission.id, "approve")
        with self.assertRaises(Conflict):
            self.engine.resolve(submission.id, "reject")
        self.assertEqual(len(self.locations.list_all()), 1)
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.APPROVED
        )

    def test_rejected_is_terminal(self):
        submission = self.submissions.create(DUNE)
        self.engine.resolve(submission.id, "reject")
        with self.assertRaises(Conflict):
            self.engine.resolve(submission.id, "approve")
        self.assertEqual(self.locations.list_all(), [])

    def test_unknown_submission(self):
        with self.assertRaises(NotFound):
            self.engine.resolve("missing", "approve")

    def test_invalid_decision(self):
        submission = self.submissions.create(DUNE)
        with self.assertRaises(ValidationError):
            self.engine.resolve(submission.id, "publish")
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.PENDING
        )

    def test_override_of_status_is_rejected_before_any_write(self):
        submission = self.submissions.create(DUNE)
        with self.assertRaises(ValidationError) as ctx:
            self.engine.resolve(submission.id, "approve", {"status": "rejected"})
        self.assertIn("status", ctx.exception.message)
        self.assertEqual(self.locations.list_all(), [])
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.PENDING
        )

    def test_invalid_override_value_is_rejected_before_any_write(self):
        submission = self.submissions.create(DUNE)
        with self.assertRaises(ValidationError) as ctx:
            self.engine.resolve(submission.id, "approve", {"lat": 120.0})
        self.assertEqual(ctx.exception.details[0]["field"], "lat")
        self.assertEqual(self.locations.list_all(), [])
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.PENDING
        )

    def test_transient_location_failure_is_retried(self):
        locations = FlakyLocationStore(failures=2)
        engine = ModerationEngine(
            locations, self.submissions, retry_attempts=3, retry_wait_seconds=0
        )
        submission = self.submissions.create(DUNE)

        result = engine.resolve(submission.id, "approve")

        self.assertEqual(result.status, SubmissionStatus.APPROVED)
        self.assertEqual(locations.attempts, 3)
        self.assertEqual(len(locations.list_all()), 1)

    def test_location_failure_releases_claim(self):
        locations = FlakyLocationStore(failures=10)
        engine = ModerationEngine(
            locations, self.submissions, retry_attempts=2, retry_wait_seconds=0
        )
        submission = self.submissions.create(DUNE)

        with self.assertRaises(StoreUnavailable):
            engine.resolve(submission.id, "approve")

        self.assertEqual(locations.list_all(), [])
        self.assertEqual(
            self.submissions.get(submission.id).status, SubmissionStatus.PENDING
        )
        # Still resolvable once the store recovers.
        locations.failures = 0
        self.assertEqual(
            engine.resolve(submission.id, "approve").status, SubmissionStatus.APPROVED
        )

    def test_retry_after_lost_commit_creates_one_location(self):
        locations = LostCommitLocationStore()
        engine = ModerationEngine(
            locations, self.submissions, retry_attempts=3, retry_wait_seconds=0
        )
        submission = self.submissions.create(DUNE)

        result = engine.resolve(submission.id, "approve")

        self.assertEqual(locations.attempts, 2)
        stored = locations.list_all()
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].id, result.location.id)

    def test_unreleasable_claim_is_partially_applied(self):
        locations = FlakyLocationStore(failures=10)
        submissions = StuckSubmissionStore()
        engine = ModerationEngine(
            locations, submissions, retry_attempts=2, retry_wait_seconds=0
        )
        submission = submissions.create(DUNE)

        with self.assertRaises(PartiallyApplied) as ctx:
            engine.resolve(submission.id, "approve")

        self.assertEqual(ctx.exception.submission_id, submission.id)
        self.assertEqual(ctx.exception.applied, "status")
        self.assertEqual(ctx.exception.http_status, 500)

    def test_concurrent_approvals_create_one_location(self):
        submission = self.submissions.create(DUNE)
        workers = 8
        barrier = threading.Barrier(workers)
        outcomes = []
        outcomes_lock = threading.Lock()

        def approve():
            barrier.wait()
            try:
                self.engine.resolve(submission.id, "approve")
                outcome = "ok"
            except Conflict:
                outcome = "conflict"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=approve) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(outcomes.count("ok"), 1)
        self.assertEqual(outcomes.count("conflict"), workers - 1)
        self.assertEqual(len(self.locations.list_all()), 1)


if __name__ == "__main__":
    unittest.main()
