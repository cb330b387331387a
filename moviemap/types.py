from enum import StrEnum


class MediaType(StrEnum):
    MOVIE = "movie"
    TV = "tv"


class SubmissionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> SubmissionStatus:
        if self is Decision.APPROVE:
            return SubmissionStatus.APPROVED
        return SubmissionStatus.REJECTED
