from __future__ import annotations


class ProgressionError(Exception):
    """Base for every error the engine surfaces to callers unchanged."""
    code = "progression_error"
    status_code = 400
    message = "Request could not be applied"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


# ---------- precondition violations ----------

class AlreadyStarted(ProgressionError):
    code = "already_started"
    status_code = 409
    message = "Challenge already started"

class AlreadyPendingReview(ProgressionError):
    code = "already_pending_review"
    status_code = 409
    message = "Challenge already submitted and awaiting review"

class AlreadyCompleted(ProgressionError):
    code = "already_completed"
    status_code = 409
    message = "Challenge already completed"

class AttemptRejected(ProgressionError):
    code = "attempt_rejected"
    status_code = 409
    message = "Challenge attempt was rejected and cannot be retried"

class NotPending(ProgressionError):
    code = "not_pending"
    status_code = 409
    message = "Submission not pending review"

class SubmissionConflict(ProgressionError):
    code = "submission_conflict"
    status_code = 409
    message = "Submission was modified concurrently, reload and retry"

class CommentRequired(ProgressionError):
    code = "comment_required"
    status_code = 422
    message = "A comment is required to submit a challenge"


# ---------- referential errors ----------

class NotFound(ProgressionError):
    code = "submission_not_found"
    status_code = 404
    message = "Submission not found"

class ChallengeNotFound(ProgressionError):
    code = "challenge_not_found"
    status_code = 404
    message = "Challenge not found"

class NotAMember(ProgressionError):
    code = "not_a_member"
    status_code = 403
    message = "User does not exist or is not a member"
