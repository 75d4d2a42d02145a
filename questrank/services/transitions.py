"""
Submission lifecycle.

    (none) --start--> started --submit--> pending_validation --validate--> completed
    (none) --submit-------------------->  pending_validation --reject----> expired

`transition` is the only place that decides whether an action is legal for a
status; every caller that writes a status goes through it.
"""
from __future__ import annotations
import enum
from questrank.errors import (
    ProgressionError,
    AlreadyStarted,
    AlreadyPendingReview,
    AlreadyCompleted,
    AttemptRejected,
    NotPending,
    NotFound,
)
from questrank.models.submission import SubmissionStatus


class Action(str, enum.Enum):
    START = "start"
    SUBMIT = "submit"
    VALIDATE = "validate"
    REJECT = "reject"


_S = SubmissionStatus
_A = Action

TRANSITIONS: dict[tuple[SubmissionStatus | None, Action], SubmissionStatus | type[ProgressionError]] = {
    (None, _A.START): _S.STARTED,
    (None, _A.SUBMIT): _S.PENDING_VALIDATION,
    (None, _A.VALIDATE): NotFound,
    (None, _A.REJECT): NotFound,

    (_S.STARTED, _A.START): AlreadyStarted,
    (_S.STARTED, _A.SUBMIT): _S.PENDING_VALIDATION,
    (_S.STARTED, _A.VALIDATE): NotPending,
    (_S.STARTED, _A.REJECT): NotPending,

    (_S.PENDING_VALIDATION, _A.START): AlreadyPendingReview,
    (_S.PENDING_VALIDATION, _A.SUBMIT): AlreadyPendingReview,
    (_S.PENDING_VALIDATION, _A.VALIDATE): _S.COMPLETED,
    (_S.PENDING_VALIDATION, _A.REJECT): _S.EXPIRED,

    (_S.COMPLETED, _A.START): AlreadyCompleted,
    (_S.COMPLETED, _A.SUBMIT): AlreadyCompleted,
    (_S.COMPLETED, _A.VALIDATE): NotPending,
    (_S.COMPLETED, _A.REJECT): NotPending,

    # start/submit after a rejection are governed by the retry policy
    (_S.EXPIRED, _A.VALIDATE): NotPending,
    (_S.EXPIRED, _A.REJECT): NotPending,
}


def opens_new_attempt(current: SubmissionStatus | None, action: Action) -> bool:
    """True when `action` creates a submission row rather than updating one."""
    return action in (Action.START, Action.SUBMIT) and current in (None, SubmissionStatus.EXPIRED)


def transition(current: SubmissionStatus | None, action: Action, *, allow_retry: bool = True) -> SubmissionStatus:
    """Return the status `action` moves `current` to, or raise the matching ProgressionError."""
    if current is SubmissionStatus.EXPIRED and action in (Action.START, Action.SUBMIT):
        if not allow_retry:
            raise AttemptRejected()
        current = None
    outcome = TRANSITIONS[(current, action)]
    if isinstance(outcome, SubmissionStatus):
        return outcome
    raise outcome()
