from enum import Enum


class RoleEnum(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"

class AnswerLetterEnum(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"

class DifficultyEnum(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"

class StartOutcomeEnum(str, Enum):
    CREATED = "created"
    RESUMED = "resumed"
    REJECTED = "rejected"

class SubmissionActionEnum(str, Enum):
    FIRST_SUBMISSION = "first_submission"
    RESUBMITTED_NO_CHANGES = "resubmitted_no_changes"
    RESUBMITTED_WITH_CHANGES = "resubmitted_with_changes"
    ALREADY_SUBMITTED = "already_submitted"
    AUTO_SUBMITTED = "auto_submitted"

class AutoSubmitReasonEnum(str, Enum):
    TIME_EXPIRED = "time_expired"
    DEADLINE_PASSED = "deadline_passed"
    ABANDONED = "abandoned"

class SweepActionEnum(str, Enum):
    AUTO_SUBMITTED = "auto_submitted"
    DELETED_EMPTY = "deleted_empty"
    FAILED = "failed"

EXAM_SUBMITTED_EVENT = "exam_submitted"
