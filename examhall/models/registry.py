# Import every model so relationship() targets resolve and Base.metadata is complete.
from examhall.core.database import Base  # noqa: F401
from examhall.models.user import User  # noqa: F401
from examhall.models.exam import Exam  # noqa: F401
from examhall.models.question import Question  # noqa: F401
from examhall.models.student_exam import StudentExam  # noqa: F401
from examhall.models.answer import Answer  # noqa: F401
from examhall.models.result import Result  # noqa: F401
