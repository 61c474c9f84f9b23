from typing import List
from sqlalchemy.orm import Session

from examhall.core.exceptions import NotFoundError
from examhall.crud.answer import answer as crud_answer
from examhall.crud.question import question as crud_question
from examhall.crud.result import result as crud_result
from examhall.schemas.exam import ExamSummary
from examhall.schemas.question import QuestionWithCorrectAnswer
from examhall.schemas.result import AnswerDetail, Result, ResultHistoryEntry, StudentResult
from examhall.schemas.student_exam import StudentExam


class ResultService:

    def get_student_result(self, db: Session, *, student_id: int, exam_id: int) -> StudentResult:
        row = crud_result.get_for_student_and_exam(db, student_id=student_id, exam_id=exam_id)
        if not row:
            raise NotFoundError("Result not found for this exam.", reason="result_not_found", context={"exam_id": exam_id})
        result, session, exam = row

        questions = {q.id: q for q in crud_question.get_by_exam(db, exam_id=exam_id)}
        detailed_answers = [
            AnswerDetail(
                question_id=a.question_id,
                chosen_answer=a.chosen_answer,
                is_correct=a.is_correct,
                question=QuestionWithCorrectAnswer.model_validate(questions[a.question_id]),
            )
            for a in crud_answer.get_by_session(db, student_exam_id=session.id)
            if a.question_id in questions
        ]

        return StudentResult(
            result=Result.model_validate(result),
            session=StudentExam.model_validate(session),
            exam=ExamSummary.model_validate(exam),
            passed=result.score >= exam.passing_score,
            detailed_answers=detailed_answers,
        )

    def get_history(self, db: Session, *, student_id: int, skip: int = 0, limit: int = 100) -> List[ResultHistoryEntry]:
        return [
            ResultHistoryEntry(
                result=Result.model_validate(result),
                exam=ExamSummary.model_validate(exam),
                passed=result.score >= exam.passing_score,
            )
            for result, exam in crud_result.get_history_for_student(db, student_id=student_id, skip=skip, limit=limit)
        ]


result_service = ResultService()
