from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from examhall.core.database import Base

class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("student_exam_id", "question_id", name="uq_answers_session_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_exam_id = Column(Integer, ForeignKey("student_exams.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    chosen_answer = Column(String(1), nullable=False)
    is_correct = Column(Boolean, nullable=True)  # populated at scoring time

    student_exam = relationship("StudentExam", back_populates="answers")
    question = relationship("Question", back_populates="answers")
