from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from examhall.core.database import Base

class Result(Base):
    __tablename__ = "results"
    __table_args__ = (
        Index("ix_results_ranking_order", "score", "time_spent"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_exam_id = Column(Integer, ForeignKey("student_exams.id"), nullable=False, unique=True, index=True)
    score = Column(Float, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    rank = Column(Integer, nullable=True)
    time_spent = Column(Integer, nullable=False)
    submitted_at = Column(DateTime, nullable=False)

    student_exam = relationship("StudentExam", back_populates="result")
