from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from examhall.core.database import Base

class StudentExam(Base):
    """One student's single attempt at one exam.

    The (student_id, exam_id) pair is unique whether or not the attempt was
    submitted: a completed exam cannot be started again.
    """
    __tablename__ = "student_exams"
    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_student_exams_student_exam"),
        Index("ix_student_exams_open", "submitted_at", "exam_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    time_spent = Column(Integer, nullable=True)  # minutes, set at submission
    last_activity_at = Column(DateTime, nullable=False)

    student = relationship("User", back_populates="student_exams")
    exam = relationship("Exam", back_populates="student_exams")
    answers = relationship("Answer", back_populates="student_exam", cascade="all, delete-orphan")
    result = relationship("Result", back_populates="student_exam", uselist=False)
