from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from examhall.core.database import Base

class Exam(Base):
    """Exam definition, owned by the authoring side and read-only for sessions."""
    __tablename__ = "exams"
    __table_args__ = (
        CheckConstraint("available_until > available_from", name="ck_exams_availability_window"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), index=True, nullable=False)
    description = Column(Text, nullable=True)
    available_from = Column(DateTime, nullable=False)
    available_until = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    is_active = Column(Boolean, nullable=False, default=False)
    total_questions = Column(Integer, nullable=False)
    passing_score = Column(Float, nullable=False, default=50.0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    questions = relationship("Question", back_populates="exam", order_by="Question.id")
    student_exams = relationship("StudentExam", back_populates="exam")
