from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from examhall.core.database import Base
from examhall.core.constants import DifficultyEnum

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    option_a = Column(String(500), nullable=False)
    option_b = Column(String(500), nullable=False)
    option_c = Column(String(500), nullable=False)
    option_d = Column(String(500), nullable=False)
    correct_answer = Column(String(1), nullable=False)  # one of A-D
    subject = Column(String(255), nullable=False)
    difficulty = Column(String(50), nullable=False, default=DifficultyEnum.MEDIUM.value)
    explanation = Column(Text, nullable=True)

    exam = relationship("Exam", back_populates="questions")
    answers = relationship("Answer", back_populates="question")
