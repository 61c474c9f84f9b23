import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["TESTING"] = "true"

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from examhall.core.config import settings
from examhall.core.constants import RoleEnum
from examhall.core.database import Base, get_db
from examhall.core.security import create_access_token
from examhall.crud.exam import exam as crud_exam
from examhall.crud.question import question as crud_question
from examhall.crud.user import user as crud_user
from examhall.models import registry  # noqa: F401
from examhall.utils import deps as deps_utils
from examhall.utils.exam_timer import utcnow
import main

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"

@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url == "sqlite:///./test.db" and os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        # Services commit their own units of work, so wipe the tables instead of rolling back
        db.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    from importlib import reload
    reload(main)
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client

@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)

@pytest.fixture
def user_factory(db_session):
    def _user_factory(role: RoleEnum = RoleEnum.STUDENT, full_name: str = "Test Student", is_active: bool = True):
        return crud_user.create(db_session, obj_in={
            "email": f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
            "full_name": full_name,
            "role": role.value,
            "is_active": is_active,
        })
    return _user_factory

@pytest.fixture
def student(user_factory):
    return user_factory()

@pytest.fixture
def admin(user_factory):
    return user_factory(role=RoleEnum.ADMIN, full_name="Test Admin")

@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, RoleEnum(user.role))}"}
    return _auth_headers

@pytest.fixture
def exam_factory(db_session, now):
    """Create an active exam whose question i has correct answer correct_answers[i]."""
    def _exam_factory(
        correct_answers=("A", "B", "C", "D"),
        duration: int = 60,
        opens_in: timedelta = timedelta(hours=-1),
        closes_in: timedelta = timedelta(days=2),
        total_questions: int = None,
        is_active: bool = True,
        passing_score: float = 50.0,
    ):
        exam = crud_exam.create(db_session, obj_in={
            "title": f"Exam {uuid.uuid4().hex[:6]}",
            "description": "Test exam",
            "available_from": now + opens_in,
            "available_until": now + closes_in,
            "duration": duration,
            "is_active": is_active,
            "total_questions": len(correct_answers) if total_questions is None else total_questions,
            "passing_score": passing_score,
        })
        for i, letter in enumerate(correct_answers):
            crud_question.create(db_session, obj_in={
                "exam_id": exam.id,
                "question_text": f"Question {i + 1}?",
                "option_a": "Option A",
                "option_b": "Option B",
                "option_c": "Option C",
                "option_d": "Option D",
                "correct_answer": letter,
                "subject": "Mathematics",
                "difficulty": "MEDIUM",
                "explanation": f"The answer is {letter}",
            })
        return exam
    return _exam_factory

@pytest.fixture
def question_ids(db_session):
    def _question_ids(exam):
        return [q.id for q in crud_question.get_by_exam(db_session, exam_id=exam.id)]
    return _question_ids
