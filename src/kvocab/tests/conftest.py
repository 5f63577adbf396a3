"""Test configuration."""
import os
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest
from dotenv import load_dotenv
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="kvocab-test-"))

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from kvocab.config import ensure_directories
from kvocab.models.base import init_db
from kvocab.models.quiz_models import VocabularyItem
from kvocab.services.quiz_service import QuizService
from kvocab.services.retry import RetryPolicy
from kvocab.services.vocabulary_service import VocabularyService

fake = Faker()

KOREAN_WORDS = [
    ("사과", "apple", "사과를 먹어요."),
    ("학교", "school", "학교에 가요."),
    ("물", "water", None),
    ("책", "book", "책을 읽어요."),
    ("친구", "friend", None),
    ("고양이", "cat", "고양이가 귀여워요."),
    ("집", "house, home", None),
    ("시간", "time, hour", None),
    ("음식", "food", None),
    ("바다", "sea, ocean", "바다가 넓어요."),
    ("하늘", "sky", None),
    ("나무", "tree", None),
]


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def vocabulary() -> List[VocabularyItem]:
    """Twelve distinct Korean words."""
    return [VocabularyItem(korean=k, english=e, example=x) for k, e, x in KOREAN_WORDS]


@pytest.fixture
def db_engine():
    """In-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def vocabulary_service(db: Session) -> VocabularyService:
    return VocabularyService(db)


@pytest.fixture
def no_wait_retry() -> RetryPolicy:
    """Retry policy that never sleeps."""
    return RetryPolicy(max_attempts=2, sleep=lambda seconds: None)


@pytest.fixture
def quiz_service(vocabulary_service, no_wait_retry) -> QuizService:
    return QuizService(vocabulary_service, retry_policy=no_wait_retry)


@pytest.fixture
def owner_id() -> str:
    return fake.uuid4()
