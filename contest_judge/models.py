from sqlalchemy import Column, Integer, String, Text, Float, DateTime, JSON
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from datetime import datetime

from . import config
from .datatypes import VerdictStatus

engine = create_async_engine(config.DATABASE_URL, echo=False)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


class Problem(Base):
    __tablename__ = "problems"

    id = Column(String(64), primary_key=True)
    title = Column(String(256), default="")
    time_limit = Column(Integer, default=config.DEFAULT_TIME_LIMIT)  # ms
    memory_limit = Column(Integer, default=config.DEFAULT_MEMORY_LIMIT)  # MB
    points = Column(Integer, default=100)
    test_cases = Column(JSON, default=list)  # [{input, expected_output, is_hidden}]
    solved_count = Column(Integer, default=0)
    total_attempts = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    problem_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), default="", index=True)
    code = Column(Text, nullable=False)
    language = Column(String(16), nullable=False)
    status = Column(String(32), default=VerdictStatus.PENDING.value, index=True)
    test_results = Column(JSON, default=list)
    total_test_cases = Column(Integer, default=0)
    passed_test_cases = Column(Integer, default=0)
    execution_time = Column(Float, default=0)  # ms
    memory_used = Column(Integer, default=0)  # KB
    points = Column(Integer, default=0)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


async def init_db():
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session():
    async with async_session() as session:
        yield session
