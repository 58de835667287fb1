from pydantic import BaseModel, Field
from typing import List, Optional

from . import config
from .datatypes import SupportedLanguage


class TestCaseIn(BaseModel):
    input: str = ""
    expected_output: str
    is_hidden: bool = False


class ProblemIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    title: str = ""
    time_limit: int = Field(config.DEFAULT_TIME_LIMIT, gt=0)  # ms
    memory_limit: int = Field(config.DEFAULT_MEMORY_LIMIT, gt=0)  # MB
    points: int = Field(100, ge=0)
    test_cases: List[TestCaseIn]


class SubmissionIn(BaseModel):
    problem_id: str
    code: str = Field(..., min_length=1)
    language: SupportedLanguage
    user_id: Optional[str] = ""
