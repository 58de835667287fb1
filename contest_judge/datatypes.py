from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Tuple


class VerdictStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    TIME_LIMIT = "time_limit_exceeded"
    MEMORY_LIMIT = "memory_limit_exceeded"
    RUNTIME_ERROR = "runtime_error"
    COMPILE_ERROR = "compilation_error"


class SupportedLanguage(str, Enum):
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "cpp"
    C = "c"


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    input: str
    expected_output: str
    is_hidden: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "TestCase":
        return cls(
            input=data.get("input", ""),
            expected_output=data.get("expected_output", ""),
            is_hidden=bool(data.get("is_hidden", False)),
        )


@dataclass(frozen=True)
class ExecutionLimits:
    time_limit_ms: int = 2000
    memory_limit_mb: int = 128

    def __post_init__(self):
        if self.time_limit_ms <= 0 or self.memory_limit_mb <= 0:
            raise ValueError("Execution limits must be positive")


@dataclass(frozen=True)
class TestCaseResult:
    __test__ = False

    input: str
    expected_output: str
    actual_output: str
    passed: bool
    execution_time_ms: float = 0
    memory_used_kb: int = 0


@dataclass(frozen=True)
class Verdict:
    status: VerdictStatus
    test_results: Tuple[TestCaseResult, ...] = field(default_factory=tuple)
    error_message: Optional[str] = None

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.test_results if r.passed)

    @property
    def execution_time_ms(self) -> float:
        return max((r.execution_time_ms for r in self.test_results), default=0)

    @property
    def memory_used_kb(self) -> int:
        return max((r.memory_used_kb for r in self.test_results), default=0)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "test_results": [asdict(r) for r in self.test_results],
            "passed_count": self.passed_count,
            "execution_time_ms": self.execution_time_ms,
            "memory_used_kb": self.memory_used_kb,
            "error_message": self.error_message,
        }


def settle(results, total: int) -> VerdictStatus:
    """Status for a run that finished without a fatal error."""
    passed = sum(1 for r in results if r.passed)
    if total > 0 and passed == total:
        return VerdictStatus.ACCEPTED
    return VerdictStatus.WRONG_ANSWER
