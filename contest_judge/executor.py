import logging
from typing import Iterable, Optional

from . import config
from .datatypes import ExecutionLimits, TestCase, Verdict
from .local_judge import LocalJudge
from .remote_judge import RemoteJudge

logger = logging.getLogger(__name__)


async def judge(code: str, language: str, test_cases: Iterable[TestCase],
                time_limit_ms: int = None, memory_limit_mb: int = None,
                api_key: Optional[str] = None, submission_id: int = 0) -> Verdict:
    """Judge ``code`` against every test case and return the verdict.

    Wrong answers, timeouts, compile and runtime errors are verdict
    statuses. Only infrastructure failures (a toolchain that cannot be
    started, an unreachable or misbehaving remote judge) raise, as
    ``JudgeInfrastructureError``.

    The remote judge is used whenever an API key is configured; there is no
    fallback to local execution if it fails.
    """
    limits = ExecutionLimits(
        time_limit_ms or config.DEFAULT_TIME_LIMIT,
        memory_limit_mb or config.DEFAULT_MEMORY_LIMIT,
    )
    cases = [c if isinstance(c, TestCase) else TestCase.from_dict(c) for c in test_cases]

    if api_key is None:
        api_key = config.JUDGE0_API_KEY
    if api_key:
        backend = RemoteJudge(api_key, submission_id=submission_id)
    else:
        backend = LocalJudge(submission_id=submission_id)
    logger.debug("Judging with %s", type(backend).__name__)

    return await backend.execute(code, language, cases, limits)
