import logging
import time
from typing import List, Sequence

from .datatypes import ExecutionLimits, TestCase, TestCaseResult, Verdict, VerdictStatus, settle
from .errors import CompilationError, ProcessError, ProcessTimeoutError, UnsupportedLanguageError
from .languages import LanguageAdapter, SourceArtifact, get_adapter
from .runner import run_command

logger = logging.getLogger(__name__)


class LocalJudge:
    """Compiles and runs a submission on this machine, one test case at a time.

    The first timeout or runtime failure ends the attempt; the cases after it
    are not run.
    """

    def __init__(self, submission_id: int = 0):
        self.submission_id = submission_id

    async def execute(self, code: str, language: str, test_cases: Sequence[TestCase],
                      limits: ExecutionLimits) -> Verdict:
        try:
            adapter = get_adapter(language)
        except UnsupportedLanguageError as e:
            logger.info(f"[Judge #{self.submission_id}] {e}")
            return Verdict(VerdictStatus.RUNTIME_ERROR, error_message=str(e))

        logger.info(f"[Judge #{self.submission_id}] Language: {adapter.name}, "
                    f"{len(test_cases)} test cases, {limits.time_limit_ms}ms")
        try:
            async with adapter.prepared(code) as artifact:
                return await self._run_tests(adapter, artifact, test_cases, limits)
        except CompilationError as e:
            logger.info(f"[Judge #{self.submission_id}] Compile Error: {e.message[:200]}")
            return Verdict(VerdictStatus.COMPILE_ERROR, error_message=e.message)

    async def _run_tests(self, adapter: LanguageAdapter, artifact: SourceArtifact,
                         test_cases: Sequence[TestCase], limits: ExecutionLimits) -> Verdict:
        command, args = adapter.run_command(artifact)
        results: List[TestCaseResult] = []

        for idx, case in enumerate(test_cases, 1):
            start_time = time.perf_counter()
            try:
                result = await run_command(command, args, input=case.input,
                                           timeout_ms=limits.time_limit_ms,
                                           cwd=str(artifact.work_dir))
            except ProcessTimeoutError as e:
                results.append(self._failed(case, start_time))
                logger.info(f"[Judge #{self.submission_id}] Test {idx} TLE")
                return Verdict(VerdictStatus.TIME_LIMIT, tuple(results), str(e))
            except ProcessError as e:
                results.append(self._failed(case, start_time))
                logger.info(f"[Judge #{self.submission_id}] Test {idx} RE, exit code {e.exit_code}")
                return Verdict(VerdictStatus.RUNTIME_ERROR, tuple(results), str(e))

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            actual = result.stdout.strip()
            results.append(TestCaseResult(
                input=case.input,
                expected_output=case.expected_output,
                actual_output=actual,
                passed=actual == case.expected_output.strip(),
                execution_time_ms=round(elapsed_ms, 3),
                # memory is not measured locally
                memory_used_kb=0,
            ))

        verdict = Verdict(settle(results, len(test_cases)), tuple(results))
        logger.info(f"[Judge #{self.submission_id}] Passed "
                    f"{verdict.passed_count}/{len(test_cases)} test cases")
        return verdict

    @staticmethod
    def _failed(case: TestCase, start_time: float) -> TestCaseResult:
        return TestCaseResult(
            input=case.input,
            expected_output=case.expected_output,
            actual_output="",
            passed=False,
            execution_time_ms=round((time.perf_counter() - start_time) * 1000, 3),
        )
