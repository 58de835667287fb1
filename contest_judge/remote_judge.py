"""
Remote judge client for a Judge0-compatible HTTP API.

Each test case becomes one remote submission which is polled until the
service reports a final status or the poll budget runs out.
"""
import asyncio
import base64
import logging
from typing import List, Optional, Sequence

import aiohttp

from . import config
from .datatypes import ExecutionLimits, TestCase, TestCaseResult, Verdict, VerdictStatus, settle
from .errors import RemoteJudgeError, UnsupportedLanguageError

logger = logging.getLogger(__name__)

LANGUAGE_IDS = {
    "javascript": 63,
    "python": 71,
    "java": 62,
    "cpp": 54,
    "c": 50,
}

# Judge0 status ids: 1 In Queue, 2 Processing, 3 Accepted, everything above is final
STATUS_PROCESSING = 2
STATUS_ACCEPTED = 3

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=30)


def _encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _decode(text: Optional[str]) -> str:
    if not text:
        return ""
    try:
        return base64.b64decode(text).decode("utf-8", errors="replace")
    except ValueError as e:
        raise RemoteJudgeError(f"Malformed base64 in remote response: {e}") from e


class RemoteJudge:
    def __init__(self, api_key: str, base_url: str = None, host: str = None,
                 poll_interval: float = None, max_polls: int = None, submission_id: int = 0):
        """
        Args:
            api_key: remote judge credential
            base_url: service address, defaults to JUDGE0_URL
            poll_interval: seconds between status checks
            max_polls: status checks per test case before giving up on it
        """
        self.api_key = api_key
        self.base_url = (base_url or config.JUDGE0_URL).rstrip("/")
        self.host = host or config.JUDGE0_HOST
        self.poll_interval = config.JUDGE0_POLL_INTERVAL if poll_interval is None else poll_interval
        self.max_polls = config.JUDGE0_MAX_POLLS if max_polls is None else max_polls
        self.submission_id = submission_id

    @property
    def headers(self) -> dict:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.host,
        }

    async def execute(self, code: str, language: str, test_cases: Sequence[TestCase],
                      limits: ExecutionLimits) -> Verdict:
        name = getattr(language, "value", language)
        language_id = LANGUAGE_IDS.get(name)
        if language_id is None:
            return Verdict(VerdictStatus.RUNTIME_ERROR,
                           error_message=str(UnsupportedLanguageError(name)))

        results: List[TestCaseResult] = []
        first_failure = None
        try:
            async with aiohttp.ClientSession(headers=self.headers, timeout=REQUEST_TIMEOUT) as session:
                for idx, case in enumerate(test_cases, 1):
                    result, description = await self._judge_case(session, code, language_id,
                                                                 case, limits)
                    results.append(result)
                    if not result.passed and first_failure is None:
                        first_failure = f"Test {idx}: {description}"
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteJudgeError(f"Remote judge request failed: {e}") from e

        status = settle(results, len(test_cases))
        logger.info(f"[Judge #{self.submission_id}] Remote verdict {status.value}, "
                    f"{sum(r.passed for r in results)}/{len(test_cases)} passed")
        return Verdict(status, tuple(results), first_failure)

    async def _judge_case(self, session: aiohttp.ClientSession, code: str, language_id: int,
                          case: TestCase, limits: ExecutionLimits):
        token = await self._create_submission(session, code, language_id, case, limits)

        result = None
        for _ in range(self.max_polls):
            await asyncio.sleep(self.poll_interval)
            result = await self._fetch_submission(session, token)
            if result["status"]["id"] > STATUS_PROCESSING:
                break
        else:
            logger.warning(f"[Judge #{self.submission_id}] Remote submission {token} "
                           f"still pending after {self.max_polls} polls")
            return TestCaseResult(
                input=case.input,
                expected_output=case.expected_output,
                actual_output="",
                passed=False,
            ), "Polling budget exhausted"

        try:
            execution_time_ms = float(result.get("time") or 0) * 1000
            memory_used_kb = int(result.get("memory") or 0)
        except (TypeError, ValueError) as e:
            raise RemoteJudgeError(f"Malformed remote response: {e}") from e

        return TestCaseResult(
            input=case.input,
            expected_output=case.expected_output,
            actual_output=_decode(result.get("stdout")),
            passed=result["status"]["id"] == STATUS_ACCEPTED,
            execution_time_ms=round(execution_time_ms, 3),
            memory_used_kb=memory_used_kb,
        ), result["status"].get("description", "")

    async def _create_submission(self, session, code, language_id, case, limits) -> str:
        payload = {
            "source_code": _encode(code),
            "language_id": language_id,
            "stdin": _encode(case.input),
            "expected_output": _encode(case.expected_output),
            "cpu_time_limit": limits.time_limit_ms / 1000.0,
            "memory_limit": limits.memory_limit_mb * 1024,
        }
        body = await self._request(session, "POST", "/submissions", json=payload)
        token = body.get("token")
        if not token:
            raise RemoteJudgeError("Remote judge did not return a submission token")
        return token

    async def _fetch_submission(self, session, token) -> dict:
        body = await self._request(session, "GET", f"/submissions/{token}")
        status = body.get("status")
        if not isinstance(status, dict) or not isinstance(status.get("id"), int):
            raise RemoteJudgeError(f"Remote submission {token} has no status")
        return body

    async def _request(self, session, method, path, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        async with session.request(method, url, params={"base64_encoded": "true"},
                                   **kwargs) as response:
            if response.status // 100 != 2:
                text = await response.text()
                raise RemoteJudgeError(f"{method} {path} returned {response.status}: {text[:200]}")
            try:
                body = await response.json(content_type=None)
            except ValueError as e:
                raise RemoteJudgeError(f"Malformed remote response: {e}") from e
        if not isinstance(body, dict):
            raise RemoteJudgeError("Malformed remote response: expected an object")
        return body
