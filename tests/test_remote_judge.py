import asyncio
import base64
import itertools

import pytest
from aiohttp import web
from aiohttp import test_utils

from contest_judge.datatypes import ExecutionLimits, TestCase, VerdictStatus
from contest_judge.errors import RemoteJudgeError
from contest_judge.remote_judge import RemoteJudge


def b64(text):
    return base64.b64encode(text.encode()).decode()


def unb64(text):
    return base64.b64decode(text).decode()


class FakeJudge0:
    """In-process stand-in for the Judge0 submissions API.

    ``program`` maps stdin to stdout; a submission reports "Processing" for
    ``pending_polls`` status checks before its final status.
    """

    def __init__(self, program, pending_polls=0, create_status=201):
        self.program = program
        self.pending_polls = pending_polls
        self.create_status = create_status
        self.created = []
        self.polls = {}
        self.keys = []
        self._tokens = itertools.count(1)

    def app(self):
        app = web.Application()
        app.router.add_post("/submissions", self.create)
        app.router.add_get("/submissions/{token}", self.fetch)
        return app

    async def create(self, request):
        self.keys.append(request.headers.get("X-RapidAPI-Key"))
        assert request.query.get("base64_encoded") == "true"
        if self.create_status != 201:
            return web.json_response({"error": "quota exceeded"}, status=self.create_status)
        body = await request.json()
        token = f"tok-{next(self._tokens)}"
        self.created.append((token, body))
        self.polls[token] = 0
        return web.json_response({"token": token}, status=201)

    async def fetch(self, request):
        token = request.match_info["token"]
        self.polls[token] += 1
        if self.polls[token] <= self.pending_polls:
            return web.json_response({"status": {"id": 2, "description": "Processing"}})
        body = dict(self.created)[token]
        stdout = self.program(unb64(body["stdin"]))
        accepted = stdout.strip() == unb64(body["expected_output"]).strip()
        status = {"id": 3, "description": "Accepted"} if accepted else \
            {"id": 4, "description": "Wrong Answer"}
        return web.json_response({
            "stdout": b64(stdout),
            "time": "0.015",
            "memory": 3100 + len(stdout),
            "status": status,
        })


def run_remote(fake, cases, language="python", max_polls=5, app=None):
    async def go():
        server = test_utils.TestServer(app or fake.app())
        await server.start_server()
        try:
            judge = RemoteJudge("secret", base_url=str(server.make_url("/")),
                                poll_interval=0, max_polls=max_polls)
            return await judge.execute("print(input())", language, cases, ExecutionLimits(2000, 128))
        finally:
            await server.close()

    return asyncio.run(go())


def test_all_cases_accepted():
    fake = FakeJudge0(lambda stdin: stdin + "\n", pending_polls=2)
    verdict = run_remote(fake, [TestCase("a", "a"), TestCase("bb", "bb")])

    assert verdict.status == VerdictStatus.ACCEPTED
    assert verdict.passed_count == 2
    assert verdict.test_results[1].actual_output == "bb\n"
    assert verdict.execution_time_ms == 15
    assert verdict.memory_used_kb == 3100 + len("bb\n")
    assert verdict.error_message is None


def test_request_carries_key_and_encoded_payload():
    fake = FakeJudge0(lambda stdin: stdin)
    run_remote(fake, [TestCase("1 2", "3")])

    token, body = fake.created[0]
    assert fake.keys[0] == "secret"
    assert body["language_id"] == 71
    assert unb64(body["source_code"]) == "print(input())"
    assert unb64(body["stdin"]) == "1 2"
    assert unb64(body["expected_output"]) == "3"
    assert body["cpu_time_limit"] == 2.0
    assert body["memory_limit"] == 128 * 1024


def test_failed_case_does_not_stop_the_run():
    fake = FakeJudge0(lambda stdin: "x")
    cases = [TestCase("1", "x"), TestCase("2", "y"), TestCase("3", "x")]
    verdict = run_remote(fake, cases)

    assert len(fake.created) == 3
    assert len(verdict.test_results) == 3
    assert verdict.passed_count == 2
    assert verdict.status == VerdictStatus.WRONG_ANSWER
    assert verdict.error_message == "Test 2: Wrong Answer"


def test_exhausted_poll_budget_fails_only_that_case():
    fake = FakeJudge0(lambda stdin: stdin, pending_polls=10)
    verdict = run_remote(fake, [TestCase("1", "1")], max_polls=3)

    assert fake.polls["tok-1"] == 3
    assert verdict.status == VerdictStatus.WRONG_ANSWER
    assert verdict.test_results[0].passed is False
    assert verdict.test_results[0].actual_output == ""


def test_unknown_language_sends_nothing():
    fake = FakeJudge0(lambda stdin: stdin)
    verdict = run_remote(fake, [TestCase("1", "1")], language="ruby")

    assert fake.created == []
    assert verdict.status == VerdictStatus.RUNTIME_ERROR
    assert "ruby" in verdict.error_message


def test_http_error_raises_remote_judge_error():
    fake = FakeJudge0(lambda stdin: stdin, create_status=429)
    with pytest.raises(RemoteJudgeError, match="429"):
        run_remote(fake, [TestCase("1", "1")])


def test_missing_token_is_malformed():
    app = web.Application()

    async def create(request):
        return web.json_response({"nope": True}, status=201)

    app.router.add_post("/submissions", create)
    with pytest.raises(RemoteJudgeError, match="token"):
        run_remote(None, [TestCase("1", "1")], app=app)


def test_status_without_id_is_malformed():
    app = web.Application()

    async def create(request):
        return web.json_response({"token": "t"}, status=201)

    async def fetch(request):
        return web.json_response({"stdout": None})

    app.router.add_post("/submissions", create)
    app.router.add_get("/submissions/{token}", fetch)
    with pytest.raises(RemoteJudgeError, match="no status"):
        run_remote(None, [TestCase("1", "1")], app=app)


def test_unreachable_service_raises_remote_judge_error():
    async def go():
        judge = RemoteJudge("secret", base_url="http://127.0.0.1:9", poll_interval=0)
        return await judge.execute("x", "python", [TestCase("", "")], ExecutionLimits())

    with pytest.raises(RemoteJudgeError):
        asyncio.run(go())
