import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from . import config
from .datatypes import VerdictStatus
from .errors import JudgeInfrastructureError
from .executor import judge
from .log import configure_logging
from .models import init_db, get_session, async_session, engine, Problem, Submission
from .schemas import ProblemIn, SubmissionIn

logger = logging.getLogger(__name__)

app = FastAPI(title="Contest Judge")

# Semaphore for concurrent judge limit
judge_semaphore = asyncio.Semaphore(config.MAX_CONCURRENT_JUDGES)


@app.on_event("startup")
async def startup():
    configure_logging()
    config.init_temp_dir()
    await init_db()


@app.on_event("shutdown")
async def shutdown():
    await engine.dispose()


def _problem_view(problem: Problem) -> dict:
    cases = problem.test_cases or []
    return {
        "id": problem.id,
        "title": problem.title,
        "time_limit": problem.time_limit,
        "memory_limit": problem.memory_limit,
        "points": problem.points,
        "test_case_count": len(cases),
        "test_cases": [c for c in cases if not c.get("is_hidden")],
        "solved_count": problem.solved_count,
        "total_attempts": problem.total_attempts,
    }


# ===== Problem APIs =====

@app.post("/api/problems")
async def create_problem(body: ProblemIn, session: AsyncSession = Depends(get_session)):
    """Create or replace a problem with its test cases"""
    test_cases = [c.model_dump() for c in body.test_cases]

    # Upsert
    problem = await session.get(Problem, body.id)
    if problem is None:
        problem = Problem(id=body.id, solved_count=0, total_attempts=0)
        session.add(problem)
    problem.title = body.title
    problem.time_limit = body.time_limit
    problem.memory_limit = body.memory_limit
    problem.points = body.points
    problem.test_cases = test_cases

    await session.commit()
    return {"success": True, "problem_id": body.id, "test_case_count": len(test_cases)}


@app.get("/api/problems")
async def list_problems(session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(Problem).order_by(Problem.id))
    return [_problem_view(p) for p in result.scalars().all()]


@app.get("/api/problems/{problem_id}")
async def get_problem(problem_id: str, session: AsyncSession = Depends(get_session)):
    """Problem details; hidden test cases are left out"""
    problem = await session.get(Problem, problem_id)
    if not problem:
        raise HTTPException(404, "Problem not found")
    return _problem_view(problem)


# ===== Submission APIs =====

@app.post("/api/submit")
async def submit(body: SubmissionIn, background_tasks: BackgroundTasks,
                 session: AsyncSession = Depends(get_session)):
    """Submit code for judging"""
    problem = await session.get(Problem, body.problem_id)
    if not problem:
        raise HTTPException(404, "Problem not found")
    if body.language.value not in config.LANGUAGES:
        raise HTTPException(400, f"Unsupported language. Available: {list(config.LANGUAGES)}")

    submission = Submission(
        problem_id=problem.id,
        user_id=body.user_id or "",
        code=body.code,
        language=body.language.value,
        status=VerdictStatus.PENDING.value,
        total_test_cases=len(problem.test_cases or []),
    )
    session.add(submission)
    await session.commit()
    await session.refresh(submission)

    # Start judging in background
    background_tasks.add_task(judge_submission, submission.id)

    return {"submission_id": submission.id, "status": submission.status}


async def judge_submission(submission_id: int):
    """Background task: judge a stored submission and record the verdict"""
    async with judge_semaphore:
        async with async_session() as session:
            submission = await session.get(Submission, submission_id)
            if submission is None:
                logger.warning(f"[Judge #{submission_id}] Submission vanished before judging")
                return
            problem = await session.get(Problem, submission.problem_id)
            if problem is None:
                logger.warning(f"[Judge #{submission_id}] Problem {submission.problem_id} not found")
                submission.status = VerdictStatus.RUNTIME_ERROR.value
                submission.error_message = f"Problem {submission.problem_id} not found"
                await session.commit()
                return

            try:
                verdict = await judge(
                    submission.code,
                    submission.language,
                    problem.test_cases or [],
                    problem.time_limit,
                    problem.memory_limit,
                    submission_id=submission_id,
                )
            except JudgeInfrastructureError as e:
                logger.error(f"[Judge #{submission_id}] Execution failed: {e}")
                await _record_failure(session, submission, problem, str(e))
                return
            except Exception as e:
                logger.exception(f"[Judge #{submission_id}] Unexpected judging failure")
                await _record_failure(session, submission, problem, f"{type(e).__name__}: {e}")
                return

            submission.status = verdict.status.value
            submission.test_results = verdict.to_dict()["test_results"]
            submission.passed_test_cases = verdict.passed_count
            submission.execution_time = verdict.execution_time_ms
            submission.memory_used = verdict.memory_used_kb
            submission.error_message = verdict.error_message

            problem.total_attempts = (problem.total_attempts or 0) + 1
            if verdict.status == VerdictStatus.ACCEPTED:
                submission.points = problem.points
                problem.solved_count = (problem.solved_count or 0) + 1

            await session.commit()
            logger.info(f"[Judge #{submission_id}] Result: {verdict.status.value}, "
                        f"Time: {verdict.execution_time_ms}ms, "
                        f"Passed: {verdict.passed_count}/{submission.total_test_cases}")


async def _record_failure(session, submission: Submission, problem: Problem, message: str):
    submission.status = VerdictStatus.RUNTIME_ERROR.value
    submission.error_message = message
    problem.total_attempts = (problem.total_attempts or 0) + 1
    await session.commit()


def _submission_view(submission: Submission) -> dict:
    return {
        "id": submission.id,
        "problem_id": submission.problem_id,
        "user_id": submission.user_id,
        "language": submission.language,
        "status": submission.status,
        "passed_test_cases": submission.passed_test_cases,
        "total_test_cases": submission.total_test_cases,
        "execution_time": submission.execution_time,
        "memory_used": submission.memory_used,
        "points": submission.points,
        "error_message": submission.error_message,
        "created_at": submission.created_at.isoformat(),
    }


@app.get("/api/submissions/{submission_id}")
async def get_submission(submission_id: int, session: AsyncSession = Depends(get_session)):
    """Get submission status and result"""
    submission = await session.get(Submission, submission_id)
    if not submission:
        raise HTTPException(404, "Submission not found")

    view = _submission_view(submission)
    view["test_results"] = submission.test_results or []
    return view


@app.get("/api/submissions")
async def list_submissions(
    problem_id: Optional[str] = None,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    session: AsyncSession = Depends(get_session)
):
    """List recent submissions"""
    query = select(Submission).order_by(Submission.id.desc()).limit(limit)
    if problem_id:
        query = query.where(Submission.problem_id == problem_id)
    if user_id:
        query = query.where(Submission.user_id == user_id)
    if status:
        query = query.where(Submission.status == status)

    result = await session.execute(query)
    return [_submission_view(s) for s in result.scalars().all()]


# ===== Config APIs =====

@app.get("/api/languages")
async def get_languages():
    """Languages the judge accepts and how they run"""
    return {lang: {"kind": cfg["kind"], "extension": cfg["extension"]}
            for lang, cfg in config.LANGUAGES.items()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
