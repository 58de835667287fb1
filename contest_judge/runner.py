import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from . import config
from .errors import ProcessError, ProcessTimeoutError, SpawnError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int


class _OutputTooLarge(Exception):
    pass


def _decode(raw: Optional[bytes]) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> bytes:
    chunks = []
    size = 0
    while True:
        chunk = await stream.read(CHUNK_SIZE)
        if not chunk:
            return b"".join(chunks)
        size += len(chunk)
        if size > limit:
            raise _OutputTooLarge()
        chunks.append(chunk)


async def _feed(process, payload: bytes) -> None:
    try:
        if payload:
            process.stdin.write(payload)
            await process.stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        # the program exited without reading its input
        pass
    finally:
        process.stdin.close()


async def _kill(process) -> None:
    # The process may have exited between the check and the kill
    try:
        process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


async def run_command(command: str, args: Sequence[str] = (), input: Optional[str] = None,
                      timeout_ms: int = 2000, cwd: Optional[str] = None,
                      output_limit: Optional[int] = None) -> CommandResult:
    """Run one process to completion.

    ``input`` is written to stdin, which is then closed so the program sees
    EOF. A process still alive after ``timeout_ms`` is killed and reaped
    before ``ProcessTimeoutError`` is raised. A non-zero exit, or more than
    ``output_limit`` bytes on stdout or stderr, raises ``ProcessError``;
    failing to start the executable raises ``SpawnError``.
    """
    if output_limit is None:
        output_limit = config.OUTPUT_LIMIT
    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        raise SpawnError(f"Cannot start {command}: {e}") from e

    payload = input.encode("utf-8") if input else b""
    tasks = [
        asyncio.ensure_future(_read_capped(process.stdout, output_limit)),
        asyncio.ensure_future(_read_capped(process.stderr, output_limit)),
        asyncio.ensure_future(_feed(process, payload)),
        asyncio.ensure_future(process.wait()),
    ]
    try:
        stdout, stderr, _, _ = await asyncio.wait_for(
            asyncio.gather(*tasks),
            timeout=timeout_ms / 1000.0,
        )
    except asyncio.TimeoutError:
        await _kill(process)
        logger.debug("Killed %s after %dms", command, timeout_ms)
        raise ProcessTimeoutError(timeout_ms)
    except _OutputTooLarge:
        await _kill(process)
        logger.debug("Killed %s for writing more than %d bytes", command, output_limit)
        raise ProcessError(f"Output too large (limit: {output_limit} bytes)", process.returncode)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    result = CommandResult(_decode(stdout), _decode(stderr), process.returncode)
    if result.exit_code != 0:
        raise ProcessError(result.stderr, result.exit_code)
    return result
