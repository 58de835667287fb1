import logging
import re
import shutil
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from . import config
from .errors import (
    CompilationError,
    ProcessError,
    ProcessTimeoutError,
    UnsupportedLanguageError,
    WorkspaceError,
)
from .runner import run_command

logger = logging.getLogger(__name__)

PUBLIC_CLASS_RE = re.compile(r"public\s+(?:final\s+|abstract\s+)*class\s+([A-Za-z_$][\w$]*)")
# string literals and comments, blanked before looking for the class name
NOISE_RE = re.compile(r''''(?:\\.|[^'\\\n])'|"(?:\\.|[^"\\\n])*"|//[^\n]*|/\*.*?\*/''', re.DOTALL)


@dataclass(frozen=True)
class SourceArtifact:
    work_dir: Path
    source_file: Path
    executable: Optional[Path] = None
    entry_point: Optional[str] = None


class LanguageAdapter:
    """Prepares source code for one language and says how to run it."""

    def __init__(self, name: str, extension: str):
        self.name = name
        self.extension = extension

    def source_name(self, code: str) -> str:
        return "main" + self.extension

    def _write_source(self, code: str) -> SourceArtifact:
        # A fresh directory per preparation keeps concurrent attempts apart
        try:
            work_dir = Path(tempfile.mkdtemp(prefix=f"judge_{self.name}_", dir=str(config.TEMP_DIR)))
        except OSError as e:
            raise WorkspaceError(f"Cannot create work directory in {config.TEMP_DIR}: {e}") from e
        source_file = work_dir / self.source_name(code)
        try:
            source_file.write_text(code, encoding="utf-8")
        except OSError as e:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise WorkspaceError(f"Cannot write {source_file.name}: {e}") from e
        return SourceArtifact(work_dir=work_dir, source_file=source_file)

    async def prepare(self, code: str) -> SourceArtifact:
        return self._write_source(code)

    def run_command(self, artifact: SourceArtifact) -> Tuple[str, List[str]]:
        raise NotImplementedError

    def cleanup(self, artifact: SourceArtifact) -> None:
        shutil.rmtree(artifact.work_dir, ignore_errors=True)

    @asynccontextmanager
    async def prepared(self, code: str):
        """Prepare ``code`` and remove every artifact when the block exits."""
        artifact = await self.prepare(code)
        try:
            yield artifact
        finally:
            self.cleanup(artifact)

    async def _compile(self, artifact: SourceArtifact, command: str, args: List[str]) -> None:
        logger.debug("Compile command: %s %s", command, " ".join(args))
        try:
            await run_command(command, args, timeout_ms=config.COMPILE_TIMEOUT_MS,
                              cwd=str(artifact.work_dir))
        except ProcessError as e:
            self.cleanup(artifact)
            raise CompilationError(e.stderr or str(e)) from e
        except ProcessTimeoutError as e:
            self.cleanup(artifact)
            raise CompilationError("Compilation timeout") from e
        except BaseException:
            self.cleanup(artifact)
            raise


class InterpretedAdapter(LanguageAdapter):
    def __init__(self, name: str, extension: str, interpreter: str):
        super().__init__(name, extension)
        self.interpreter = interpreter

    def run_command(self, artifact):
        return self.interpreter, [str(artifact.source_file)]


class NativeAdapter(LanguageAdapter):
    def __init__(self, name: str, extension: str, compiler: str,
                 args: Optional[List[str]] = None, libs: Optional[List[str]] = None):
        super().__init__(name, extension)
        self.compiler = compiler
        self.args = list(args or [])
        self.libs = list(libs or [])

    async def prepare(self, code):
        artifact = self._write_source(code)
        executable = artifact.work_dir / "main"
        await self._compile(
            artifact,
            self.compiler,
            self.args + [str(artifact.source_file), "-o", str(executable)] + self.libs,
        )
        return SourceArtifact(artifact.work_dir, artifact.source_file, executable=executable)

    def run_command(self, artifact):
        return str(artifact.executable), []


class BytecodeAdapter(LanguageAdapter):
    def __init__(self, name: str, extension: str, compiler: str, runtime: str):
        super().__init__(name, extension)
        self.compiler = compiler
        self.runtime = runtime

    @staticmethod
    def class_name(code: str) -> str:
        # javac insists the file is named after the public class
        match = PUBLIC_CLASS_RE.search(NOISE_RE.sub(" ", code))
        return match.group(1) if match else "Main"

    def source_name(self, code):
        return self.class_name(code) + self.extension

    async def prepare(self, code):
        artifact = self._write_source(code)
        await self._compile(artifact, self.compiler, [str(artifact.source_file)])
        return SourceArtifact(artifact.work_dir, artifact.source_file,
                              entry_point=self.class_name(code))

    def run_command(self, artifact):
        return self.runtime, ["-cp", str(artifact.work_dir), artifact.entry_point]


def build_adapter(name: str, cfg: dict) -> LanguageAdapter:
    kind = cfg["kind"]
    if kind == "interpreted":
        return InterpretedAdapter(name, cfg["extension"], cfg["interpreter"])
    if kind == "native":
        return NativeAdapter(name, cfg["extension"], cfg["compiler"],
                             cfg.get("args"), cfg.get("libs"))
    if kind == "bytecode":
        return BytecodeAdapter(name, cfg["extension"], cfg["compiler"], cfg["runtime"])
    raise ValueError(f"Unknown execution model for {name}: {kind}")


def get_adapter(language) -> LanguageAdapter:
    """Adapter for ``language``, built from the toolchain table."""
    name = getattr(language, "value", language)
    cfg = config.LANGUAGES.get(name)
    if cfg is None:
        raise UnsupportedLanguageError(name)
    return build_adapter(name, cfg)
