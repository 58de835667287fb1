from .datatypes import ExecutionLimits, SupportedLanguage, TestCase, TestCaseResult, Verdict, VerdictStatus
from .errors import (
    CompilationError,
    JudgeError,
    JudgeInfrastructureError,
    ProcessError,
    ProcessTimeoutError,
    RemoteJudgeError,
    SpawnError,
    UnsupportedLanguageError,
    WorkspaceError,
)
from .executor import judge
