class JudgeError(Exception):
    pass


class UnsupportedLanguageError(JudgeError):
    def __init__(self, language):
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class CompilationError(JudgeError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProcessTimeoutError(JudgeError, TimeoutError):
    def __init__(self, timeout_ms: int):
        super().__init__(f"Time limit exceeded ({timeout_ms}ms)")
        self.timeout_ms = timeout_ms


class ProcessError(JudgeError):
    def __init__(self, stderr: str, exit_code: int):
        super().__init__(stderr or f"Process exited with code {exit_code}")
        self.stderr = stderr
        self.exit_code = exit_code


class JudgeInfrastructureError(JudgeError):
    """Failures that cannot be expressed as a verdict."""


class SpawnError(JudgeInfrastructureError):
    pass


class RemoteJudgeError(JudgeInfrastructureError):
    pass


class WorkspaceError(JudgeInfrastructureError):
    pass
