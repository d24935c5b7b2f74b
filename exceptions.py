"""
Custom exception hierarchy for ct-runner.

Every fatal condition of a run is raised as one of these and surfaced to
the user by the CLI as a message plus a non-zero exit status.
"""


class CtRunnerError(Exception):
    """Base exception for all ct-runner errors."""
    pass


class UsageError(CtRunnerError):
    """Raised when the command line contains an unknown or malformed flag."""
    pass


class ConfigurationError(CtRunnerError):
    """Raised when there's an issue with the project configuration."""
    pass


class ToolNotFoundError(CtRunnerError):
    """Raised when an external Erlang tool is not installed or not in PATH."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(
            f"'{tool}' not found. "
            "Please install Erlang/OTP and make sure its bin directory is in PATH"
        )


class CompileError(CtRunnerError):
    """Raised when compiling sources or test suites fails."""

    def __init__(self, output: str):
        self.output = output
        super().__init__(f"Compilation failed:\n{output}")


class LogDirError(CtRunnerError):
    """Raised when the log directory cannot be created."""

    def __init__(self, log_dir: str, cwd: str, error: str):
        self.log_dir = log_dir
        self.error = error
        super().__init__(f"Error creating log dir {log_dir} from {cwd}: {error}")


class FixtureCopyError(CtRunnerError):
    """Raised when copying a suite's data directory fails for any reason
    other than the directory being absent."""

    def __init__(self, suite: str, error: str):
        self.suite = suite
        self.error = error
        super().__init__(f"Error copying data dir for {suite}: {error}")


class EngineFailure(CtRunnerError):
    """Raised when the test engine ran and reported failing test cases."""

    def __init__(self, failed: int = None):
        self.failed = failed
        if failed:
            super().__init__(f"ct failed: {failed} test case(s) failed")
        else:
            super().__init__("ct failed")


class EngineRunError(CtRunnerError):
    """Raised when the test engine itself errored, as opposed to tests failing."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"ct engine error: {detail}")


class CoverError(CtRunnerError):
    """Raised when the coverage report cannot be produced."""
    pass
