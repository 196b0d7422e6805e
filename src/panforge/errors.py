"""Exception hierarchy for panforge."""


class PanforgeError(Exception):
    """Base exception for all panforge errors."""


class ConfigError(PanforgeError):
    """Invalid or missing configuration (front matter or default config)."""


class PathResolutionError(PanforgeError):
    """An output path could not be made absolute."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to resolve output file path {path}: {reason}")
        self.path = path
        self.reason = reason


class ExternalToolError(PanforgeError):
    """An external subprocess (pandoc, a PDF engine, etc.) failed."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr


class RunCancelled(PanforgeError):
    """The run was cancelled before this job could finish."""
