"""Error taxonomy for a reflens run.

Every failure the orchestrator can see is one of these classes. Each carries
the structured data a caller needs to decide between abort, retry and
degrade, so nothing downstream has to parse a message string.

Fatal:       PlatformUnsupportedError, AssetResolutionError, RefResolutionError,
             CheckoutError (during setup), AnalysisExecutionError,
             DiffExecutionError (json only), MissingComparisonContextError
Recoverable: PublishError, UploadError, DiffExecutionError (html / markdown),
             CheckoutError (during the final restore)
"""

from __future__ import annotations


class ReflensError(Exception):
    """Base class for all reflens failures."""


class PlatformUnsupportedError(ReflensError):
    def __init__(self, system: str, machine: str):
        self.system = system
        self.machine = machine
        super().__init__(f"Unsupported platform: {system} {machine}")


class AssetResolutionError(ReflensError):
    def __init__(self, asset_name: str, version: str, detail: str = "Release asset not found"):
        self.asset_name = asset_name
        self.version = version
        super().__init__(f"{detail}: {asset_name}")


class RefResolutionError(ReflensError):
    def __init__(self, repo_root: str, detail: str):
        self.repo_root = repo_root
        self.detail = detail
        super().__init__(f"Could not read current revision in {repo_root}: {detail}")


class CheckoutError(ReflensError):
    def __init__(self, revision: str, returncode: int | None, stderr: str = ""):
        self.revision = revision
        self.returncode = returncode
        self.stderr = stderr
        msg = f"git checkout {revision} failed"
        if returncode is not None:
            msg += f" (exit code {returncode})"
        if stderr:
            msg += f": {stderr}"
        super().__init__(msg)


class AnalysisExecutionError(ReflensError):
    def __init__(self, command: list[str], returncode: int | None, detail: str = ""):
        self.command = list(command)
        self.returncode = returncode
        if returncode is None:
            msg = f"Could not execute {command[0]}: {detail}"
        else:
            msg = f"Command failed with exit code {returncode}: {' '.join(command)}"
        super().__init__(msg)


class DiffExecutionError(ReflensError):
    def __init__(self, fmt: str, returncode: int | None, detail: str = ""):
        self.format = fmt
        self.returncode = returncode
        msg = f"{fmt} diff report failed"
        if returncode is not None:
            msg += f" with exit code {returncode}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class PublishError(ReflensError):
    def __init__(self, status: int | None, message: str):
        self.status = status
        self.message = message
        prefix = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"{prefix}{message}")


class UploadError(ReflensError):
    def __init__(self, artifact_name: str, detail: str):
        self.artifact_name = artifact_name
        self.detail = detail
        super().__init__(f"Upload of {artifact_name} failed: {detail}")


class MissingComparisonContextError(ReflensError):
    def __init__(self, event_name: str | None):
        self.event_name = event_name
        super().__init__("Pull request payload not found.")
