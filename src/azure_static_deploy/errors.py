"""Error kinds raised by a deployment run. All of them end the run."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class DeployError(Exception):
    """Base deployment error."""

    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


@dataclass
class InputError(DeployError):
    """An input was missing or could not be parsed."""

    pass


@dataclass
class MissingIndexFile(DeployError):
    pass


@dataclass
class InvalidPatternFormat(DeployError):
    pass


@dataclass
class InvalidSasUrl(DeployError):
    pass


@dataclass
class ImmutableCopyFailed(DeployError):
    exit_code: Optional[int] = None


@dataclass
class DeploymentFailed(DeployError):
    failed_files: Optional[list] = None


@dataclass
class CleanupFailed(DeployError):
    exit_code: Optional[int] = None
