"""Request and result types for repository synchronization."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..platform import normalize_path
from .repository_info import RepositoryState


DEFAULT_REMOTE_NAME = "origin"


class SyncAction(Enum):
    """What a successful synchronization did to the working copy."""
    CLONED = "cloned"
    FAST_FORWARDED = "fast-forwarded"
    HARD_RESET = "hard-reset"


@dataclass(frozen=True)
class SyncRequest:
    """
    Parameters of exactly one synchronization run.

    Paths are normalized to absolute form on construction. Whether the
    credential file actually exists is checked by the synchronizer, before
    it touches the filesystem or the network.
    """
    remote_url: str
    branch: str
    target_path: Path
    credential_path: Path
    force: bool = False

    def __post_init__(self):
        if not self.remote_url or not self.remote_url.strip():
            raise ValueError("remote_url must not be empty")
        if not self.branch or not self.branch.strip():
            raise ValueError("branch must not be empty")

        # frozen dataclass: normalized values are written through object.__setattr__
        object.__setattr__(self, "branch", self.branch.strip())
        object.__setattr__(self, "target_path", normalize_path(self.target_path))
        object.__setattr__(self, "credential_path", normalize_path(self.credential_path))

    @property
    def remote_ref(self) -> str:
        """Remote-tracking ref the local branch is advanced to."""
        return f"{DEFAULT_REMOTE_NAME}/{self.branch}"


@dataclass(frozen=True)
class CommandOutcome:
    """Completion status and combined output of one git invocation."""
    status: int
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == 0


@dataclass
class OperationResult:
    """Result of a successful synchronization."""
    success: bool
    action: SyncAction
    message: str
    branch_used: str
    target_path: Path
    initial_state: RepositoryState
    output: str = ""
    details: dict = field(default_factory=dict)


def create_operation_result(
    action: SyncAction,
    request: SyncRequest,
    initial_state: RepositoryState,
    outcome: Optional[CommandOutcome] = None,
    message: Optional[str] = None
) -> OperationResult:
    """
    Build the OperationResult for a finished run.

    Args:
        action: Terminal action of the state machine
        request: Request that was synchronized
        initial_state: Classification of the target before the run
        outcome: Outcome of the last git invocation, if any
        message: Optional override for the human-readable summary

    Returns:
        OperationResult with ``success`` set
    """
    return OperationResult(
        success=True,
        action=action,
        message=message or f"Repository {action.value} at {request.target_path} ({request.branch})",
        branch_used=request.branch,
        target_path=request.target_path,
        initial_state=initial_state,
        output=outcome.output if outcome else "",
    )


def combine_output(stdout: Union[str, bytes, None], stderr: Union[str, bytes, None]) -> str:
    """Join stdout and stderr of a git call into one diagnostic string."""
    parts = []
    for stream in (stdout, stderr):
        if stream is None:
            continue
        if isinstance(stream, bytes):
            stream = stream.decode("utf-8", errors="replace")
        stream = stream.strip()
        if stream:
            parts.append(stream)
    return "\n".join(parts)
