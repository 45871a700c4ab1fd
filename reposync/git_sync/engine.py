"""Version-control engine interface and its GitPython implementation."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

try:
    from git import Git
    from git.exc import GitCommandNotFound
    HAS_GITPYTHON = True
except ImportError:
    # GitPython refuses to import when it cannot find a git executable
    HAS_GITPYTHON = False

from ..platform import get_git_executable
from .transport import TransportOverride
from .utils import CommandOutcome, combine_output


# Exit status used when the git binary itself cannot be started
COMMAND_NOT_FOUND_STATUS = 127


class VersionControlEngine(ABC):
    """
    The five git primitives the synchronizer needs, plus a presence probe.

    Every primitive returns a CommandOutcome; a non-zero status is the only
    failure signal the synchronizer consults.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the engine can be invoked at all."""

    @abstractmethod
    def clone(self, url: str, branch: str, single_branch: bool, destination: Path,
              transport: TransportOverride) -> CommandOutcome:
        """Clone ``branch`` of ``url`` into ``destination``."""

    @abstractmethod
    def checkout(self, path: Path, branch: str, transport: TransportOverride,
                 start_point: Optional[str] = None, force: bool = False) -> CommandOutcome:
        """Switch ``path`` to ``branch``, creating it from ``start_point`` if given."""

    @abstractmethod
    def fetch(self, path: Path, remote: str, branch: str,
              transport: TransportOverride) -> CommandOutcome:
        """Update the remote-tracking ref ``remote/branch``."""

    @abstractmethod
    def merge(self, path: Path, remote_ref: str, ff_only: bool,
              transport: TransportOverride) -> CommandOutcome:
        """Merge ``remote_ref`` into the current branch."""

    @abstractmethod
    def reset(self, path: Path, remote_ref: str,
              transport: TransportOverride) -> CommandOutcome:
        """Hard-reset the current branch and working tree to ``remote_ref``."""


class GitEngine(VersionControlEngine):
    """Runs the git command line through GitPython's ``Git.execute``."""

    def __init__(self, git_executable: Optional[str] = None):
        self.git_executable = git_executable or get_git_executable()
        self.logger = logging.getLogger('reposync.git_sync.engine')

    def _run(self, args: List[str], operation: str, working_dir: Optional[Path] = None,
             transport: Optional[TransportOverride] = None) -> CommandOutcome:
        command = [self.git_executable] + args
        env = transport.environment() if transport else None

        if not HAS_GITPYTHON:
            return CommandOutcome(
                status=COMMAND_NOT_FOUND_STATUS,
                output="GitPython could not be initialized: git executable not found"
            )

        self.logger.debug(f"Running: {' '.join(command)}", extra={'operation': operation})

        try:
            status, stdout, stderr = Git(str(working_dir) if working_dir else None).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
                env=env
            )
        except GitCommandNotFound as e:
            self.logger.debug(f"Git executable not found: {e}", extra={'operation': operation})
            return CommandOutcome(status=COMMAND_NOT_FOUND_STATUS, output=str(e))

        outcome = CommandOutcome(status=status, output=combine_output(stdout, stderr))
        if not outcome.succeeded:
            self.logger.debug(
                f"git {args[0]} exited with status {status}: {outcome.output}",
                extra={'operation': operation}
            )
        return outcome

    def is_available(self) -> bool:
        outcome = self._run(["--version"], "probe")
        if outcome.succeeded:
            self.logger.debug(f"Found {outcome.output}", extra={'operation': 'probe'})
        return outcome.succeeded

    def clone(self, url: str, branch: str, single_branch: bool, destination: Path,
              transport: TransportOverride) -> CommandOutcome:
        args = ["clone", "--branch", branch]
        if single_branch:
            args.append("--single-branch")
        args += [url, str(destination)]
        return self._run(args, "clone", working_dir=destination.parent, transport=transport)

    def checkout(self, path: Path, branch: str, transport: TransportOverride,
                 start_point: Optional[str] = None, force: bool = False) -> CommandOutcome:
        args = ["checkout"]
        if force:
            args.append("--force")
        if start_point:
            args += ["-b", branch, start_point]
        else:
            args.append(branch)
        return self._run(args, "checkout", working_dir=path, transport=transport)

    def fetch(self, path: Path, remote: str, branch: str,
              transport: TransportOverride) -> CommandOutcome:
        # Explicit refspec: a --single-branch clone only maps its original branch
        refspec = f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}"
        return self._run(["fetch", remote, refspec], "fetch", working_dir=path, transport=transport)

    def merge(self, path: Path, remote_ref: str, ff_only: bool,
              transport: TransportOverride) -> CommandOutcome:
        args = ["merge"]
        if ff_only:
            args.append("--ff-only")
        args.append(remote_ref)
        return self._run(args, "merge", working_dir=path, transport=transport)

    def reset(self, path: Path, remote_ref: str,
              transport: TransportOverride) -> CommandOutcome:
        return self._run(["reset", "--hard", remote_ref], "reset", working_dir=path, transport=transport)
