"""Idempotent clone-or-update of a working copy against its remote."""

import logging
import os
from typing import Optional

from ..errors import PreconditionError, TransportError, DivergenceError
from .engine import VersionControlEngine, GitEngine
from .repository_info import RepositoryState, classify_repository
from .transport import TransportOverride
from .utils import (
    DEFAULT_REMOTE_NAME,
    CommandOutcome,
    OperationResult,
    SyncAction,
    SyncRequest,
    create_operation_result,
)


class Synchronizer:
    """
    Brings a local directory in line with one branch of a remote repository.

    The decision logic is:

    1. Git must be invocable and the deploy key readable; otherwise nothing
       is touched.
    2. The target directory is created if missing.
    3. Without git metadata in the target, the branch is cloned.
    4. With git metadata, the branch is checked out and fetched, then either
       fast-forwarded (refusing divergent history) or, with ``force``,
       hard-reset to the fetched tip.

    Every git invocation carries the same TransportOverride, so the key named
    in the request is the only identity ssh will offer.
    """

    def __init__(self, engine: Optional[VersionControlEngine] = None):
        self.engine = engine or GitEngine()
        self.logger = logging.getLogger('reposync.git_sync.synchronizer')

    def _phase(self, operation: str, message: str) -> None:
        self.logger.info(message, extra={'operation': operation})

    def synchronize(self, request: SyncRequest) -> OperationResult:
        """
        Clone or update ``request.target_path``.

        Returns:
            OperationResult describing the action taken

        Raises:
            PreconditionError: git is missing or the credential is unusable
            TransportError: clone or fetch of an existing branch failed
            DivergenceError: the branch exists neither locally nor on the
                remote, it cannot be checked out, or the local
                history is not a fast-forward of the remote and force is off
        """
        self.check_preconditions(request)
        transport = TransportOverride.for_key(request.credential_path)

        initial_state = classify_repository(request.target_path)
        if initial_state is RepositoryState.ABSENT:
            self._phase("prepare", f"Creating target directory {request.target_path}")
            try:
                request.target_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PreconditionError(f"Cannot create target directory {request.target_path}: {e}")

        state = classify_repository(request.target_path)
        self._phase("classify", f"Target {request.target_path} is {state.value}")

        if state.is_repo:
            return self._update(request, transport, initial_state)
        return self._clone(request, transport, initial_state)

    def check_preconditions(self, request: SyncRequest) -> None:
        """
        Verify git can run and the deploy key is readable. Touches nothing.

        Raises:
            PreconditionError: git is missing or the credential is unusable
        """
        self._phase("preflight", "Checking git availability")
        if not self.engine.is_available():
            raise PreconditionError("git is not installed or not on PATH")

        self._phase("preflight", f"Checking credential {request.credential_path}")
        credential = request.credential_path
        if not credential.is_file():
            raise PreconditionError(f"Credential file not found: {credential}")
        if not os.access(credential, os.R_OK):
            raise PreconditionError(f"Credential file is not readable: {credential}")

    def _clone(self, request: SyncRequest, transport: TransportOverride,
               initial_state: RepositoryState) -> OperationResult:
        self._phase("clone", f"Cloning {request.remote_url} ({request.branch}) into {request.target_path}")
        outcome = self.engine.clone(
            request.remote_url,
            request.branch,
            True,
            request.target_path,
            transport
        )
        if not outcome.succeeded:
            raise TransportError(f"Clone of {request.remote_url} failed", outcome.output)

        self._phase("done", f"Cloned {request.branch} into {request.target_path}")
        return create_operation_result(SyncAction.CLONED, request, initial_state, outcome)

    def _update(self, request: SyncRequest, transport: TransportOverride,
                initial_state: RepositoryState) -> OperationResult:
        path = request.target_path
        created_branch = False

        self._phase("checkout", f"Switching to branch {request.branch}")
        outcome = self.engine.checkout(path, request.branch, transport, force=request.force)
        if not outcome.succeeded:
            # The branch may only exist upstream: fetch it, then create it
            # from the remote-tracking ref
            self.logger.debug(
                f"Checkout of {request.branch} failed, retrying from {request.remote_ref}",
                extra={'operation': 'checkout'}
            )
            self._phase("fetch", f"Fetching {request.branch} from {DEFAULT_REMOTE_NAME}")
            fetched = self.engine.fetch(path, DEFAULT_REMOTE_NAME, request.branch, transport)
            if not fetched.succeeded:
                # Not local, and the remote could not supply it either
                raise DivergenceError(
                    f"Cannot check out branch {request.branch}: it does not exist locally "
                    f"and could not be fetched from {DEFAULT_REMOTE_NAME}",
                    "\n".join(text for text in (outcome.output, fetched.output) if text)
                )
            retry = self.engine.checkout(
                path, request.branch, transport, start_point=request.remote_ref, force=request.force
            )
            if not retry.succeeded:
                raise DivergenceError(
                    f"Cannot check out branch {request.branch}",
                    "\n".join(text for text in (outcome.output, retry.output) if text)
                )
            created_branch = True
        else:
            self._fetch(request, transport)

        if request.force:
            self._phase("reset", f"Resetting {request.branch} to {request.remote_ref}")
            outcome = self.engine.reset(path, request.remote_ref, transport)
            if not outcome.succeeded:
                raise DivergenceError(f"Hard reset to {request.remote_ref} failed", outcome.output)
            action = SyncAction.HARD_RESET
        else:
            self._phase("merge", f"Fast-forwarding {request.branch} to {request.remote_ref}")
            outcome = self.engine.merge(path, request.remote_ref, True, transport)
            if not outcome.succeeded:
                raise DivergenceError(
                    f"Branch {request.branch} has diverged from {request.remote_ref}; "
                    f"rerun with --hard-reset to discard local history",
                    outcome.output
                )
            action = SyncAction.FAST_FORWARDED

        self._phase("done", f"Branch {request.branch} at {path} is {action.value}")
        result = create_operation_result(action, request, initial_state, outcome)
        result.details["created_local_branch"] = created_branch
        return result

    def _fetch(self, request: SyncRequest, transport: TransportOverride) -> CommandOutcome:
        self._phase("fetch", f"Fetching {request.branch} from {DEFAULT_REMOTE_NAME}")
        outcome = self.engine.fetch(request.target_path, DEFAULT_REMOTE_NAME, request.branch, transport)
        if not outcome.succeeded:
            raise TransportError(f"Fetch of {request.branch} from {DEFAULT_REMOTE_NAME} failed", outcome.output)
        return outcome


def synchronize(request: SyncRequest, engine: Optional[VersionControlEngine] = None) -> OperationResult:
    """Run one synchronization with a fresh Synchronizer."""
    return Synchronizer(engine).synchronize(request)
