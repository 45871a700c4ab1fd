"""Git synchronization functionality for reposync."""

from .engine import VersionControlEngine, GitEngine
from .repository_info import RepositoryState, classify_repository
from .synchronizer import Synchronizer, synchronize
from .transport import TransportOverride
from .utils import SyncRequest, SyncAction, OperationResult, CommandOutcome

__all__ = [
    'Synchronizer',
    'synchronize',
    'VersionControlEngine',
    'GitEngine',
    'RepositoryState',
    'classify_repository',
    'TransportOverride',
    'SyncRequest',
    'SyncAction',
    'OperationResult',
    'CommandOutcome'
]
